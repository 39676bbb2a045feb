"""Add a message to the persisted outbox without sending it."""

import asyncio

import typer
from rich.console import Console

from src.cli.output import format_error, format_success, json_output
from src.cli.utils import (
    ConfigError,
    ConfigManager,
    open_service,
    validate_conversation_id,
    validate_message_content,
    validate_message_type,
)
from src.outbox.models import MessageType

console = Console()


async def _enqueue(
    conversation_id: str, content: str, message_type: MessageType, media_uri: str | None,
) -> str:
    config = ConfigManager().load()
    async with open_service(config) as service:
        return await service.queue_message(
            conversation_id, content, message_type, media_uri
        )


def enqueue_command(
    conversation_id: str,
    content: str,
    message_type: str,
    media_uri: str | None,
    json_flag: bool,
) -> None:
    """Queue a message for the next drain."""
    try:
        conversation_id = validate_conversation_id(conversation_id)
        content = validate_message_content(content)
        mtype = validate_message_type(message_type)
    except ValueError as e:
        format_error(console, str(e))
        raise typer.Exit(code=2)

    if mtype is not MessageType.TEXT and not media_uri:
        format_error(console, f"{mtype.value} messages require --media")
        raise typer.Exit(code=2)

    try:
        message_id = asyncio.run(_enqueue(conversation_id, content, mtype, media_uri))
    except ConfigError as e:
        format_error(console, str(e), hint="Run 'outbox init' first")
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Failed to queue message: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(
            console,
            {
                "status": "queued",
                "message_id": message_id,
                "conversation_id": conversation_id,
                "type": mtype.value,
            },
        )
        return

    format_success(console, f"Queued message {message_id}")
