"""List messages waiting in the outbox."""

import asyncio

import typer
from rich.console import Console

from src.cli.output import format_error, format_table, json_output
from src.cli.utils import ConfigError, ConfigManager, open_service, validate_conversation_id

console = Console()


async def _list_queued(conversation_id: str | None) -> list[dict]:
    config = ConfigManager().load()
    async with open_service(config) as service:
        messages = service.get_queued_messages(conversation_id)
    return [m.to_dict() for m in messages]


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def list_command(conversation_id: str | None, json_flag: bool) -> None:
    """List queued messages in enqueue order."""
    if conversation_id is not None:
        try:
            conversation_id = validate_conversation_id(conversation_id)
        except ValueError as e:
            format_error(console, str(e))
            raise typer.Exit(code=2)

    try:
        msgs = asyncio.run(_list_queued(conversation_id))
    except ConfigError as e:
        format_error(console, str(e), hint="Run 'outbox init' first")
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Failed to list queued messages: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, {"count": len(msgs), "messages": msgs})
        return

    rows = [
        (
            m["id"],
            m["conversationId"],
            m["type"],
            f"{m['retryCount']}/{m['maxRetries']}",
            m["timestamp"][:19],
            _truncate(m["content"], 50),
        )
        for m in msgs
    ]
    format_table(
        console,
        f"Queued Messages ({len(msgs)})",
        ["ID", "Conversation", "Type", "Retries", "Queued At", "Content"],
        rows,
        numeric=("ID", "Retries"),
        empty="Outbox is empty",
    )
