"""Manually retry one queued message."""

import asyncio

import typer
from rich.console import Console

from src.cli.output import format_error, format_success, json_output
from src.cli.utils import ConfigError, ConfigManager, open_service
from src.client import MessageApiSender

console = Console()


class MessageNotQueuedError(Exception):
    pass


async def _retry(message_id: str) -> None:
    config = ConfigManager().load()
    api = config.api
    async with MessageApiSender(
        api.base_url, token=api.token, refresh_token=api.refresh_token, timeout=api.timeout,
    ) as sender:
        async with open_service(config, sender) as service:
            if not any(m.id == message_id for m in service.get_queued_messages()):
                raise MessageNotQueuedError(f"Message {message_id} is not queued")
            await service.retry_message(message_id)


def retry_command(message_id: str, json_flag: bool) -> None:
    """Send one queued message now, outside the retry schedule."""
    try:
        asyncio.run(_retry(message_id))
    except ConfigError as e:
        format_error(console, str(e), hint="Run 'outbox init' first")
        raise typer.Exit(code=1)
    except MessageNotQueuedError as e:
        format_error(console, str(e), hint="Run 'outbox list' to see queued messages")
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Retry failed: {e}", hint="The message stays queued")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, {"message_id": message_id, "status": "sent"})
        return

    format_success(console, f"Sent message {message_id}")
