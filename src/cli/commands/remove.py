"""Remove a message from the outbox."""

import asyncio

import typer
from rich.console import Console

from src.cli.output import format_error, format_success, format_warning, json_output
from src.cli.utils import ConfigError, ConfigManager, open_service

console = Console()


async def _remove(message_id: str) -> bool:
    config = ConfigManager().load()
    async with open_service(config) as service:
        found = any(m.id == message_id for m in service.get_queued_messages())
        await service.remove_from_queue(message_id)
    return found


def remove_command(message_id: str, json_flag: bool) -> None:
    """Cancel a queued message."""
    try:
        removed = asyncio.run(_remove(message_id))
    except ConfigError as e:
        format_error(console, str(e), hint="Run 'outbox init' first")
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Failed to remove message: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, {"message_id": message_id, "removed": removed})
        return

    if removed:
        format_success(console, f"Removed message {message_id}")
    else:
        format_warning(console, f"Message {message_id} is not queued")
