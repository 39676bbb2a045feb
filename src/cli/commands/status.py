"""Show outbox configuration and queue status."""

import asyncio
from collections import Counter

import typer
from rich.console import Console

from src.cli.output import format_error, format_table, json_output
from src.cli.utils import ConfigError, ConfigManager, open_service

console = Console()


async def _get_status(verbose: bool) -> dict:
    """Get outbox status information."""
    manager = ConfigManager()
    config = manager.load()

    async with open_service(config) as service:
        messages = service.get_queued_messages()

    per_conversation = Counter(m.conversation_id for m in messages)
    status = {
        "api_url": config.api.base_url,
        "config_path": str(manager.config_path),
        "db_path": str(config.db_path),
        "storage_key": config.storage_key,
        "max_retries": config.max_retries,
        "queued": len(messages),
        "conversations": dict(per_conversation),
    }

    if verbose:
        status["retry_counts"] = {m.id: m.retry_count for m in messages}

    return status


def status_command(verbose: bool, json_flag: bool) -> None:
    """Display outbox status."""
    try:
        status = asyncio.run(_get_status(verbose))
    except ConfigError as e:
        format_error(console, str(e), hint="Run 'outbox init' first")
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Failed to get status: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, status)
        return

    console.print("[bold]Outbox Status[/bold]\n")
    console.print(f"  [cyan]API URL:[/cyan]     {status['api_url']}")
    console.print(f"  [cyan]Config:[/cyan]      {status['config_path']}")
    console.print(f"  [cyan]Database:[/cyan]    {status['db_path']}")
    console.print(f"  [cyan]Storage key:[/cyan] {status['storage_key']}")
    console.print(f"  [cyan]Queued:[/cyan]      {status['queued']}")

    if status["conversations"]:
        console.print()
        format_table(
            console, "By Conversation", ["Conversation", "Queued"],
            list(status["conversations"].items()), numeric=("Queued",),
        )

    if verbose and status.get("retry_counts"):
        console.print()
        format_table(
            console, "Retry Counts", ["Message", "Retries"],
            list(status["retry_counts"].items()), numeric=("Message", "Retries"),
        )
