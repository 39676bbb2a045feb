"""Main CLI entry point for the offline outbox."""

import os

import typer
from rich.console import Console

from src.cli.commands.drain import drain_command
from src.cli.commands.enqueue import enqueue_command
from src.cli.commands.init import init_command
from src.cli.commands.list_queue import list_command
from src.cli.commands.remove import remove_command
from src.cli.commands.retry import retry_command
from src.cli.commands.status import status_command
from src.cli.utils import ConfigManager
from src.outbox.config import configure_logging

app = typer.Typer(
    name="outbox",
    help="Offline outbox - queue chat messages and deliver them when online",
    no_args_is_help=True,
    add_completion=False,
)
console = Console()


@app.callback()
def _setup(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
) -> None:
    if verbose:
        level = "DEBUG"
    else:
        level = os.environ.get("LOG_LEVEL") or ConfigManager().log_level()
    configure_logging(level)


@app.command("init")
def init(
    api_url: str = typer.Option(..., "-u", "--api-url", help="Messaging API base URL"),
    token: str = typer.Option(None, "-t", "--token", help="Bearer token"),
    refresh_token: str = typer.Option(None, "--refresh-token", help="Refresh token"),
    probe_url: str = typer.Option(None, "--probe-url", help="Connectivity probe URL"),
    force: bool = typer.Option(False, "-f", "--force", help="Overwrite config"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Initialize outbox configuration."""
    init_command(api_url, token, refresh_token, probe_url, force, json_flag)


@app.command("queue")
def queue(
    conversation_id: str = typer.Option(..., "-c", "--conversation", help="Conversation ID"),
    message: str = typer.Option(..., "-m", "--message", help="Content"),
    message_type: str = typer.Option("text", "--type", help="text, image or video"),
    media: str = typer.Option(None, "--media", help="Path or file:// URI of media"),
    json_flag: bool = typer.Option(False, "--json"),
) -> None:
    """Queue a message for delivery."""
    enqueue_command(conversation_id, message, message_type, media, json_flag)


@app.command("list")
def list_queued(
    conversation_id: str = typer.Option(None, "-c", "--conversation", help="Filter by conversation"),
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List queued messages."""
    list_command(conversation_id, json_flag)


@app.command("remove")
def remove(
    message_id: str = typer.Argument(..., help="Message ID"),
    json_flag: bool = typer.Option(False, "--json"),
) -> None:
    """Remove a message from the queue."""
    remove_command(message_id, json_flag)


@app.command("retry")
def retry(
    message_id: str = typer.Argument(..., help="Message ID"),
    json_flag: bool = typer.Option(False, "--json"),
) -> None:
    """Send one queued message now."""
    retry_command(message_id, json_flag)


@app.command("drain")
def drain(
    json_flag: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Deliver queued messages if the API is reachable."""
    drain_command(json_flag)


@app.command("status")
def status(
    verbose: bool = typer.Option(False, "-V", "--details", help="Per-message retry counts"),
    json_flag: bool = typer.Option(False, "--json"),
) -> None:
    """Show outbox configuration and queue status."""
    status_command(verbose, json_flag)


def main() -> None:
    """Entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(130)
