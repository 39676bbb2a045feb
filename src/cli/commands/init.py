"""Initialize outbox configuration."""

import typer
from rich.console import Console

from src.cli.output import format_error, format_success, json_output
from src.cli.utils import ConfigManager, validate_api_url

console = Console()


def init_command(
    api_url: str,
    token: str | None,
    refresh_token: str | None,
    probe_url: str | None,
    force: bool,
    json_flag: bool,
) -> None:
    """Write ~/.outbox/config.yaml pointing at the messaging API.

    The file is chmod 600 when it holds credentials.
    """
    try:
        api_url = validate_api_url(api_url)
        if probe_url:
            probe_url = validate_api_url(probe_url)
    except ValueError as e:
        format_error(console, str(e))
        raise typer.Exit(code=2)

    config = ConfigManager()

    if config.exists() and not force:
        format_error(
            console,
            f"Configuration already exists at {config.config_path}",
            hint="Use --force to overwrite existing configuration",
        )
        raise typer.Exit(code=1)

    config.save(api_url, token=token, refresh_token=refresh_token, probe_url=probe_url)

    if json_flag:
        json_output(
            console,
            {
                "status": "initialized",
                "api_url": api_url,
                "config_path": str(config.config_path),
                "db_path": str(config.db_path),
            },
        )
        return

    format_success(console, "Outbox initialized")
    console.print(f"  [cyan]API URL:[/cyan]  {api_url}")
    console.print(f"  [cyan]Config:[/cyan]   {config.config_path}")
    console.print(f"  [cyan]Database:[/cyan] {config.db_path}")
