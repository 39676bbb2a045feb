"""Run one delivery pass over the outbox."""

import asyncio
from dataclasses import dataclass

import typer
from rich.console import Console

from src.cli.output import format_error, format_success, format_warning, json_output
from src.cli.utils import ConfigError, ConfigManager, build_service
from src.client import MessageApiSender
from src.outbox.config import OutboxConfig
from src.outbox.connectivity import HttpConnectivityProbe, StaticConnectivity
from src.state import DatabaseError

console = Console()


@dataclass
class DrainResult:
    online: bool
    before: int = 0
    sent: int = 0
    dropped: int = 0
    remaining: int = 0
    next_retry_ms: int | None = None


async def _probe(config: OutboxConfig) -> bool:
    probe = HttpConnectivityProbe(config.probe_url, timeout=config.probe.timeout)
    try:
        return await probe.check()
    finally:
        await probe.stop()


async def _drain() -> DrainResult:
    config = ConfigManager().load()
    if not await _probe(config):
        return DrainResult(online=False)

    result = DrainResult(online=True)
    api = config.api
    async with MessageApiSender(
        api.base_url, token=api.token, refresh_token=api.refresh_token, timeout=api.timeout,
    ) as sender:
        connectivity = StaticConnectivity(False)
        service = build_service(config, connectivity, sender)
        service.on_message_dropped(lambda message, error: _count_drop(result))
        async with service:
            result.before = len(service.get_queued_messages())
            connectivity.set_connected(True)
            await service.join()
            if not service.is_persisted:
                raise DatabaseError("Outbox changes could not be saved")
            result.remaining = len(service.get_queued_messages())
            if service.has_pending_retry:
                result.next_retry_ms = service.retry_delay_ms
    result.sent = result.before - result.remaining - result.dropped
    return result


def _count_drop(result: DrainResult) -> None:
    result.dropped += 1


def drain_command(json_flag: bool) -> None:
    """Deliver queued messages if the API is reachable."""
    try:
        result = asyncio.run(_drain())
    except ConfigError as e:
        format_error(console, str(e), hint="Run 'outbox init' first")
        raise typer.Exit(code=1)
    except Exception as e:
        format_error(console, f"Drain failed: {e}")
        raise typer.Exit(code=1)

    if json_flag:
        json_output(console, result)
        if not result.online:
            raise typer.Exit(code=1)
        return

    if not result.online:
        format_error(console, "Messaging API unreachable", hint="Messages stay queued")
        raise typer.Exit(code=1)

    format_success(console, f"Sent {result.sent} of {result.before} queued messages")
    if result.dropped:
        format_warning(console, f"{result.dropped} messages dropped after max retries")
    if result.remaining:
        console.print(
            f"[yellow]{result.remaining} messages remain queued[/yellow] "
            f"(next retry in {result.next_retry_ms}ms)"
        )
