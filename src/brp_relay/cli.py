"""BRP relay CLI.

Connects to a relay server and serves a few diagnostic methods, which is
enough to check a relay end to end without a host application.

Usage:
    brp-relay                                   # ws://localhost:1334/brp-relay
    brp-relay --url ws://example.com/brp-relay  # Explicit endpoint
    brp-relay --origin https://example.com      # wss://example.com/brp-relay
    brp-relay --log-level DEBUG

Methods served:
    relay.ping          -> "pong"
    relay.status        -> {"connected": bool, "url": str}
    relay.methods       -> list of method names
    relay.clock+watch   -> one ISO8601 timestamp per second
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Any

import click

from .app import BrpRelay
from .config import RelayConfig
from .executor import MethodRegistry

logger = logging.getLogger(__name__)


def build_registry(relay: BrpRelay, tick: float = 1.0) -> MethodRegistry:
    """Create a registry with the diagnostic methods for a relay."""
    registry = MethodRegistry()

    async def clock(params: Any) -> AsyncGenerator[str, None]:
        while True:
            yield datetime.now(UTC).isoformat()
            await asyncio.sleep(tick)

    registry.register("relay.ping", lambda params: "pong")
    registry.register(
        "relay.status",
        lambda params: {"connected": relay.status.connected, "url": relay.connection.url},
    )
    registry.register("relay.methods", lambda params: registry.methods())
    registry.register_watch("relay.clock+watch", clock)
    return registry


async def run_relay(config: RelayConfig) -> None:
    """Run a relay with the diagnostic executor until the socket closes."""
    relay = BrpRelay(config)
    registry = build_registry(relay)

    executor_task = asyncio.create_task(registry.serve(relay.intake))
    try:
        await relay.run()
    finally:
        await executor_task


@click.command()
@click.option("--url", default=None, help="Relay WebSocket URL (overrides --origin/--path)")
@click.option("--path", default=None, help="Path appended to the origin when deriving the URL")
@click.option("--origin", default=None, help="Hosting origin, e.g. https://example.com:1334")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Logging level (logs go to stderr)",
)
def main(url: str | None, path: str | None, origin: str | None, log_level: str) -> None:
    """BRP WebSocket relay - bridge relay requests to a local executor."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    config = RelayConfig.from_env()
    overrides = {
        key: value
        for key, value in (("url", url), ("path", path), ("origin", origin))
        if value is not None
    }
    if overrides:
        config = config.model_copy(update=overrides)

    try:
        resolved = config.resolve_url()
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--origin") from e

    click.echo(f"Relaying to {resolved}", err=True)
    try:
        asyncio.run(run_relay(config))
    except KeyboardInterrupt:
        click.echo("Interrupted", err=True)


if __name__ == "__main__":
    main()
