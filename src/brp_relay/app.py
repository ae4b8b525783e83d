"""Relay application assembly.

Wires configuration, status, the executor intake and the connection
together. The host keeps ``intake`` and serves it with its executor.
"""

from __future__ import annotations

import logging

from .channel import IntakeReceiver, create_intake
from .config import RelayConfig
from .connection import RelayConnection
from .status import RelayStatus

logger = logging.getLogger(__name__)


class BrpRelay:
    """A BRP relay bound to one connection.

    Usage:
        relay = BrpRelay(RelayConfig.from_env())
        registry = MethodRegistry()
        async with asyncio.TaskGroup() as tg:
            tg.create_task(registry.serve(relay.intake))
            tg.create_task(relay.run())
    """

    def __init__(self, config: RelayConfig | None = None) -> None:
        self.config = config or RelayConfig()
        self.status = RelayStatus()

        intake_sender, intake_receiver = create_intake()
        self._intake_sender = intake_sender
        # Served by the host's executor
        self.intake: IntakeReceiver = intake_receiver
        self.connection = RelayConnection(
            self.config.resolve_url(),
            intake_sender,
            status=self.status,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
        )

    async def run(self) -> None:
        """Run the connection until it closes, then close the intake."""
        try:
            await self.connection.run()
        finally:
            self._intake_sender.close()
            logger.info(f"BRP relay stopped (url={self.connection.url})")
