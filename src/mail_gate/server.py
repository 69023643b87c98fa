"""SMTP gate server built on the aiosmtpd Controller."""

import asyncio
import logging
import signal
from datetime import datetime
from typing import Any

from aiosmtpd.controller import Controller

from .config import Settings
from .gate import MessageGate
from .transports.smtp import GateSMTPHandler

logger = logging.getLogger(__name__)


class GateServer:
    """Runs the inbound SMTP host until told to stop."""

    def __init__(self, settings: Settings) -> None:
        """Initialize the server.

        Args:
            settings: Application settings.
        """
        self.settings = settings
        self.gate = MessageGate(settings.gate)
        self.handler = GateSMTPHandler(self.gate, settings.relay)
        self.controller = Controller(
            self.handler,
            hostname=settings.listen.host,
            port=settings.listen.port,
        )
        self._running = False
        self._started_at: datetime | None = None
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        """Start listening and block until a shutdown signal arrives."""
        if self._running:
            logger.warning("Server is already running")
            return

        listen = self.settings.listen
        logger.info(f"Starting mail gate on {listen.host}:{listen.port}")
        self._shutdown_event.clear()

        # Controller serves from its own thread and event loop
        await asyncio.to_thread(self.controller.start)
        self._running = True
        self._started_at = datetime.now()
        logger.info(
            f"Mail gate started ({self.gate.policy.mode.value} policy, "
            f"forwarding to {self.gate.destination})"
        )

        loop = asyncio.get_running_loop()
        signals = (signal.SIGTERM, signal.SIGINT)
        for sig in signals:
            loop.add_signal_handler(sig, lambda: asyncio.create_task(self.stop()))

        try:
            await self._shutdown_event.wait()
        finally:
            for sig in signals:
                loop.remove_signal_handler(sig)

    async def stop(self) -> None:
        """Stop the server gracefully."""
        if not self._running:
            return

        logger.info("Stopping mail gate")
        self._running = False
        await asyncio.to_thread(self.controller.stop)
        self._shutdown_event.set()
        logger.info("Mail gate stopped")

    def get_status(self) -> dict[str, Any]:
        """Get the current server status."""
        gate_config = self.settings.gate
        return {
            "running": self._running,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "listen": f"{self.settings.listen.host}:{self.settings.listen.port}",
            "relay": f"{self.settings.relay.host}:{self.settings.relay.port}",
            "policy": {
                "mode": self.gate.policy.mode.value,
                "addresses": len(self.gate.policy.addresses),
                "reject_reason": self.gate.policy.reject_reason,
            },
            "destination": gate_config.destination,
        }
