"""Tests for the SMTP gate server wiring."""

import asyncio
import signal
import smtplib
import socket
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from mail_gate.config import GateConfig, ListenConfig, RelayConfig, Settings
from mail_gate.models import PolicyMode
from mail_gate.server import GateServer


def free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def settings():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Settings(
            config_dir=Path(tmpdir),
            gate=GateConfig(
                mode=PolicyMode.BLOCK,
                block_list=frozenset({"spammer@example.com"}),
                destination="team@corp",
            ),
            relay=RelayConfig(host="relay.internal", port=2525),
            listen=ListenConfig(host="127.0.0.1", port=10025),
        )


async def wait_until_running(server: GateServer, task: asyncio.Task) -> None:
    for _ in range(500):
        if server.get_status()["running"] or task.done():
            break
        await asyncio.sleep(0.01)
    if task.done():
        task.result()


def send(port: int, sender: str) -> None:
    with smtplib.SMTP("127.0.0.1", port, timeout=5) as client:
        client.sendmail(sender, ["me@corp"], b"Subject: hi\r\n\r\nhello\r\n")


class TestGateServer:
    def test_init(self, settings: Settings) -> None:
        server = GateServer(settings)

        assert server.gate.config == settings.gate
        assert server.handler.gate is server.gate
        assert server.handler.relay == settings.relay
        assert server.controller.hostname == "127.0.0.1"
        assert server.controller.port == 10025

    def test_status_before_start(self, settings: Settings) -> None:
        status = GateServer(settings).get_status()

        assert status["running"] is False
        assert status["started_at"] is None
        assert status["listen"] == "127.0.0.1:10025"
        assert status["relay"] == "relay.internal:2525"
        assert status["policy"] == {
            "mode": "block",
            "addresses": 1,
            "reject_reason": "Address is blocked",
        }
        assert status["destination"] == "team@corp"

    @pytest.mark.asyncio
    async def test_stop_when_not_running(self, settings: Settings) -> None:
        server = GateServer(settings)
        await server.stop()
        assert server.get_status()["running"] is False


class TestServerLifecycle:
    @pytest.mark.asyncio
    async def test_start_serve_and_stop(self, settings: Settings) -> None:
        port = free_port()
        settings = settings.model_copy(
            update={"listen": ListenConfig(host="127.0.0.1", port=port)}
        )
        server = GateServer(settings)

        task = asyncio.create_task(server.start())
        try:
            await wait_until_running(server, task)
            status = server.get_status()
            assert status["running"] is True
            assert status["started_at"] is not None

            with pytest.raises(smtplib.SMTPDataError) as exc_info:
                await asyncio.to_thread(send, port, "spammer@example.com")
            assert exc_info.value.smtp_code == 550
            assert b"Address is blocked" in exc_info.value.smtp_error
        finally:
            await server.stop()

        await asyncio.wait_for(task, timeout=5)
        assert task.done()
        assert server.get_status()["running"] is False

    @pytest.mark.asyncio
    async def test_failed_start_leaves_no_signal_handlers(
        self, settings: Settings
    ) -> None:
        server = GateServer(settings)

        with patch.object(
            server.controller, "start", side_effect=OSError("address in use")
        ):
            with pytest.raises(OSError):
                await server.start()

        assert server.get_status()["running"] is False
        loop = asyncio.get_running_loop()
        assert loop.remove_signal_handler(signal.SIGTERM) is False
        assert loop.remove_signal_handler(signal.SIGINT) is False
