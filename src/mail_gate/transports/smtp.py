"""SMTP host transport built on aiosmtpd.

Each SMTP DATA command becomes one gate invocation. Rejections are answered
with a 550 reply carrying the reason; accepted messages are relayed to the
destination through a downstream SMTP server.
"""

import asyncio
import email.policy
import logging
import smtplib
from email.parser import BytesHeaderParser
from typing import TYPE_CHECKING

from aiosmtpd.smtp import SMTP, Envelope, Session

from mail_gate.config import RelayConfig
from mail_gate.models import GateOutcome, InboundMessage

from .base import MessageHandle

if TYPE_CHECKING:
    from mail_gate.gate import MessageGate

logger = logging.getLogger(__name__)

ACCEPTED_REPLY = "250 Message accepted for delivery"
DELIVERY_FAILED_REPLY = "451 Requested action aborted: downstream delivery failed"


class DeliveryError(Exception):
    """Relaying a message to the downstream server failed."""

    pass


def _raw_content(envelope: Envelope) -> bytes:
    content = envelope.original_content or envelope.content or b""
    if isinstance(content, str):
        return content.encode("utf-8")
    return content


def _message_id(raw: bytes) -> str | None:
    """Read the Message-ID header without parsing the body.

    The value is only used in log lines, so anything unreadable yields None
    and 8-bit bytes are replaced rather than passed through.
    """
    try:
        headers = BytesHeaderParser(policy=email.policy.default).parsebytes(raw)
        value = headers.get("Message-ID")
    except Exception as e:
        logger.debug(f"Unreadable Message-ID header: {e}")
        return None
    if value is None:
        return None
    # Undecodable bytes arrive as surrogate escapes
    return str(value).encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def envelope_to_message(envelope: Envelope) -> InboundMessage:
    """Build an InboundMessage from an aiosmtpd envelope.

    A null reverse-path becomes the empty string and is evaluated like any
    other sender.
    """
    raw = _raw_content(envelope)
    return InboundMessage(
        sender=envelope.mail_from or "",
        recipients=list(envelope.rcpt_tos),
        message_id=_message_id(raw),
        size=len(raw),
    )


class SMTPMessageHandle(MessageHandle):
    """Message handle backed by one SMTP transaction."""

    def __init__(self, envelope: Envelope, relay: RelayConfig) -> None:
        self.envelope = envelope
        self.relay = relay
        self.reject_reason: str | None = None

    async def reject(self, reason: str) -> None:
        # Reported to the client in the DATA reply
        self.reject_reason = reason

    async def forward(self, destination: str) -> None:
        await asyncio.to_thread(self._send, destination)

    def _send(self, destination: str) -> None:
        relay = self.relay
        try:
            with smtplib.SMTP(relay.host, relay.port, timeout=relay.timeout) as smtp:
                if relay.starttls:
                    smtp.starttls()
                if relay.username and relay.password:
                    smtp.login(relay.username, relay.password)
                smtp.sendmail(
                    self.envelope.mail_from or "",
                    [destination],
                    _raw_content(self.envelope),
                )
        except smtplib.SMTPException as e:
            raise DeliveryError(
                f"Relay {relay.host}:{relay.port} refused message for {destination}: {e}"
            ) from e
        except OSError as e:
            raise DeliveryError(
                f"Cannot reach relay {relay.host}:{relay.port}: {e}"
            ) from e


class GateSMTPHandler:
    """aiosmtpd handler that passes every message through a MessageGate."""

    def __init__(self, gate: "MessageGate", relay: RelayConfig) -> None:
        """Initialize the handler.

        Args:
            gate: The gate deciding each message's fate.
            relay: Downstream SMTP server used for forwarding.
        """
        self.gate = gate
        self.relay = relay

    def make_handle(self, envelope: Envelope) -> SMTPMessageHandle:
        return SMTPMessageHandle(envelope, self.relay)

    async def handle_DATA(
        self,
        server: SMTP,
        session: Session,
        envelope: Envelope,
    ) -> str:
        """Handle the DATA command.

        Returns:
            str: SMTP reply
                '250 ...' - forwarded
                '550 <reason>' - rejected by policy
                '451 ...' - forwarding failed downstream
        """
        message = envelope_to_message(envelope)
        logger.info(
            f"Received email: from={message.sender!r}, to={message.recipients}, "
            f"size={message.size} bytes"
        )

        handle = self.make_handle(envelope)
        try:
            result = await self.gate.handle(message, handle)
        except DeliveryError as e:
            logger.error(f"Forwarding {message.message_id or message.sender!r} failed: {e}")
            return DELIVERY_FAILED_REPLY

        if result.outcome == GateOutcome.REJECTED:
            logger.info(f"Rejected {message.sender!r}: {result.reason}")
            return f"550 {result.reason}"

        logger.info(f"Forwarded {message.sender!r} to {result.destination}")
        return ACCEPTED_REPLY
