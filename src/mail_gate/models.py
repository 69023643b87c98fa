"""Core data models for message screening."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Verdict(str, Enum):
    """Outcome of evaluating a sender against a policy."""

    ALLOWED = "allowed"
    DENIED = "denied"


class PolicyMode(str, Enum):
    """Which sender policy variant is in effect."""

    ALLOW = "allow"  # Only listed senders are forwarded
    BLOCK = "block"  # Listed senders are rejected, everyone else forwarded


class GateOutcome(str, Enum):
    """Terminal state of a message passing through the gate."""

    REJECTED = "rejected"
    FORWARDED = "forwarded"


class InboundMessage(BaseModel):
    """Represents one arriving email.

    Only the envelope is modeled; the body stays with the transport.
    """

    model_config = ConfigDict(frozen=True)

    sender: str  # Envelope-from address, compared verbatim
    recipients: list[str] = Field(default_factory=list)
    message_id: str | None = None
    size: int = 0


class GateResult(BaseModel):
    """Record of which terminal action the gate took for a message."""

    sender: str
    verdict: Verdict
    outcome: GateOutcome
    reason: str | None = None  # Set when rejected
    destination: str | None = None  # Set when forwarded
