"""Message gate: turns a sender verdict into reject or forward."""

from mail_gate.config import GateConfig
from mail_gate.models import GateOutcome, GateResult, InboundMessage, Verdict
from mail_gate.policy import SenderPolicy, policy_from_config
from mail_gate.transports.base import MessageHandle


class MessageGate:
    """Routes each inbound message to exactly one terminal action."""

    def __init__(self, config: GateConfig, policy: SenderPolicy | None = None) -> None:
        """Initialize the gate.

        Args:
            config: Gate configuration (destination, policy lists).
            policy: Policy to apply. Built from config when omitted.
        """
        self.config = config
        self.policy = policy if policy is not None else policy_from_config(config)

    @property
    def destination(self) -> str:
        return self.config.destination

    def decide(self, sender: str) -> Verdict:
        """Evaluate a sender without touching any transport."""
        return self.policy.evaluate(sender)

    async def handle(self, message: InboundMessage, handle: MessageHandle) -> GateResult:
        """Process one inbound message.

        Denied senders are rejected with the policy's reason; allowed senders
        are forwarded to the configured destination. If forwarding raises,
        the exception propagates unchanged: there is no retry and no fallback
        rejection.

        Args:
            message: The arriving message.
            handle: Transport capability used to reject or forward it.

        Returns:
            GateResult describing the terminal state reached.
        """
        verdict = self.decide(message.sender)

        if verdict == Verdict.DENIED:
            reason = self.policy.reject_reason
            await handle.reject(reason)
            return GateResult(
                sender=message.sender,
                verdict=verdict,
                outcome=GateOutcome.REJECTED,
                reason=reason,
            )

        await handle.forward(self.destination)
        return GateResult(
            sender=message.sender,
            verdict=verdict,
            outcome=GateOutcome.FORWARDED,
            destination=self.destination,
        )
