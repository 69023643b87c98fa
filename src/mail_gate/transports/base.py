"""Message handle interface exposed by host transports."""

from abc import ABC, abstractmethod


class MessageHandle(ABC):
    """The two actions a host transport offers for one inbound message.

    The gate calls exactly one of these, exactly once, per message.
    """

    @abstractmethod
    async def reject(self, reason: str) -> None:
        """Refuse the message, reporting reason back to the sender's transport."""
        ...

    @abstractmethod
    async def forward(self, destination: str) -> None:
        """Deliver the message to the destination mailbox.

        Failures are raised to the caller as-is.
        """
        ...


class RecordingHandle(MessageHandle):
    """Handle that records the action it was asked to take.

    Used for dry runs: nothing is delivered anywhere. Pass forward_error to
    make forward() fail after recording the attempt.
    """

    def __init__(self, forward_error: BaseException | None = None) -> None:
        self.forward_error = forward_error
        self.calls: list[tuple[str, str]] = []
        self.rejected_with: str | None = None
        self.forwarded_to: str | None = None

    async def reject(self, reason: str) -> None:
        self.calls.append(("reject", reason))
        self.rejected_with = reason

    async def forward(self, destination: str) -> None:
        self.calls.append(("forward", destination))
        if self.forward_error is not None:
            raise self.forward_error
        self.forwarded_to = destination
