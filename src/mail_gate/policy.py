"""Sender policy evaluation.

Addresses are compared with exact, case-sensitive string equality against
the whole address. "Friend@Example.com" does not match
"friend@example.com", and there is no domain or wildcard matching.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable

from mail_gate.config import GateConfig
from mail_gate.models import PolicyMode, Verdict

ALLOW_LIST_REASON = "Address not allowed"
BLOCK_LIST_REASON = "Address is blocked"


def evaluate(sender: str, allow_list: frozenset[str]) -> Verdict:
    """Return ALLOWED iff sender is an exact member of allow_list."""
    if sender in allow_list:
        return Verdict.ALLOWED
    return Verdict.DENIED


def evaluate_block_list(sender: str, block_list: frozenset[str]) -> Verdict:
    """Return DENIED iff sender is an exact member of block_list."""
    if sender in block_list:
        return Verdict.DENIED
    return Verdict.ALLOWED


class SenderPolicy(ABC):
    """A fixed set of addresses plus the rule for interpreting it."""

    reject_reason: str

    def __init__(self, addresses: Iterable[str], reject_reason: str | None = None) -> None:
        self.addresses = frozenset(addresses)
        if reject_reason is not None:
            self.reject_reason = reject_reason

    @property
    @abstractmethod
    def mode(self) -> PolicyMode:
        """The policy variant."""
        ...

    @abstractmethod
    def evaluate(self, sender: str) -> Verdict:
        """Produce a verdict for one sender."""
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({sorted(self.addresses)!r})"


class AllowListPolicy(SenderPolicy):
    """Forward only senders on the list."""

    reject_reason = ALLOW_LIST_REASON

    @property
    def mode(self) -> PolicyMode:
        return PolicyMode.ALLOW

    def evaluate(self, sender: str) -> Verdict:
        return evaluate(sender, self.addresses)


class BlockListPolicy(SenderPolicy):
    """Reject senders on the list, forward everyone else."""

    reject_reason = BLOCK_LIST_REASON

    @property
    def mode(self) -> PolicyMode:
        return PolicyMode.BLOCK

    def evaluate(self, sender: str) -> Verdict:
        return evaluate_block_list(sender, self.addresses)


def policy_from_config(config: GateConfig) -> SenderPolicy:
    """Build the policy variant selected by config.mode."""
    if config.mode == PolicyMode.BLOCK:
        return BlockListPolicy(config.block_list, config.reject_reason)
    return AllowListPolicy(config.allow_list, config.reject_reason)
