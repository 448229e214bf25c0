from __future__ import annotations


class LotteryError(RuntimeError):
    """Base class for everything the bot raises on purpose."""


class ConfigurationMissing(LotteryError):
    """A chain's RPC endpoint, signing key or deployment record is absent."""


class ReadFailure(LotteryError):
    """A ledger query failed (network, timeout, RPC error or bad payload)."""


class PurchaseWindowClosed(LotteryError):
    """The round is outside its purchase window when re-checked."""


class CapExceeded(LotteryError):
    """Task price is above the task's own spend ceiling."""


class ExecutionFailure(LotteryError):
    """A transaction could not be submitted, reverted, or never confirmed."""


class LifecyclePreconditionError(LotteryError):
    """A round transition was requested while its preconditions do not hold."""
