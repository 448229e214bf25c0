from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence


class RoundPhase(str, Enum):
    OPEN = "open"
    PURCHASE_WINDOW = "purchase_window"
    CLOSED = "closed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class Round:
    round_id: int
    start: int
    end: int
    deposited: int
    purchase_budget: int
    owner_amount: int
    closed: bool
    finalized: bool
    winners_drawn: int

    @classmethod
    def from_tuple(cls, round_id: int, fields: Sequence) -> "Round":
        """Build from the 8-field `rounds(id)` return tuple."""
        start, end, deposited, budget, owner_amount, closed, finalized, drawn = fields
        return cls(
            round_id=int(round_id),
            start=int(start),
            end=int(end),
            deposited=int(deposited),
            purchase_budget=int(budget),
            owner_amount=int(owner_amount),
            closed=bool(closed),
            finalized=bool(finalized),
            winners_drawn=int(drawn),
        )

    def in_purchase_window(self, purchase_window: int, now: int) -> bool:
        # Inclusive at both ends: end and end + window are both inside.
        return self.end <= now <= self.end + purchase_window

    def is_past_end(self, now: int) -> bool:
        return self.closed or now >= self.end

    def phase(self, purchase_window: int, now: int) -> RoundPhase:
        if self.finalized:
            return RoundPhase.FINALIZED
        if self.in_purchase_window(purchase_window, now):
            return RoundPhase.PURCHASE_WINDOW
        if now < self.end and not self.closed:
            return RoundPhase.OPEN
        return RoundPhase.CLOSED


def should_attempt_purchase(round: Round, purchase_window: int, now: int) -> bool:
    """True iff round.end <= now <= round.end + purchase_window."""
    return round.in_purchase_window(purchase_window, now)
