from __future__ import annotations

import logging
from typing import Callable, Optional

from .errors import LifecyclePreconditionError
from .executor import wall_clock
from .ledger import LotteryLedger, TxReceipt
from .rounds import Round


class RoundLifecycleDriver:
    """
    Operator-side round transitions. Each method checks the round state it
    needs before sending anything; the contract enforces the same rules.
    """

    def __init__(
        self,
        ledger: LotteryLedger,
        clock: Callable[[], int] = wall_clock,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.ledger = ledger
        self.clock = clock
        self.log = logger or logging.getLogger("lifecycle")

    def _closed_round(self, round_id: int) -> Round:
        if round_id < 1:
            raise LifecyclePreconditionError(f"Round ids start at 1, got {round_id}")
        # Unknown ids read back as an all-zero round, which would look closed.
        current_id = self.ledger.current_round_id()
        if round_id > current_id:
            raise LifecyclePreconditionError(
                f"Round {round_id} does not exist (current round is {current_id})"
            )
        r = self.ledger.get_round(round_id)
        if r.finalized:
            raise LifecyclePreconditionError(f"Round {round_id} is already finalized")
        if not r.is_past_end(self.clock()):
            raise LifecyclePreconditionError(
                f"Round {round_id} is still open until {r.end}"
            )
        return r

    def finalize_round(self, round_id: int) -> TxReceipt:
        r = self._closed_round(round_id)
        total = self.ledger.prize_vault.round_prize_count(round_id)
        if r.winners_drawn < total:
            raise LifecyclePreconditionError(
                f"Round {round_id}: {r.winners_drawn}/{total} winners drawn"
            )
        self.log.info("Finalizing round %d", round_id)
        return self.ledger.finalize_round(round_id)

    def draw_winners(self, round_id: int, batch_size: int = 0) -> TxReceipt:
        """batch_size=0 draws every remaining slot."""
        if batch_size < 0:
            raise LifecyclePreconditionError("batch_size must be >= 0")
        r = self._closed_round(round_id)
        total = self.ledger.prize_vault.round_prize_count(round_id)
        remaining = total - r.winners_drawn
        if remaining <= 0:
            raise LifecyclePreconditionError(
                f"Round {round_id}: all {total} prize slots already drawn"
            )

        self.log.info(
            "Drawing round %d: %d of %d slots remaining, batch=%s",
            round_id,
            remaining,
            total,
            batch_size or "all",
        )
        receipt = self.ledger.draw_winners(round_id, batch_size)

        after = self.ledger.get_round(round_id).winners_drawn
        if after < r.winners_drawn or after > total:
            self.log.error(
                "Round %d winnersDrawn went %d -> %d (slots=%d)",
                round_id,
                r.winners_drawn,
                after,
                total,
            )
        return receipt

    def start_next_round(self) -> TxReceipt:
        current_id = self.ledger.current_round_id()
        current = self.ledger.get_round(current_id)
        if not current.is_past_end(self.clock()):
            raise LifecyclePreconditionError(
                f"Round {current_id} is still open until {current.end}"
            )
        self.log.info("Starting round after %d", current_id)
        return self.ledger.start_next_round()
