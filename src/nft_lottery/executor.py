from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Protocol

from eth_utils import from_wei

from .errors import CapExceeded, ExecutionFailure, LotteryError, PurchaseWindowClosed
from .ledger import TxReceipt
from .oracle import RoundOracle, RoundReader
from .rounds import should_attempt_purchase
from .tasks import PurchaseTask


class PurchaseLedger(RoundReader, Protocol):
    def execute_marketplace_purchase(
        self, round_id: int, calldata: bytes, native_price: int, max_spend: int
    ) -> TxReceipt:
        ...


def wall_clock() -> int:
    return int(time.time())


class PurchaseExecutor:
    def __init__(
        self,
        clock: Callable[[], int] = wall_clock,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.clock = clock
        self.log = logger or logging.getLogger("executor")

    def execute(self, ledger: PurchaseLedger, round_id: int, task: PurchaseTask) -> TxReceipt:
        """
        Submit one funded purchase for `round_id`.

        Raises CapExceeded before touching the ledger when the task's price is
        above its own cap, PurchaseWindowClosed when a fresh read shows the
        gate no longer holds, and ExecutionFailure for anything that goes
        wrong on submission. The contract re-checks the cap against the
        round's remaining purchase budget.
        """
        if not task.within_cap:
            raise CapExceeded(
                f"nativePrice {from_wei(task.native_price, 'ether')} exceeds "
                f"maxNativeSpend {from_wei(task.max_native_spend, 'ether')}"
            )

        snapshot = RoundOracle(ledger).read()
        now = self.clock()
        if snapshot.round_id != round_id:
            raise PurchaseWindowClosed(
                f"Current round moved from {round_id} to {snapshot.round_id}"
            )
        if not should_attempt_purchase(snapshot.round, snapshot.purchase_window, now):
            raise PurchaseWindowClosed(
                f"Round {round_id} outside purchase window at {now} "
                f"(end={snapshot.round.end}, window={snapshot.purchase_window})"
            )

        self.log.info(
            "Purchasing for round %d: value=%s cap=%s",
            round_id,
            from_wei(task.native_price, "ether"),
            from_wei(task.max_native_spend, "ether"),
        )
        try:
            return ledger.execute_marketplace_purchase(
                round_id,
                task.target_calldata,
                task.native_price,
                task.max_native_spend,
            )
        except LotteryError:
            raise
        except Exception as e:
            raise ExecutionFailure(f"{type(e).__name__}: {e}") from e
