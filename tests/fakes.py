from __future__ import annotations

import dataclasses
from typing import Dict, List, Optional, Tuple

from eth_utils import to_wei

from nft_lottery.deployments import ChainDeployment
from nft_lottery.errors import ExecutionFailure
from nft_lottery.ledger import TxReceipt
from nft_lottery.rounds import Round
from nft_lottery.rpc import RpcError
from nft_lottery.tasks import PurchaseTask

ETHER = 10**18


def make_round(
    round_id: int = 1,
    start: int = 0,
    end: int = 1000,
    deposited: int = ETHER,
    purchase_budget: int = ETHER // 2,
    owner_amount: int = ETHER // 10,
    closed: bool = False,
    finalized: bool = False,
    winners_drawn: int = 0,
) -> Round:
    return Round(
        round_id=round_id,
        start=start,
        end=end,
        deposited=deposited,
        purchase_budget=purchase_budget,
        owner_amount=owner_amount,
        closed=closed,
        finalized=finalized,
        winners_drawn=winners_drawn,
    )


def make_deployment(name: str = "base", chain_id: int = 8453) -> ChainDeployment:
    return ChainDeployment(
        name=name,
        chain_id=chain_id,
        lottery="0x" + "11" * 20,
        prize_vault="0x" + "22" * 20,
    )


def make_task(price: str = "0.01", cap: str = "0.02") -> PurchaseTask:
    return PurchaseTask(
        target_calldata=b"\xde\xad\xbe\xef",
        native_price=to_wei(price, "ether"),
        max_native_spend=to_wei(cap, "ether"),
    )


class FakeVault:
    def __init__(self, counts: Dict[int, int]) -> None:
        self.counts = counts

    def round_prize_count(self, round_id: int) -> int:
        return self.counts.get(round_id, 0)


class FakeLedger:
    """In-memory stand-in for LotteryLedger."""

    def __init__(
        self,
        rounds: Optional[List[Round]] = None,
        purchase_window: int = 500,
        fail_reads: bool = False,
        fail_writes: bool = False,
        prize_counts: Optional[Dict[int, int]] = None,
    ) -> None:
        rounds = rounds or [make_round()]
        self.rounds = {r.round_id: r for r in rounds}
        self.round_id = max(self.rounds)
        self.window = purchase_window
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.prize_vault = FakeVault(prize_counts or {})
        self.purchases: List[Tuple[int, bytes, int, int]] = []
        self.transitions: List[Tuple] = []
        self.closed = False

    def _check_read(self) -> None:
        if self.fail_reads:
            raise RpcError({"code": -32000, "message": "node unavailable"})

    def current_round_id(self) -> int:
        self._check_read()
        return self.round_id

    def get_round(self, round_id: int) -> Round:
        self._check_read()
        return self.rounds[round_id]

    def purchase_window(self) -> int:
        self._check_read()
        return self.window

    def _receipt(self) -> TxReceipt:
        if self.fail_writes:
            raise ExecutionFailure("Transaction reverted: 0xbad")
        return TxReceipt(tx_hash="0x" + "ab" * 32, status=1, block_number=10, gas_used=21000)

    def execute_marketplace_purchase(
        self, round_id: int, calldata: bytes, native_price: int, max_spend: int
    ) -> TxReceipt:
        receipt = self._receipt()
        self.purchases.append((round_id, calldata, native_price, max_spend))
        return receipt

    def finalize_round(self, round_id: int) -> TxReceipt:
        receipt = self._receipt()
        self.transitions.append(("finalize", round_id))
        self.rounds[round_id] = dataclasses.replace(self.rounds[round_id], finalized=True)
        return receipt

    def draw_winners(self, round_id: int, batch_size: int = 0) -> TxReceipt:
        receipt = self._receipt()
        self.transitions.append(("draw", round_id, batch_size))
        r = self.rounds[round_id]
        total = self.prize_vault.round_prize_count(round_id)
        drawn = total if batch_size == 0 else min(total, r.winners_drawn + batch_size)
        self.rounds[round_id] = dataclasses.replace(r, winners_drawn=drawn)
        return receipt

    def start_next_round(self) -> TxReceipt:
        receipt = self._receipt()
        self.transitions.append(("start",))
        prev = self.rounds[self.round_id]
        self.round_id += 1
        self.rounds[self.round_id] = make_round(
            round_id=self.round_id, start=prev.end, end=prev.end + 1000
        )
        return receipt

    def close(self) -> None:
        self.closed = True


class RecordingTaskSource:
    def __init__(self, tasks: Optional[Dict[int, PurchaseTask]] = None) -> None:
        self.tasks = tasks or {}
        self.taken: List[int] = []

    def take(self, chain_id: int) -> Optional[PurchaseTask]:
        self.taken.append(chain_id)
        return self.tasks.get(chain_id)
