from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx
from eth_abi.exceptions import DecodingError

from .errors import ReadFailure
from .rounds import Round, RoundPhase
from .rpc import RpcError


class RoundReader(Protocol):
    def current_round_id(self) -> int:
        ...

    def get_round(self, round_id: int) -> Round:
        ...

    def purchase_window(self) -> int:
        ...


@dataclass(frozen=True)
class RoundSnapshot:
    round_id: int
    round: Round
    purchase_window: int

    def phase(self, now: int) -> RoundPhase:
        return self.round.phase(self.purchase_window, now)


class RoundOracle:
    def __init__(self, ledger: RoundReader) -> None:
        self.ledger = ledger

    def read(self) -> RoundSnapshot:
        """
        Current round id, its Round record and the purchase window.
        Any transport, RPC or decoding problem comes back as ReadFailure.
        """
        try:
            round_id = self.ledger.current_round_id()
            current = self.ledger.get_round(round_id)
            window = self.ledger.purchase_window()
        except ReadFailure:
            raise
        except (httpx.HTTPError, RpcError, DecodingError, ValueError, RuntimeError) as e:
            raise ReadFailure(f"{type(e).__name__}: {e}") from e
        return RoundSnapshot(round_id=round_id, round=current, purchase_window=window)
