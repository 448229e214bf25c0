from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Sequence

from .project_constants import ZERO_ADDRESS


class PrizeKind(IntEnum):
    ERC721 = 0
    ERC1155 = 1
    ERC20 = 2
    NATIVE = 3
    UNKNOWN = 255

    @classmethod
    def parse(cls, raw: int) -> "PrizeKind":
        try:
            return cls(int(raw))
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Prize:
    index: int
    kind: PrizeKind
    asset_address: str
    token_id: int
    amount: int
    round_id: int
    claimed: bool
    owner: str

    @classmethod
    def from_tuple(cls, index: int, fields: Sequence) -> "Prize":
        """Build from the 7-field `prizes(i)` return tuple."""
        kind, asset, token_id, amount, round_id, claimed, owner = fields
        return cls(
            index=int(index),
            kind=PrizeKind.parse(kind),
            asset_address=str(asset),
            token_id=int(token_id),
            amount=int(amount),
            round_id=int(round_id),
            claimed=bool(claimed),
            owner=str(owner),
        )

    @property
    def drawn(self) -> bool:
        return self.owner.lower() != ZERO_ADDRESS


def is_claimable_by(prize: Prize, address: str) -> bool:
    return prize.drawn and not prize.claimed and prize.owner.lower() == address.lower()
