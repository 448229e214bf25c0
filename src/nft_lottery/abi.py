"""
Minimal ABI for the lottery, prize vault and allowlist contracts.

Only the functions the bot reads or writes are listed; calldata is built and
return data decoded with eth-abi so no full JSON ABI is needed.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from eth_abi import decode, encode
from eth_utils import decode_hex, encode_hex, function_signature_to_4byte_selector


@dataclass(frozen=True)
class AbiFunction:
    name: str
    inputs: Tuple[str, ...] = ()
    outputs: Tuple[str, ...] = ()

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode_call(self, *args: Any) -> str:
        if len(args) != len(self.inputs):
            raise ValueError(
                f"{self.signature} takes {len(self.inputs)} args, got {len(args)}"
            )
        return encode_hex(self.selector + encode(list(self.inputs), list(args)))

    def decode_result(self, data: str) -> Tuple[Any, ...]:
        raw = decode_hex(data)
        if not raw and self.outputs:
            # Calls to an address without code return 0x.
            raise ValueError(f"{self.signature} returned no data")
        return tuple(decode(list(self.outputs), raw))


# --- Lottery --------------------------------------------------------------
CURRENT_ROUND_ID = AbiFunction("currentRoundId", (), ("uint256",))
ROUNDS = AbiFunction(
    "rounds",
    ("uint256",),
    (
        "uint64",   # start
        "uint64",   # end
        "uint256",  # deposited
        "uint256",  # purchaseBudget
        "uint256",  # ownerAmount
        "bool",     # closed
        "bool",     # finalized
        "uint256",  # winnersDrawn
    ),
)
PURCHASE_WINDOW = AbiFunction("purchaseWindow", (), ("uint256",))
TICKET_PRICE = AbiFunction("ticketPrice", (), ("uint256",))
OWNER = AbiFunction("owner", (), ("address",))
TICKETS_OF = AbiFunction("ticketsOf", ("uint256", "address"), ("uint256",))

FINALIZE_ROUND = AbiFunction("finalizeRound", ("uint256",))
DRAW_WINNERS = AbiFunction("drawWinners", ("uint256", "uint256"))
START_NEXT_ROUND = AbiFunction("startNextRound")
# roundId, executor calldata, nativePrice, maxNativeSpend; payable
EXECUTE_MARKETPLACE_PURCHASE = AbiFunction(
    "executeSeaportBasicERC721", ("uint256", "bytes", "uint256", "uint256")
)

# --- Prize vault ----------------------------------------------------------
PRIZES = AbiFunction(
    "prizes",
    ("uint256",),
    (
        "uint8",    # kind
        "address",  # asset
        "uint256",  # tokenId
        "uint256",  # amount
        "uint256",  # roundId
        "bool",     # claimed
        "address",  # owner
    ),
)
PRIZES_LENGTH = AbiFunction("prizesLength", (), ("uint256",))
ROUND_PRIZE_COUNT = AbiFunction("roundPrizeCount", ("uint256",), ("uint256",))
PRIZE_INDEX_AT = AbiFunction("prizeIndexAt", ("uint256", "uint256"), ("uint256",))

# --- Allowlists -----------------------------------------------------------
IS_COLLECTION_ALLOWED = AbiFunction("isCollectionAllowed", ("address",), ("bool",))
IS_TOKEN_ALLOWED = AbiFunction("isTokenAllowed", ("address",), ("bool",))
