from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_utils import encode_hex, to_checksum_address

from . import abi
from .deployments import ChainDeployment
from .errors import ConfigurationMissing, ExecutionFailure
from .prizes import Prize
from .rounds import Round
from .rpc import RpcClient

log = logging.getLogger("ledger")


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: int
    block_number: Optional[int]
    gas_used: Optional[int]

    @classmethod
    def from_rpc(cls, tx_hash: str, receipt: Dict[str, Any]) -> "TxReceipt":
        def _int(key: str) -> Optional[int]:
            value = receipt.get(key)
            return int(value, 16) if isinstance(value, str) else None

        return cls(
            tx_hash=tx_hash,
            status=_int("status") or 0,
            block_number=_int("blockNumber"),
            gas_used=_int("gasUsed"),
        )


class ContractReader:
    def __init__(self, rpc: RpcClient, address: str) -> None:
        self.rpc = rpc
        self.address = to_checksum_address(address)

    def _read(self, fn: abi.AbiFunction, *args: Any) -> tuple:
        return fn.decode_result(self.rpc.call(self.address, fn.encode_call(*args)))

    def _read_one(self, fn: abi.AbiFunction, *args: Any) -> Any:
        return self._read(fn, *args)[0]


class LotteryLedger(ContractReader):
    """Reads and writes against one chain's lottery contract."""

    def __init__(
        self,
        rpc: RpcClient,
        deployment: ChainDeployment,
        account: Optional[LocalAccount] = None,
        gas_limit_multiplier: float = 1.2,
        receipt_timeout_s: float = 180.0,
    ) -> None:
        super().__init__(rpc, deployment.lottery)
        self.deployment = deployment
        self.account = account
        self.gas_limit_multiplier = gas_limit_multiplier
        self.receipt_timeout_s = receipt_timeout_s

    @classmethod
    def connect(
        cls,
        deployment: ChainDeployment,
        rpc_url: str,
        private_key: Optional[str] = None,
        timeout_s: float = 30.0,
        gas_limit_multiplier: float = 1.2,
        receipt_timeout_s: float = 180.0,
    ) -> "LotteryLedger":
        account = None
        if private_key:
            try:
                account = Account.from_key(private_key)
            except Exception as e:
                raise ConfigurationMissing(
                    f"PK_{deployment.chain_id} is not a usable private key: {type(e).__name__}"
                )
        return cls(
            RpcClient(rpc_url, timeout_s=timeout_s),
            deployment,
            account=account,
            gas_limit_multiplier=gas_limit_multiplier,
            receipt_timeout_s=receipt_timeout_s,
        )

    def close(self) -> None:
        self.rpc.close()

    @property
    def prize_vault(self) -> "PrizeVault":
        return PrizeVault(self.rpc, self.deployment.prize_vault)

    # -- reads --------------------------------------------------------------
    def current_round_id(self) -> int:
        return int(self._read_one(abi.CURRENT_ROUND_ID))

    def get_round(self, round_id: int) -> Round:
        return Round.from_tuple(round_id, self._read(abi.ROUNDS, round_id))

    def purchase_window(self) -> int:
        return int(self._read_one(abi.PURCHASE_WINDOW))

    def ticket_price(self) -> int:
        return int(self._read_one(abi.TICKET_PRICE))

    def owner(self) -> str:
        return to_checksum_address(self._read_one(abi.OWNER))

    def tickets_of(self, round_id: int, address: str) -> int:
        return int(self._read_one(abi.TICKETS_OF, round_id, to_checksum_address(address)))

    def is_collection_allowed(self, collection: str) -> Optional[bool]:
        if not self.deployment.collection_allowlist:
            return None
        reader = ContractReader(self.rpc, self.deployment.collection_allowlist)
        return bool(reader._read_one(abi.IS_COLLECTION_ALLOWED, to_checksum_address(collection)))

    def is_token_allowed(self, token: str) -> Optional[bool]:
        if not self.deployment.token_allowlist:
            return None
        reader = ContractReader(self.rpc, self.deployment.token_allowlist)
        return bool(reader._read_one(abi.IS_TOKEN_ALLOWED, to_checksum_address(token)))

    # -- writes -------------------------------------------------------------
    def execute_marketplace_purchase(
        self, round_id: int, calldata: bytes, native_price: int, max_spend: int
    ) -> TxReceipt:
        data = abi.EXECUTE_MARKETPLACE_PURCHASE.encode_call(
            round_id, calldata, native_price, max_spend
        )
        return self._transact(data, value=native_price)

    def finalize_round(self, round_id: int) -> TxReceipt:
        return self._transact(abi.FINALIZE_ROUND.encode_call(round_id))

    def draw_winners(self, round_id: int, batch_size: int = 0) -> TxReceipt:
        return self._transact(abi.DRAW_WINNERS.encode_call(round_id, batch_size))

    def start_next_round(self) -> TxReceipt:
        return self._transact(abi.START_NEXT_ROUND.encode_call())

    def _transact(self, data: str, value: int = 0) -> TxReceipt:
        if self.account is None:
            raise ConfigurationMissing(
                f"PK_{self.deployment.chain_id} is required to send transactions"
            )
        sender = self.account.address
        call = {"from": sender, "to": self.address, "value": hex(value), "data": data}

        try:
            # estimateGas runs the call, so most reverts surface here unsent.
            gas = int(self.rpc.estimate_gas(call) * self.gas_limit_multiplier)
            tx = {
                "chainId": self.deployment.chain_id,
                "nonce": self.rpc.get_transaction_count(sender),
                "gasPrice": self.rpc.gas_price(),
                "gas": gas,
                "to": self.address,
                "value": value,
                "data": data,
            }
            signed = self.account.sign_transaction(tx)
            tx_hash = self.rpc.send_raw_transaction(encode_hex(signed.raw_transaction))
            log.info("Submitted %s on chain %d", tx_hash, self.deployment.chain_id)
            receipt = self.rpc.wait_for_receipt(tx_hash, timeout_s=self.receipt_timeout_s)
        except Exception as e:
            raise ExecutionFailure(f"Transaction failed: {e}") from e

        result = TxReceipt.from_rpc(tx_hash, receipt)
        if result.status != 1:
            raise ExecutionFailure(f"Transaction reverted: {tx_hash}")
        return result


class PrizeVault(ContractReader):
    def prizes_length(self) -> int:
        return int(self._read_one(abi.PRIZES_LENGTH))

    def prize(self, index: int) -> Prize:
        return Prize.from_tuple(index, self._read(abi.PRIZES, index))

    def round_prize_count(self, round_id: int) -> int:
        return int(self._read_one(abi.ROUND_PRIZE_COUNT, round_id))

    def prize_index_at(self, round_id: int, position: int) -> int:
        return int(self._read_one(abi.PRIZE_INDEX_AT, round_id, position))

    def round_prizes(self, round_id: int) -> List[Prize]:
        count = self.round_prize_count(round_id)
        return [self.prize(self.prize_index_at(round_id, i)) for i in range(count)]

    def all_prizes(self) -> List[Prize]:
        return [self.prize(i) for i in range(self.prizes_length())]
