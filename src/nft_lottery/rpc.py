from __future__ import annotations

import itertools
import time
from typing import Any, Dict, List, Optional

import httpx

from .project_constants import RECEIPT_POLL_INTERVAL


class RpcError(RuntimeError):
    """JSON-RPC level error returned by the node."""

    def __init__(self, error: Any) -> None:
        self.error = error
        message = error.get("message") if isinstance(error, dict) else error
        super().__init__(f"RPC error: {message}")


class RpcClient:
    def __init__(
        self,
        rpc_url: str,
        timeout_s: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.client = httpx.Client(timeout=timeout_s, transport=transport)
        self._ids = itertools.count(1)

    def close(self) -> None:
        self.client.close()

    def _post(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        resp = self.client.post(self.rpc_url, json=payload)
        if resp.is_error:
            # Error text must not include the URL.
            raise RpcError(f"HTTP {resp.status_code} from node")
        data = resp.json()
        if not isinstance(data, dict):
            raise RpcError(f"Unexpected {type(data).__name__} response to {method}")
        if "error" in data:
            raise RpcError(data["error"])
        return data.get("result")

    def call(self, to: str, data: str, block: str = "latest") -> str:
        """eth_call; returns the raw hex return data."""
        result = self._post("eth_call", [{"to": to, "data": data}, block])
        if not isinstance(result, str):
            raise RuntimeError(f"eth_call to {to} returned {result!r}")
        return result

    def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(self._post("eth_getTransactionCount", [address, block]), 16)

    def gas_price(self) -> int:
        return int(self._post("eth_gasPrice", []), 16)

    def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(self._post("eth_estimateGas", [tx]), 16)

    def send_raw_transaction(self, raw_tx: str) -> str:
        return self._post("eth_sendRawTransaction", [raw_tx])

    def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return self._post("eth_getTransactionReceipt", [tx_hash])

    def wait_for_receipt(
        self,
        tx_hash: str,
        timeout_s: float,
        poll_interval_s: float = RECEIPT_POLL_INTERVAL,
    ) -> Dict[str, Any]:
        """Polls until the transaction is mined or the timeout elapses."""
        deadline = time.monotonic() + timeout_s
        while True:
            receipt = self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            if time.monotonic() >= deadline:
                raise TimeoutError(f"No receipt for {tx_hash} after {timeout_s:.0f}s")
            time.sleep(poll_interval_s)
