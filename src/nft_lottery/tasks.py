from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from eth_utils import decode_hex, is_hex, to_wei

from .project_constants import DEFAULT_MAX_NATIVE_SPEND, DEFAULT_NATIVE_PRICE


@dataclass(frozen=True)
class PurchaseTask:
    target_calldata: bytes
    native_price: int  # wei
    max_native_spend: int  # wei

    @property
    def within_cap(self) -> bool:
        return self.native_price <= self.max_native_spend


def _ether(raw: Dict[str, Any], key: str, default: str) -> int:
    value = raw.get(key)
    if value in (None, ""):
        value = default
    try:
        wei = to_wei(str(value), "ether")
    except Exception as e:
        raise ValueError(f"Task field {key}={value!r} is not an ether amount: {e}")
    if wei < 0:
        raise ValueError(f"Task field {key} must not be negative")
    return int(wei)


def parse_task(raw: Dict[str, Any]) -> PurchaseTask:
    """
    Accepts the JSON task shape:
        {"calldata": "0x...", "nativePrice": "0.01", "maxNativeSpend": "0.02"}
    Prices are ether strings; missing ones fall back to the defaults.
    """
    if not isinstance(raw, dict):
        raise ValueError("Task must be a JSON object")
    calldata = raw.get("calldata")
    if not isinstance(calldata, str) or not is_hex(calldata) or len(calldata) <= 2:
        raise ValueError("Task is missing hex 'calldata'")
    return PurchaseTask(
        target_calldata=decode_hex(calldata),
        native_price=_ether(raw, "nativePrice", DEFAULT_NATIVE_PRICE),
        max_native_spend=_ether(raw, "maxNativeSpend", DEFAULT_MAX_NATIVE_SPEND),
    )


class TaskSource(Protocol):
    def take(self, chain_id: int) -> Optional[PurchaseTask]:
        ...


class StaticTaskSource:
    """One configured task handed to every chain on every tick."""

    def __init__(self, raw_json: Optional[str]) -> None:
        self.raw_json = raw_json

    def take(self, chain_id: int) -> Optional[PurchaseTask]:
        if not self.raw_json:
            return None
        try:
            raw = json.loads(self.raw_json)
        except json.JSONDecodeError as e:
            raise ValueError(f"NEXT_TASK is not valid JSON: {e}")
        return parse_task(raw)


class QueueFileTaskSource:
    """
    File-backed queue, keyed by chain id:
        {"8453": [{"calldata": "0x...", "nativePrice": "0.01"}, ...]}
    `take` pops the head task for the chain and rewrites the file, so a task
    is consumed whether or not the purchase that follows succeeds.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    def _load(self) -> Dict[str, List[Any]]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Task queue {self.path} must hold a JSON object")
        return data

    def _store(self, data: Dict[str, List[Any]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            os.unlink(tmp)
            raise

    def take(self, chain_id: int) -> Optional[PurchaseTask]:
        data = self._load()
        queue = data.get(str(chain_id)) or []
        if not queue:
            return None
        head, data[str(chain_id)] = queue[0], queue[1:]
        self._store(data)
        return parse_task(head)

    def pending(self, chain_id: int) -> int:
        return len(self._load().get(str(chain_id)) or [])
