from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigurationMissing
from .project_constants import (
    DEFAULT_GAS_LIMIT_MULTIPLIER,
    DEFAULT_RECEIPT_TIMEOUT,
    DEFAULT_RPC_TIMEOUT,
    DEFAULT_TICK_BUDGET,
    DEFAULT_TICK_INTERVAL,
    DEPLOYMENTS_DIR,
)

_RPC_KEY = re.compile(r"^RPC_(\d+)$")
_PK_KEY = re.compile(r"^PK_(\d+)$")


@dataclass(frozen=True)
class ChainCredentials:
    rpc_url: str
    private_key: str

    def __repr__(self) -> str:
        # Keep keys and api-keyed URLs out of logs and tracebacks.
        return "ChainCredentials(rpc_url=<redacted>, private_key=<redacted>)"


@dataclass(frozen=True)
class Settings:
    chains: Tuple[str, ...] = ()
    deployments_dir: str = DEPLOYMENTS_DIR
    rpc_urls: Mapping[int, str] = field(default_factory=dict, repr=False)
    private_keys: Mapping[int, str] = field(default_factory=dict, repr=False)
    next_task: Optional[str] = None
    task_queue_file: Optional[str] = None
    tick_interval_s: float = DEFAULT_TICK_INTERVAL
    tick_budget_s: float = DEFAULT_TICK_BUDGET
    rpc_timeout_s: float = DEFAULT_RPC_TIMEOUT
    receipt_timeout_s: float = DEFAULT_RECEIPT_TIMEOUT
    gas_limit_multiplier: float = DEFAULT_GAS_LIMIT_MULTIPLIER

    def credentials_for(self, chain_id: int) -> ChainCredentials:
        rpc_url = (self.rpc_urls.get(chain_id) or "").strip()
        private_key = (self.private_keys.get(chain_id) or "").strip()
        if not rpc_url:
            raise ConfigurationMissing(f"Missing RPC_{chain_id}")
        if not private_key:
            raise ConfigurationMissing(f"Missing PK_{chain_id}")
        return ChainCredentials(rpc_url=rpc_url, private_key=private_key)

    def rpc_url_for(self, chain_id: int) -> str:
        """Read-only commands only need the endpoint, not the key."""
        rpc_url = (self.rpc_urls.get(chain_id) or "").strip()
        if not rpc_url:
            raise ConfigurationMissing(f"Missing RPC_{chain_id}")
        return rpc_url

    @staticmethod
    def from_env(
        environ: Optional[Mapping[str, str]] = None,
        deployments_override: Optional[str] = None,
    ) -> "Settings":
        if environ is None:
            load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        rpc_urls: Dict[int, str] = {}
        private_keys: Dict[int, str] = {}
        for key, value in environ.items():
            m = _RPC_KEY.match(key)
            if m and value.strip():
                rpc_urls[int(m.group(1))] = value.strip()
                continue
            m = _PK_KEY.match(key)
            if m and value.strip():
                private_keys[int(m.group(1))] = value.strip()

        chains_raw = deployments_override
        if chains_raw is None:
            chains_raw = environ.get("DEPLOYMENTS", "")

        return Settings(
            chains=tuple(chains_raw.split()),
            deployments_dir=environ.get("DEPLOYMENTS_DIR", "").strip() or DEPLOYMENTS_DIR,
            rpc_urls=rpc_urls,
            private_keys=private_keys,
            next_task=environ.get("NEXT_TASK", "").strip() or None,
            task_queue_file=environ.get("TASK_QUEUE_FILE", "").strip() or None,
            tick_interval_s=_float(environ, "TICK_INTERVAL_SECONDS", DEFAULT_TICK_INTERVAL),
            tick_budget_s=_float(environ, "TICK_BUDGET_SECONDS", DEFAULT_TICK_BUDGET),
            rpc_timeout_s=_float(environ, "RPC_TIMEOUT_SECONDS", DEFAULT_RPC_TIMEOUT),
            receipt_timeout_s=_float(
                environ, "RECEIPT_TIMEOUT_SECONDS", DEFAULT_RECEIPT_TIMEOUT
            ),
            gas_limit_multiplier=_float(
                environ, "GAS_LIMIT_MULTIPLIER", DEFAULT_GAS_LIMIT_MULTIPLIER
            ),
        )


def _float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be a number, got {raw!r}")
