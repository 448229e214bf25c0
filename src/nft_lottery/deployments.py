from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from eth_utils import is_address, to_checksum_address

from .errors import ConfigurationMissing


@dataclass(frozen=True)
class ChainDeployment:
    name: str
    chain_id: int
    lottery: str
    prize_vault: str
    collection_allowlist: Optional[str] = None
    token_allowlist: Optional[str] = None
    seaport_executor: Optional[str] = None
    uniswap_v3_executor: Optional[str] = None


def _address(raw: Dict[str, Any], key: str, required: bool) -> Optional[str]:
    value = raw.get(key)
    if value in (None, ""):
        if required:
            raise ConfigurationMissing(f"Deployment is missing '{key}'")
        return None
    if not isinstance(value, str) or not is_address(value):
        raise ConfigurationMissing(f"Deployment field '{key}' is not an address: {value!r}")
    return to_checksum_address(value)


def parse_deployment(name: str, raw: Dict[str, Any]) -> ChainDeployment:
    if not isinstance(raw, dict):
        raise ConfigurationMissing(f"Deployment {name}: expected a JSON object")
    try:
        chain_id = int(raw["chainId"])
    except (KeyError, TypeError, ValueError):
        raise ConfigurationMissing(f"Deployment {name}: missing or invalid chainId")

    return ChainDeployment(
        name=name,
        chain_id=chain_id,
        lottery=_address(raw, "lottery", required=True),
        prize_vault=_address(raw, "prizeVault", required=True),
        collection_allowlist=_address(raw, "collectionAllowlist", required=False),
        token_allowlist=_address(raw, "tokenAllowlist", required=False),
        seaport_executor=_address(raw, "seaportExecutor", required=False),
        uniswap_v3_executor=_address(raw, "uniswapV3Executor", required=False),
    )


def load_deployment(deployments_dir: str, name: str) -> ChainDeployment:
    """
    Load <deployments_dir>/<name>.json, e.g.
        {"chainId": 8453, "lottery": "0x...", "prizeVault": "0x...",
         "collectionAllowlist": "0x..."}
    """
    path = os.path.join(deployments_dir, f"{name}.json")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        raise ConfigurationMissing(f"No deployment record at {path}")
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationMissing(f"Unreadable deployment record {path}: {e}")
    return parse_deployment(name, raw)
