"""
Deployment-wide defaults for the NFT lottery purchase bot.

Prices in tasks are ether-denominated strings; everything on the wire is wei.
"""

# Default deployment registry location (one <name>.json per chain)
DEPLOYMENTS_DIR = "deployments"

# Fallback task prices when a task omits them (ether)
DEFAULT_NATIVE_PRICE = "0.01"
DEFAULT_MAX_NATIVE_SPEND = "0.02"

# Scheduler timing (seconds)
DEFAULT_TICK_INTERVAL = 60.0
DEFAULT_TICK_BUDGET = 0.0  # 0 = no per-tick deadline
DEFAULT_RPC_TIMEOUT = 30.0
DEFAULT_RECEIPT_TIMEOUT = 180.0
RECEIPT_POLL_INTERVAL = 2.0

# Gas estimate headroom
DEFAULT_GAS_LIMIT_MULTIPLIER = 1.2

ZERO_ADDRESS = "0x" + "00" * 20
