"""
Centralized constants for idol-launchpad.

Single-source-of-truth defaults for values shared by the launch pipelines,
the read adapters and the event aggregator. Runtime configuration that varies
per deployment (object ids, network) lives in `idol_launchpad.config`.
"""

from __future__ import annotations

# Public fullnodes per network. SUI_RPC_URL overrides these.
NETWORK_RPC_URLS = {
    "mainnet": "https://fullnode.mainnet.sui.io:443",
    "testnet": "https://fullnode.testnet.sui.io:443",
    "devnet": "https://fullnode.devnet.sui.io:443",
    "localnet": "http://127.0.0.1:9000",
}
DEFAULT_NETWORK = "testnet"

DEFAULT_SUI_BIN = "sui"
DEFAULT_CLOCK_ID = "0x6"
DEFAULT_QUOTE_COIN_TYPE = "0x2::sui::SUI"
DEFAULT_BONDING_CURVE_MODULE = "bonding_curve"
DEFAULT_IMAGE_URL = "https://idol.fun/default-icon.png"
DEFAULT_PORT = 3000

# =============================================================================
# Timeouts (seconds)
# =============================================================================

COMPILE_TIMEOUT_SECONDS = 300.0
CLI_TIMEOUT_SECONDS = 120.0
RPC_REQUEST_TIMEOUT_SECONDS = 30.0
HEALTH_CHECK_TIMEOUT_SECONDS = 5.0
TOOLING_CHECK_TIMEOUT_SECONDS = 10.0

# Object-readiness polling after a publish
OBJECT_READY_TIMEOUT_SECONDS = 15.0
OBJECT_READY_INTERVAL_SECONDS = 0.5

# Indexing confirmation after local execution
TX_INDEX_TIMEOUT_SECONDS = 60.0
TX_INDEX_INTERVAL_SECONDS = 1.0

# =============================================================================
# Gas and amounts
# =============================================================================

# 1 SUI = 10^9 MIST
DEFAULT_GAS_BUDGET = 100_000_000
INITIAL_LIQUIDITY_MIST = 1_000_000_000

SUI_DECIMALS = 9
VOLUME_DECIMALS = 6
MARKET_CAP_DECIMALS = 9

# =============================================================================
# On-chain names
# =============================================================================

FACTORY_MODULE = "factory"
LAUNCH_FUNCTION = "launch_idol"
REGISTRY_MODULE = "registry"
GRADUATE_FUNCTION = "graduate_admin"
TRADE_EVENT_NAME = "TradeEvent"

PRICE_FUNCTION = "get_marginal_price"
SUPPLY_FUNCTION = "get_current_supply"
RESERVE_FUNCTION = "get_curve_liquidity_reserve"
STATE_FUNCTION = "get_curve_state"
CHECK_LEVEL_FUNCTION = "check_and_update_level"

# Substring of a dry-run abort raised by the factory allow-list check
ALLOWLIST_ABORT_MARKER = "::config::is_allowed"

DEFAULT_EVENT_LIMIT = 100
MAX_EVENT_LIMIT = 1000
