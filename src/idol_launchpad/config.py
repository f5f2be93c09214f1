"""
Deployment configuration.

The configuration is read once at process start and passed explicitly to every
component; nothing else in the package touches `os.environ`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from idol_launchpad.constants import (
    CLI_TIMEOUT_SECONDS,
    COMPILE_TIMEOUT_SECONDS,
    DEFAULT_BONDING_CURVE_MODULE,
    DEFAULT_CLOCK_ID,
    DEFAULT_GAS_BUDGET,
    DEFAULT_IMAGE_URL,
    DEFAULT_NETWORK,
    DEFAULT_PORT,
    DEFAULT_QUOTE_COIN_TYPE,
    DEFAULT_SUI_BIN,
    NETWORK_RPC_URLS,
    RPC_REQUEST_TIMEOUT_SECONDS,
)
from idol_launchpad.errors import InvalidConfigError
from idol_launchpad.utils import is_object_id

REQUIRED_OBJECT_VARS = (
    "FACTORY_PACKAGE_ID",
    "IAO_CONFIG_ID",
    "IAO_REGISTRY_ID",
    "POOLS_CONFIG_ID",
    "POOLS_REGISTRY_ID",
    "CETUS_GLOBAL_CONFIG_ID",
    "CETUS_POOLS_ID",
)


def load_dotenv(path: Path) -> dict[str, str]:
    """
    Minimal .env loader:
    - supports KEY=VALUE and `export KEY=VALUE`
    - strips surrounding quotes
    - ignores blank lines and `#` comments
    - does not expand variables
    """
    out: dict[str, str] = {}
    if not path.exists():
        return out

    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export ") :]
        k, v = line.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            continue
        if len(v) >= 2 and ((v[0] == v[-1] == '"') or (v[0] == v[-1] == "'")):
            v = v[1:-1]
        out[k] = v
    return out


def parse_network(value: str | None) -> str:
    v = (value or "").strip().lower()
    return v if v in NETWORK_RPC_URLS else DEFAULT_NETWORK


@dataclass(frozen=True)
class LaunchpadConfig:
    factory_package_id: str
    iao_config_id: str
    iao_registry_id: str
    pools_config_id: str
    pools_registry_id: str
    cetus_global_config_id: str
    cetus_pools_id: str
    network: str = DEFAULT_NETWORK
    rpc_url: str = NETWORK_RPC_URLS[DEFAULT_NETWORK]
    sui_bin: str = DEFAULT_SUI_BIN
    sui_client_config: str | None = None
    signer_address: str | None = None
    clock_id: str = DEFAULT_CLOCK_ID
    pools_package_id: str | None = None
    bonding_curve_module: str = DEFAULT_BONDING_CURVE_MODULE
    bonding_curve_global_config_id: str | None = None
    quote_coin_type: str = DEFAULT_QUOTE_COIN_TYPE
    iao_admin_cap_id: str | None = None
    default_image_url: str = DEFAULT_IMAGE_URL
    port: int = DEFAULT_PORT
    journal_dir: Path | None = None
    gas_budget: int = DEFAULT_GAS_BUDGET
    compile_timeout_s: float = COMPILE_TIMEOUT_SECONDS
    cli_timeout_s: float = CLI_TIMEOUT_SECONDS
    rpc_timeout_s: float = RPC_REQUEST_TIMEOUT_SECONDS

    @property
    def curve_config_id(self) -> str:
        """Global config object passed to bonding-curve reads."""
        return self.bonding_curve_global_config_id or self.pools_config_id

    def require_pools_package(self) -> str:
        if not self.pools_package_id:
            raise InvalidConfigError("POOLS_PACKAGE_ID", "not configured")
        return self.pools_package_id

    def require_admin_cap(self) -> str:
        if not self.iao_admin_cap_id:
            raise InvalidConfigError("IAO_ADMIN_CAP_ID", "not configured")
        return self.iao_admin_cap_id

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> LaunchpadConfig:
        def get(key: str) -> str | None:
            val = environ.get(key)
            if val is None:
                return None
            val = val.strip()
            return val or None

        def object_id(key: str, *, required: bool) -> str | None:
            val = get(key)
            if val is None:
                if required:
                    raise InvalidConfigError(key, "missing or empty")
                return None
            if not is_object_id(val):
                raise InvalidConfigError(key, f"not a valid object id: {val}")
            return val

        def number(key: str, default: float, kind: type) -> float:
            val = get(key)
            if val is None:
                return default
            try:
                parsed = kind(val)
            except ValueError:
                raise InvalidConfigError(key, f"must be a number, got {val!r}")
            if parsed <= 0:
                raise InvalidConfigError(key, f"must be positive, got {val!r}")
            return parsed

        required = {key: object_id(key, required=True) for key in REQUIRED_OBJECT_VARS}

        network = parse_network(get("SUI_NETWORK"))
        signer = get("SUI_SIGNER_ADDRESS")
        if signer is not None and not is_object_id(signer):
            raise InvalidConfigError("SUI_SIGNER_ADDRESS", f"invalid Sui address format: {signer}")

        journal_dir = get("LAUNCHPAD_JOURNAL_DIR")

        return cls(
            factory_package_id=required["FACTORY_PACKAGE_ID"],
            iao_config_id=required["IAO_CONFIG_ID"],
            iao_registry_id=required["IAO_REGISTRY_ID"],
            pools_config_id=required["POOLS_CONFIG_ID"],
            pools_registry_id=required["POOLS_REGISTRY_ID"],
            cetus_global_config_id=required["CETUS_GLOBAL_CONFIG_ID"],
            cetus_pools_id=required["CETUS_POOLS_ID"],
            network=network,
            rpc_url=get("SUI_RPC_URL") or NETWORK_RPC_URLS[network],
            sui_bin=get("SUI_BIN") or DEFAULT_SUI_BIN,
            sui_client_config=get("SUI_CLIENT_CONFIG"),
            signer_address=signer,
            clock_id=object_id("CLOCK_ID", required=False) or DEFAULT_CLOCK_ID,
            pools_package_id=object_id("POOLS_PACKAGE_ID", required=False),
            bonding_curve_module=get("BONDING_CURVE_MODULE") or DEFAULT_BONDING_CURVE_MODULE,
            bonding_curve_global_config_id=object_id("BONDING_CURVE_GLOBAL_CONFIG_ID", required=False),
            quote_coin_type=get("COINX_TYPE") or DEFAULT_QUOTE_COIN_TYPE,
            iao_admin_cap_id=object_id("IAO_ADMIN_CAP_ID", required=False),
            default_image_url=get("DEFAULT_IMAGE_URL") or DEFAULT_IMAGE_URL,
            port=int(number("PORT", DEFAULT_PORT, int)),
            journal_dir=Path(journal_dir) if journal_dir else None,
            gas_budget=int(number("LAUNCHPAD_GAS_BUDGET", DEFAULT_GAS_BUDGET, int)),
            compile_timeout_s=number("LAUNCHPAD_COMPILE_TIMEOUT_S", COMPILE_TIMEOUT_SECONDS, float),
            cli_timeout_s=number("LAUNCHPAD_CLI_TIMEOUT_S", CLI_TIMEOUT_SECONDS, float),
            rpc_timeout_s=number("LAUNCHPAD_RPC_TIMEOUT_S", RPC_REQUEST_TIMEOUT_SECONDS, float),
        )


def load_config(env_file: Path | None = None, environ: Mapping[str, str] | None = None) -> LaunchpadConfig:
    """
    Build the configuration from a .env file overlaid by the process environment.

    Variables set in the process environment win over the file.
    """
    merged: dict[str, str] = {}
    if env_file is not None:
        merged.update(load_dotenv(env_file))
    merged.update(os.environ if environ is None else environ)
    return LaunchpadConfig.from_env(merged)
