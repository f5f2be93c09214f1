"""
Shared pytest fixtures for launchpad tests.

This module provides:
- An in-memory ledger double recording every plan it is asked to run
- A compiler double that inspects the scoped build workspace
- A complete configuration with valid object ids
- Builders for the JSON shapes the Sui CLI and fullnode return
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from idol_launchpad.compiler import CompiledPackage
from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.errors import ToolingUnavailableError
from idol_launchpad.ptb import TransactionPlan

SIGNER = "0x" + "a" * 64
PACKAGE_ID = "0x" + "b" * 64
POOLS_PACKAGE_ID = "0x" + "c" * 64
TREASURY_CAP_ID = "0x" + "d1" * 32
COIN_METADATA_ID = "0x" + "d2" * 32
POOL_ID = "0x" + "e1" * 32
CURVE_ID = "0x" + "e2" * 32
LP_CAP_ID = "0x" + "e3" * 32
CREATOR_COIN_ID = "0x" + "e4" * 32
BYTECODE_PREFIX = "bytecode:"

CONFIG_ENV = {
    "FACTORY_PACKAGE_ID": "0xfac7",
    "IAO_CONFIG_ID": "0x101",
    "IAO_REGISTRY_ID": "0x102",
    "POOLS_CONFIG_ID": "0x103",
    "POOLS_REGISTRY_ID": "0x104",
    "CETUS_GLOBAL_CONFIG_ID": "0x105",
    "CETUS_POOLS_ID": "0x106",
    "POOLS_PACKAGE_ID": POOLS_PACKAGE_ID,
    "IAO_ADMIN_CAP_ID": "0x107",
}


def coin_type_for(module_name: str, package_id: str = PACKAGE_ID) -> str:
    return f"{package_id}::{module_name}::{module_name.upper()}"


def publish_response(coin_type: str, *, digest: str = "PubDigest111", package_id: str = PACKAGE_ID) -> dict[str, Any]:
    return {
        "digest": digest,
        "effects": {"status": {"status": "success"}},
        "objectChanges": [
            {"type": "published", "packageId": package_id, "modules": ["m"]},
            {"type": "created", "objectId": "0x" + "f" * 64, "objectType": "0x2::package::UpgradeCap"},
            {"type": "created", "objectId": TREASURY_CAP_ID, "objectType": f"0x2::coin::TreasuryCap<{coin_type}>"},
            {"type": "created", "objectId": COIN_METADATA_ID, "objectType": f"0x2::coin::CoinMetadata<{coin_type}>"},
        ],
    }


def launch_response(coin_type: str, *, digest: str = "LaunchDigest222") -> dict[str, Any]:
    return {
        "digest": digest,
        "effects": {"status": {"status": "success"}},
        "objectChanges": [
            {"type": "mutated", "objectId": "0x101", "objectType": "0x9::iao::Config"},
            {"type": "created", "objectId": POOL_ID, "objectType": f"0x9::iao::IAO<{coin_type}>"},
            {
                "type": "created",
                "objectId": CURVE_ID,
                "objectType": f"{POOLS_PACKAGE_ID}::bonding_curve::BondingCurve<0x2::sui::SUI, {coin_type}>",
            },
            {"type": "created", "objectId": LP_CAP_ID, "objectType": f"0x9::iao::LPCap<{coin_type}>"},
            {"type": "created", "objectId": CREATOR_COIN_ID, "objectType": f"0x2::coin::Coin<{coin_type}>"},
        ],
    }


def dev_inspect_ok(return_bytes: list[int] | None = None) -> dict[str, Any]:
    result: dict[str, Any] = {"effects": {"status": {"status": "success"}}}
    if return_bytes is not None:
        result["results"] = [{"returnValues": [[return_bytes, "u64"]]}]
    return result


def dev_inspect_abort(error: str) -> dict[str, Any]:
    return {"effects": {"status": {"status": "failure", "error": error}}, "error": error}


def trade_event(
    trader: str,
    *,
    is_buy: bool,
    x_amount: int = 0,
    y_amount: int = 0,
    curve_id: str = CURVE_ID,
    digest: str = "TxDigest",
) -> dict[str, Any]:
    return {
        "id": {"txDigest": digest, "eventSeq": "0"},
        "type": f"{POOLS_PACKAGE_ID}::bonding_curve::TradeEvent",
        "timestampMs": "1700000000000",
        "parsedJson": {
            "is_buy": is_buy,
            "x_amount": str(x_amount),
            "y_amount": str(y_amount),
            "fee_amount": "0",
            "trader": trader,
            "bonding_curve_id": curve_id,
        },
    }


def publish_responder(modules: list[str], dependencies: list[str]) -> dict[str, Any]:
    """Answer a publish of `FakeCompiler` output the way a healthy network would."""
    module = modules[0].removeprefix(BYTECODE_PREFIX)
    return publish_response(coin_type_for(module))


def chain_responder(plan: TransactionPlan) -> dict[str, Any]:
    """Answer a launch plan the way a healthy network would."""
    call = plan.move_calls()[0]
    return launch_response(call.type_arguments[0])


class FakeLedger:
    """In-memory ledger client. Every object id in `objects` resolves; everything else is missing."""

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.events: list[dict[str, Any]] = []
        self.events_error: Exception | None = None
        self.signer = SIGNER
        self.on_dev_inspect: Callable[[TransactionPlan], dict[str, Any]] = lambda plan: dev_inspect_ok()
        self.on_execute: Callable[[TransactionPlan], dict[str, Any]] = lambda plan: {"digest": "Digest0"}
        self.on_publish: Callable[[list[str], list[str]], dict[str, Any]] = publish_responder
        self.indexed: dict[str, dict[str, Any]] = {}
        self.dev_inspected: list[TransactionPlan] = []
        self.executed: list[TransactionPlan] = []
        self.published: list[tuple[list[str], list[str], int]] = []
        self.event_queries: list[tuple[str, int, bool]] = []
        self.lookups: list[str] = []

    def add_objects(self, *object_ids: str) -> None:
        for oid in object_ids:
            self.objects[oid] = {"objectId": oid, "version": "1"}

    async def get_object(self, object_id: str) -> dict[str, Any] | None:
        self.lookups.append(object_id)
        return self.objects.get(object_id)

    async def query_events(self, event_type: str, *, limit: int, descending: bool = True) -> list[dict[str, Any]]:
        self.event_queries.append((event_type, limit, descending))
        if self.events_error is not None:
            raise self.events_error
        return self.events[:limit]

    async def signer_address(self) -> str:
        return self.signer

    async def dev_inspect(self, plan: TransactionPlan) -> dict[str, Any]:
        self.dev_inspected.append(plan)
        return self.on_dev_inspect(plan)

    async def execute(self, plan: TransactionPlan) -> dict[str, Any]:
        self.executed.append(plan)
        return self.on_execute(plan)

    async def publish(self, modules: list[str], dependencies: list[str], *, gas_budget: int) -> dict[str, Any]:
        self.published.append((list(modules), list(dependencies), gas_budget))
        return self.on_publish(modules, dependencies)

    async def wait_for_transaction(self, digest: str) -> dict[str, Any]:
        return self.indexed.get(digest, {"digest": digest})


class FakeCompiler:
    """Records what the build step saw inside the temporary workspace."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.available = True
        self.workspaces: list[Path] = []
        self.sources: list[str] = []
        self.manifests: list[str] = []

    async def ensure_available(self) -> str:
        if not self.available:
            raise ToolingUnavailableError("sui", "FileNotFoundError: sui")
        return "sui 1.40.0"

    async def build(self, package_dir: Path, *, module_name: str) -> CompiledPackage:
        self.workspaces.append(package_dir)
        self.sources.append((package_dir / "sources" / f"{module_name}.move").read_text(encoding="utf-8"))
        self.manifests.append((package_dir / "Move.toml").read_text(encoding="utf-8"))
        if self.error is not None:
            raise self.error
        return CompiledPackage(modules=[f"{BYTECODE_PREFIX}{module_name}"], dependencies=["0x1", "0x2"])


@pytest.fixture
def config() -> LaunchpadConfig:
    return LaunchpadConfig.from_env(CONFIG_ENV)


@pytest.fixture
def ledger(config: LaunchpadConfig) -> FakeLedger:
    fake = FakeLedger()
    fake.add_objects(
        config.iao_config_id,
        config.iao_registry_id,
        config.pools_config_id,
        config.pools_registry_id,
        config.cetus_global_config_id,
        config.cetus_pools_id,
        config.clock_id,
    )
    return fake


@pytest.fixture
def compiler() -> FakeCompiler:
    return FakeCompiler()


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"
