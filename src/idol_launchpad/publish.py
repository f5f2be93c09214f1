"""
Publish pipeline: generated Move coin package -> on-chain package + treasury cap.

Steps: check the Sui CLI, generate the module, build it in a scoped temporary
workspace, publish the compiled bytecode (the upgrade cap goes to the signer),
confirm execution and indexing, pull the package id / TreasuryCap / CoinMetadata out of
the object changes, then wait for both objects to be readable.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from idol_launchpad.compiler import MoveCompiler, package_workspace
from idol_launchpad.constants import DEFAULT_GAS_BUDGET, OBJECT_READY_INTERVAL_SECONDS, OBJECT_READY_TIMEOUT_SECONDS
from idol_launchpad.effects import COIN_METADATA, ChangeKind, TypePattern, decode_changes, published_packages, select
from idol_launchpad.errors import ExtractionError, InvalidRequestError
from idol_launchpad.ledger import LedgerClient, confirm_execution
from idol_launchpad.template import GeneratedModule, LaunchParameters, generate_module
from idol_launchpad.utils import normalize_address
from idol_launchpad.waiter import wait_for_object

logger = logging.getLogger(__name__)

_OWNED_KINDS = frozenset({ChangeKind.CREATED, ChangeKind.TRANSFERRED})

_WIRE_NAMES = {
    "package_id": "packageId",
    "treasury_cap_id": "treasuryCapId",
    "coin_metadata_id": "coinMetadataId",
    "module_name": "moduleName",
    "struct_name": "structName",
    "coin_type": "coinType",
    "digest": "digest",
}


@dataclass(frozen=True)
class PublishedToken:
    package_id: str
    treasury_cap_id: str
    coin_metadata_id: str
    module_name: str
    struct_name: str
    coin_type: str
    digest: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {_WIRE_NAMES[k]: v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, raw: Any) -> PublishedToken:
        if not isinstance(raw, dict):
            raise InvalidRequestError("token", "must be a JSON object")
        values = {}
        for attr, wire in _WIRE_NAMES.items():
            val = raw.get(wire, raw.get(attr))
            if val is None and attr != "digest":
                raise InvalidRequestError(f"token.{wire}", "missing")
            values[attr] = str(val) if val is not None else None
        return cls(**values)


def _exactly_one(found: list[str], what: str, digest: str | None, raw: dict[str, Any]) -> str:
    if len(found) != 1:
        logger.error(f"Failed to extract {what} from publish transaction {digest}: {len(found)} match(es)")
        raise ExtractionError(f"{what} ({len(found)} matches, expected 1)", digest, raw)
    return found[0]


def extract_published(result: dict[str, Any], generated: GeneratedModule) -> PublishedToken:
    """Locate the package id, TreasuryCap and CoinMetadata in a publish response."""
    digest = result.get("digest")
    changes = decode_changes(result)

    package_id = normalize_address(_exactly_one(published_packages(changes), "published package", digest, result))
    coin_type = f"{package_id}::{generated.module_name}::{generated.struct_name}"

    cap_pattern = TypePattern(module="coin", name="TreasuryCap", address="0x2", type_arg=coin_type)
    caps = [c.object_id for c in select(changes, cap_pattern, _OWNED_KINDS)]
    metas = [c.object_id for c in select(changes, COIN_METADATA, _OWNED_KINDS)]

    return PublishedToken(
        package_id=package_id,
        treasury_cap_id=_exactly_one(caps, "TreasuryCap", digest, result),
        coin_metadata_id=_exactly_one(metas, "CoinMetadata", digest, result),
        module_name=generated.module_name,
        struct_name=generated.struct_name,
        coin_type=coin_type,
        digest=digest,
    )


class PublishPipeline:
    def __init__(
        self,
        ledger: LedgerClient,
        compiler: MoveCompiler,
        *,
        gas_budget: int = DEFAULT_GAS_BUDGET,
        ready_timeout_s: float = OBJECT_READY_TIMEOUT_SECONDS,
        ready_interval_s: float = OBJECT_READY_INTERVAL_SECONDS,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.ledger = ledger
        self.compiler = compiler
        self.gas_budget = gas_budget
        self.ready_timeout_s = ready_timeout_s
        self.ready_interval_s = ready_interval_s
        self._clock = clock

    async def publish(self, params: LaunchParameters) -> PublishedToken:
        await self.compiler.ensure_available()

        try:
            generated = generate_module(params, timestamp_ns=self._clock())
        except ValueError as e:
            raise InvalidRequestError("createParams", str(e)) from e
        sender = await self.ledger.signer_address()

        async with package_workspace(generated) as workspace:
            compiled = await self.compiler.build(workspace, module_name=generated.module_name)

        logger.info(f"Publishing {generated.module_name} from {sender}...")
        submitted = await self.ledger.publish(compiled.modules, compiled.dependencies, gas_budget=self.gas_budget)
        result = await confirm_execution(self.ledger, submitted, label="publish")

        token = extract_published(result, generated)
        logger.info(f"coinType = {token.coin_type}")
        logger.info(f"treasuryCapId = {token.treasury_cap_id}")
        logger.info(f"coinMetadataId = {token.coin_metadata_id}")

        await wait_for_object(
            self.ledger,
            token.treasury_cap_id,
            "TreasuryCap",
            timeout_s=self.ready_timeout_s,
            interval_s=self.ready_interval_s,
        )
        await wait_for_object(
            self.ledger,
            token.coin_metadata_id,
            "CoinMetadata",
            timeout_s=self.ready_timeout_s,
            interval_s=self.ready_interval_s,
        )
        return token
