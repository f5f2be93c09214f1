"""
Registration pipeline: hand a freshly published coin to the idol factory.

`factory::launch_idol<Coin>` consumes the TreasuryCap, seeds the offering with
liquidity split off the gas coin and creates the IAO pool and bonding curve.
The call is dev-inspected first and only submitted if the simulation passes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.constants import ALLOWLIST_ABORT_MARKER, FACTORY_MODULE, INITIAL_LIQUIDITY_MIST, LAUNCH_FUNCTION
from idol_launchpad.effects import BONDING_CURVE, IAO_LP_CAP, IAO_POOL, coin_of, decode_changes, select
from idol_launchpad.errors import (
    ExtractionError,
    InvalidCoinTypeError,
    InvalidRequestError,
    NotAuthorizedError,
    PreflightMissingObjectError,
    SimulationAbortError,
)
from idol_launchpad.ledger import LedgerClient, execute_confirmed, simulation_status
from idol_launchpad.ptb import ObjectArg, Pure, TransactionPlan
from idol_launchpad.publish import PublishedToken
from idol_launchpad.template import LaunchParameters

logger = logging.getLogger(__name__)

COIN_TYPE_RE = re.compile(r"^0x[0-9a-f]{64}::[A-Za-z][A-Za-z0-9_]*::[A-Za-z][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class RegisteredAsset:
    digest: str
    pool_id: str
    bonding_curve_id: str
    lp_cap_id: str | None = None
    creator_tokens_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "digest": self.digest,
            "poolId": self.pool_id,
            "bondingCurveId": self.bonding_curve_id,
            "lpCapId": self.lp_cap_id,
            "creatorTokensId": self.creator_tokens_id,
        }


def validate_coin_type(coin_type: str) -> str:
    if not isinstance(coin_type, str) or not COIN_TYPE_RE.match(coin_type):
        raise InvalidCoinTypeError(str(coin_type))
    return coin_type


class RegistrationPipeline:
    def __init__(self, ledger: LedgerClient, config: LaunchpadConfig) -> None:
        self.ledger = ledger
        self.config = config

    def shared_objects(self) -> list[tuple[str, str]]:
        c = self.config
        return [
            ("IAO_CONFIG_ID", c.iao_config_id),
            ("IAO_REGISTRY_ID", c.iao_registry_id),
            ("POOLS_CONFIG_ID", c.pools_config_id),
            ("POOLS_REGISTRY_ID", c.pools_registry_id),
            ("CETUS_GLOBAL_CONFIG_ID", c.cetus_global_config_id),
            ("CETUS_POOLS_ID", c.cetus_pools_id),
            ("CLOCK_ID", c.clock_id),
        ]

    async def assert_object_exists(self, object_id: str, label: str) -> None:
        if not await self.ledger.get_object(object_id):
            raise PreflightMissingObjectError(label, object_id)

    def build_plan(self, token: PublishedToken, params: LaunchParameters) -> TransactionPlan:
        """The launch call; argument order follows `factory::launch_idol` exactly."""
        c = self.config
        try:
            name = Pure(params.name, "string")
            image_url = Pure(params.image_url or c.default_image_url, "string")
            total_supply = Pure(params.total_supply, "u64")
            fee_rate = Pure(params.fee_rate_bps, "u16")
        except ValueError as e:
            raise InvalidRequestError("createParams", str(e)) from e

        plan = TransactionPlan(gas_budget=c.gas_budget)
        initial_liquidity = plan.split_gas(INITIAL_LIQUIDITY_MIST, assign="initial_liquidity")
        plan.move_call(
            f"{c.factory_package_id}::{FACTORY_MODULE}::{LAUNCH_FUNCTION}",
            type_arguments=[token.coin_type],
            arguments=[
                name,
                image_url,
                total_supply,
                fee_rate,
                ObjectArg(token.treasury_cap_id),
                ObjectArg(c.iao_config_id),
                ObjectArg(c.iao_registry_id),
                ObjectArg(c.pools_config_id),
                ObjectArg(c.pools_registry_id),
                ObjectArg(c.cetus_global_config_id),
                ObjectArg(c.cetus_pools_id),
                initial_liquidity,
                ObjectArg(c.clock_id),
            ],
        )
        return plan

    async def simulate(self, plan: TransactionPlan) -> dict[str, Any]:
        sender = await self.ledger.signer_address()
        result = await self.ledger.dev_inspect(plan)
        status, error = simulation_status(result)
        if status == "failure":
            if error and ALLOWLIST_ABORT_MARKER in error:
                raise NotAuthorizedError(sender, error)
            raise SimulationAbortError(error)
        return result

    async def register(self, token: PublishedToken, params: LaunchParameters) -> RegisteredAsset:
        validate_coin_type(token.coin_type)

        await self.assert_object_exists(token.treasury_cap_id, "TreasuryCap")
        for label, object_id in self.shared_objects():
            await self.assert_object_exists(object_id, label)

        plan = self.build_plan(token, params)
        await self.simulate(plan)
        result = await execute_confirmed(self.ledger, plan, label="launch_idol")
        return extract_registered(result, token.coin_type)


def extract_registered(result: dict[str, Any], coin_type: str) -> RegisteredAsset:
    digest = result.get("digest")
    changes = decode_changes(result)

    pools = select(changes, IAO_POOL)
    if not pools:
        logger.error(f"Failed to find Pool object in transaction results: {result}")
        raise ExtractionError("IAO pool object", digest, result)
    curves = select(changes, BONDING_CURVE)
    if not curves:
        logger.error(f"Failed to find Bonding Curve object in transaction results: {result}")
        raise ExtractionError("bonding curve object", digest, result)

    lp_caps = select(changes, IAO_LP_CAP)
    creator_coins = select(changes, coin_of(coin_type))
    return RegisteredAsset(
        digest=str(digest),
        pool_id=str(pools[0].object_id),
        bonding_curve_id=str(curves[0].object_id),
        lp_cap_id=lp_caps[0].object_id if lp_caps else None,
        creator_tokens_id=creator_coins[0].object_id if creator_coins else None,
    )
