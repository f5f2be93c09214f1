"""Privileged and maintenance calls against the pools package."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.constants import CHECK_LEVEL_FUNCTION, GRADUATE_FUNCTION, REGISTRY_MODULE
from idol_launchpad.errors import InvalidRequestError
from idol_launchpad.ledger import LedgerClient, execute_confirmed
from idol_launchpad.ptb import ObjectArg, Pure, TransactionPlan
from idol_launchpad.register import validate_coin_type
from idol_launchpad.utils import is_object_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdminCallResult:
    digest: str
    events: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"digest": self.digest, "events": self.events}


def _require_id(value: str, field_name: str) -> str:
    if not is_object_id(value):
        raise InvalidRequestError(field_name, f"not a valid object id: {value!r}")
    return value


class AdminOperations:
    def __init__(self, ledger: LedgerClient, config: LaunchpadConfig) -> None:
        self.ledger = ledger
        self.config = config

    def graduate_plan(
        self, coin_type: str, bonding_curve_id: str, pool_id: str, quote_coin_type: str | None = None
    ) -> TransactionPlan:
        c = self.config
        validate_coin_type(coin_type)
        plan = TransactionPlan(gas_budget=c.gas_budget)
        plan.move_call(
            f"{c.require_pools_package()}::{REGISTRY_MODULE}::{GRADUATE_FUNCTION}",
            type_arguments=[quote_coin_type or c.quote_coin_type, coin_type],
            arguments=[
                ObjectArg(c.require_admin_cap()),
                ObjectArg(c.pools_registry_id),
                Pure(_require_id(bonding_curve_id, "bondingCurveId"), "id"),
                Pure(_require_id(pool_id, "poolId"), "id"),
                ObjectArg(c.clock_id),
            ],
        )
        return plan

    async def graduate(
        self, coin_type: str, bonding_curve_id: str, pool_id: str, quote_coin_type: str | None = None
    ) -> AdminCallResult:
        """Move a completed curve's liquidity to the DEX pool (admin cap required)."""
        plan = self.graduate_plan(coin_type, bonding_curve_id, pool_id, quote_coin_type)
        result = await execute_confirmed(self.ledger, plan, label=GRADUATE_FUNCTION)
        logger.info(f"Graduated curve {bonding_curve_id} for {coin_type}: {result['digest']}")
        return AdminCallResult(digest=result["digest"], events=_events_of(result))

    def check_level_plan(self, coin_type: str) -> TransactionPlan:
        c = self.config
        validate_coin_type(coin_type)
        plan = TransactionPlan(gas_budget=c.gas_budget)
        plan.move_call(
            f"{c.require_pools_package()}::{c.bonding_curve_module}::{CHECK_LEVEL_FUNCTION}",
            type_arguments=[c.quote_coin_type, coin_type],
            arguments=[ObjectArg(c.curve_config_id), ObjectArg(c.clock_id)],
        )
        return plan

    async def check_and_update_level(self, coin_type: str) -> AdminCallResult:
        plan = self.check_level_plan(coin_type)
        result = await execute_confirmed(self.ledger, plan, label=CHECK_LEVEL_FUNCTION)
        return AdminCallResult(digest=result["digest"], events=_events_of(result))


def _events_of(result: dict[str, Any]) -> list[dict[str, Any]]:
    events = result.get("events")
    return [e for e in events if isinstance(e, dict)] if isinstance(events, list) else []
