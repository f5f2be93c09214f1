"""
Read-only bonding-curve queries.

Each query dev-inspects `<pools>::<bonding_curve>::<fn><Quote, Coin>(config)`
and decodes the first return value. Nothing here mutates state.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from decimal import Decimal, localcontext
from typing import Any

from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.constants import (
    MARKET_CAP_DECIMALS,
    PRICE_FUNCTION,
    RESERVE_FUNCTION,
    STATE_FUNCTION,
    SUI_DECIMALS,
    SUPPLY_FUNCTION,
)
from idol_launchpad.decode import decode_curve_state, decode_u64, first_return_bytes
from idol_launchpad.errors import LaunchpadError, QueryDecodeError, QueryEmptyResultError
from idol_launchpad.ledger import LedgerClient, simulation_status
from idol_launchpad.ptb import ObjectArg, TransactionPlan

logger = logging.getLogger(__name__)

_SCALE = Decimal(10) ** SUI_DECIMALS
_QUANTUM = Decimal(1).scaleb(-MARKET_CAP_DECIMALS)
# u64 x u64 with 18 fractional digits overflows the default 28-digit context
_PRECISION = 80


def _fixed(value: Decimal) -> str:
    return format(value.quantize(_QUANTUM), "f")


@dataclass(frozen=True)
class MarketCap:
    coin_type: str
    price: str
    circulating_supply: str
    market_cap: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "coinType": self.coin_type,
            "price": self.price,
            "circulatingSupply": self.circulating_supply,
            "marketCap": self.market_cap,
        }


def compute_market_cap(coin_type: str, raw_price: int, raw_supply: int) -> MarketCap:
    """Price (MIST per unit) and supply are both scaled by 10^9; the product is in SUI."""
    with localcontext(prec=_PRECISION):
        price = Decimal(raw_price) / _SCALE
        supply = Decimal(raw_supply) / _SCALE
        return MarketCap(
            coin_type=coin_type,
            price=_fixed(price),
            circulating_supply=_fixed(supply),
            market_cap=_fixed(price * supply),
        )


class CurveQueries:
    def __init__(self, ledger: LedgerClient, config: LaunchpadConfig) -> None:
        self.ledger = ledger
        self.config = config

    def build_plan(self, function: str, coin_type: str) -> TransactionPlan:
        c = self.config
        plan = TransactionPlan(gas_budget=c.gas_budget)
        plan.move_call(
            f"{c.require_pools_package()}::{c.bonding_curve_module}::{function}",
            type_arguments=[c.quote_coin_type, coin_type],
            arguments=[ObjectArg(c.curve_config_id)],
        )
        return plan

    async def inspect(self, function: str, coin_type: str) -> list[int]:
        """Dev-inspect `function` and return the bytes of its first return value."""
        result = await self.ledger.dev_inspect(self.build_plan(function, coin_type))
        results = result.get("results")
        return_values = None
        if isinstance(results, list) and results and isinstance(results[0], dict):
            return_values = results[0].get("returnValues")
        if not return_values:
            _, error = simulation_status(result)
            raise QueryEmptyResultError(function, error)
        try:
            return first_return_bytes(return_values)
        except ValueError as e:
            raise QueryDecodeError(function, str(e)) from e

    async def _u64(self, function: str, coin_type: str) -> int:
        raw = await self.inspect(function, coin_type)
        try:
            return decode_u64(raw)
        except ValueError as e:
            raise QueryDecodeError(function, str(e)) from e

    async def marginal_price(self, coin_type: str) -> int:
        return await self._u64(PRICE_FUNCTION, coin_type)

    async def current_supply(self, coin_type: str) -> int:
        return await self._u64(SUPPLY_FUNCTION, coin_type)

    async def liquidity_reserve(self, coin_type: str) -> int:
        return await self._u64(RESERVE_FUNCTION, coin_type)

    async def curve_state(self, coin_type: str) -> str:
        return decode_curve_state(await self.inspect(STATE_FUNCTION, coin_type))

    async def market_cap(self, coin_type: str) -> MarketCap:
        price = await self.marginal_price(coin_type)
        supply = await self.current_supply(coin_type)
        return compute_market_cap(coin_type, price, supply)

    async def _market_cap_entry(self, coin_type: str) -> dict[str, Any]:
        try:
            return (await self.market_cap(coin_type)).to_dict()
        except LaunchpadError as e:
            logger.warning(f"Market cap for {coin_type} failed: {e.message}")
            return {"coinType": coin_type, "error": e.message, "kind": e.kind}
        except Exception as e:
            logger.warning(f"Market cap for {coin_type} failed: {type(e).__name__}: {e}")
            return {"coinType": coin_type, "error": str(e) or "Failed to compute market cap", "kind": "unexpected"}

    async def market_caps(self, coin_types: list[str]) -> list[dict[str, Any]]:
        """One entry per input, in input order; a failing coin yields an error entry."""
        return list(await asyncio.gather(*(self._market_cap_entry(ct) for ct in coin_types)))
