"""
Trade-event aggregation.

Events come back newest-first from `suix_queryEvents`. Aggregates are computed
from scratch over the fetched window on every call; holder balances are
therefore approximate once a curve has more trades than the fetch limit.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.constants import (
    DEFAULT_EVENT_LIMIT,
    MAX_EVENT_LIMIT,
    SUI_DECIMALS,
    TRADE_EVENT_NAME,
    VOLUME_DECIMALS,
)
from idol_launchpad.ledger import LedgerClient
from idol_launchpad.utils import normalize_address

logger = logging.getLogger(__name__)

_VOLUME_SCALE = Decimal(10) ** SUI_DECIMALS
_VOLUME_QUANTUM = Decimal(1).scaleb(-VOLUME_DECIMALS)


@dataclass(frozen=True)
class TradeEvent:
    is_buy: bool
    x_amount: int
    y_amount: int
    fee_amount: int
    trader: str
    bonding_curve_id: str
    timestamp_ms: int | None = None
    tx_digest: str | None = None

    @classmethod
    def from_event(cls, raw: dict[str, Any]) -> TradeEvent:
        """Parse a `suix_queryEvents` item; raises ValueError on a malformed payload."""
        data = raw.get("parsedJson")
        if not isinstance(data, dict):
            raise ValueError("event has no parsedJson object")
        try:
            is_buy = data["is_buy"]
            if isinstance(is_buy, str):
                is_buy = is_buy.lower() == "true"
            ts = raw.get("timestampMs")
            event_id = raw.get("id") or {}
            return cls(
                is_buy=bool(is_buy),
                x_amount=int(data["x_amount"]),
                y_amount=int(data["y_amount"]),
                fee_amount=int(data.get("fee_amount") or 0),
                trader=str(data["trader"]),
                bonding_curve_id=str(data["bonding_curve_id"]),
                timestamp_ms=int(ts) if ts is not None else None,
                tx_digest=event_id.get("txDigest") if isinstance(event_id, dict) else None,
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"malformed trade event: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {
            "isBuy": self.is_buy,
            "xAmount": str(self.x_amount),
            "yAmount": str(self.y_amount),
            "feeAmount": str(self.fee_amount),
            "trader": self.trader,
            "bondingCurveId": self.bonding_curve_id,
            "timestampMs": self.timestamp_ms,
            "txDigest": self.tx_digest,
        }


@dataclass(frozen=True)
class EventQueryResult:
    """Outcome of an event fetch. `ok=False` means the query failed, not that there were no trades."""

    events: list[TradeEvent] = field(default_factory=list)
    ok: bool = True
    error: str | None = None

    def __iter__(self) -> Iterator[TradeEvent]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)


@dataclass(frozen=True)
class VolumeAggregate:
    total_volume: Decimal
    buy_volume: Decimal
    sell_volume: Decimal
    transaction_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalVolume": float(self.total_volume),
            "buyVolume": float(self.buy_volume),
            "sellVolume": float(self.sell_volume),
            "transactionCount": self.transaction_count,
        }


def _round_volume(value: Decimal) -> Decimal:
    return value.quantize(_VOLUME_QUANTUM, rounding=ROUND_HALF_UP)


def calculate_volume(events: Sequence[TradeEvent]) -> VolumeAggregate:
    """Sum base amounts (x_amount / 10^9) into buy, sell and total volume."""
    buy = Decimal(0)
    sell = Decimal(0)
    for event in events:
        amount = Decimal(event.x_amount) / _VOLUME_SCALE
        if event.is_buy:
            buy += amount
        else:
            sell += amount
    return VolumeAggregate(
        total_volume=_round_volume(buy + sell),
        buy_volume=_round_volume(buy),
        sell_volume=_round_volume(sell),
        transaction_count=len(events),
    )


def calculate_holders(events: Sequence[TradeEvent]) -> dict[str, int]:
    """
    Net token balance per trader, replayed oldest-first from a newest-first list.

    Buys add y_amount, sells subtract it; only strictly positive balances are
    returned. Amounts are raw integer units.
    """
    balances: dict[str, int] = {}
    for event in reversed(events):
        delta = event.y_amount if event.is_buy else -event.y_amount
        balances[event.trader] = balances.get(event.trader, 0) + delta
    return {trader: balance for trader, balance in balances.items() if balance > 0}


class EventAggregator:
    def __init__(self, ledger: LedgerClient, config: LaunchpadConfig) -> None:
        self.ledger = ledger
        self.config = config

    @property
    def event_type(self) -> str:
        c = self.config
        return f"{c.require_pools_package()}::{c.bonding_curve_module}::{TRADE_EVENT_NAME}"

    async def fetch_events(self, curve_id: str | None = None, limit: int = DEFAULT_EVENT_LIMIT) -> EventQueryResult:
        """
        Fetch up to `limit` trade events, newest-first, optionally for one curve.

        The curve filter is applied after fetching, so fewer than `limit` events
        may come back. Query failures are logged and reported as `ok=False` with
        no events; they are never raised.
        """
        event_type = self.event_type
        limit = max(1, min(int(limit), MAX_EVENT_LIMIT))
        try:
            raw_events = await self.ledger.query_events(event_type, limit=limit, descending=True)
        except Exception as e:
            logger.error(f"Error fetching events: type={event_type}, error={type(e).__name__}: {e}")
            return EventQueryResult(ok=False, error=str(e) or type(e).__name__)

        wanted = normalize_address(curve_id) if curve_id else None
        events: list[TradeEvent] = []
        for raw in raw_events:
            if not isinstance(raw, dict):
                logger.warning(f"Skipping non-object trade event: {raw!r:.100}")
                continue
            try:
                event = TradeEvent.from_event(raw)
            except ValueError as e:
                logger.warning(f"Skipping malformed trade event {raw.get('id')}: {e}")
                continue
            if wanted is not None and normalize_address(event.bonding_curve_id) != wanted:
                continue
            events.append(event)
        return EventQueryResult(events=events)

    async def volume(self, curve_id: str | None = None, limit: int = DEFAULT_EVENT_LIMIT) -> VolumeAggregate:
        return calculate_volume((await self.fetch_events(curve_id, limit)).events)

    async def holders(self, curve_id: str | None = None, limit: int = DEFAULT_EVENT_LIMIT) -> dict[str, int]:
        return calculate_holders((await self.fetch_events(curve_id, limit)).events)
