from __future__ import annotations

from typing import Any

import pytest

from idol_launchpad.errors import LedgerError, ReadinessTimeoutError
from idol_launchpad.waiter import wait_for_object


class EventuallyVisible:
    """Object appears on the Nth lookup; earlier lookups miss or error."""

    def __init__(self, visible_on: int, *, error_first: bool = False) -> None:
        self.visible_on = visible_on
        self.error_first = error_first
        self.calls = 0

    async def get_object(self, object_id: str) -> dict[str, Any] | None:
        self.calls += 1
        if self.calls >= self.visible_on:
            return {"objectId": object_id}
        if self.error_first and self.calls == 1:
            raise LedgerError("sui_getObject", "connection reset")
        return None


@pytest.mark.anyio
async def test_returns_immediately_when_visible() -> None:
    ledger = EventuallyVisible(1)
    data = await wait_for_object(ledger, "0x1", "TreasuryCap", timeout_s=1, interval_s=0)
    assert data == {"objectId": "0x1"}
    assert ledger.calls == 1


@pytest.mark.anyio
async def test_succeeds_on_nth_attempt() -> None:
    ledger = EventuallyVisible(4)
    await wait_for_object(ledger, "0x1", "TreasuryCap", timeout_s=5, interval_s=0)
    assert ledger.calls == 4


@pytest.mark.anyio
async def test_lookup_errors_count_as_not_visible() -> None:
    ledger = EventuallyVisible(3, error_first=True)
    await wait_for_object(ledger, "0x1", "CoinMetadata", timeout_s=5, interval_s=0)
    assert ledger.calls == 3


@pytest.mark.anyio
async def test_times_out_with_label() -> None:
    ledger = EventuallyVisible(10**9)
    with pytest.raises(ReadinessTimeoutError) as exc:
        await wait_for_object(ledger, "0xdead", "CoinMetadata", timeout_s=0.05, interval_s=0.01)
    assert exc.value.data["label"] == "CoinMetadata"
    assert exc.value.data["objectId"] == "0xdead"
    assert ledger.calls >= 1
