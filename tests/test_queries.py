from __future__ import annotations

from typing import Any

import pytest
from conftest import POOLS_PACKAGE_ID, FakeLedger, coin_type_for, dev_inspect_abort, dev_inspect_ok

from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.errors import QueryDecodeError, QueryEmptyResultError
from idol_launchpad.ptb import ObjectArg, TransactionPlan
from idol_launchpad.queries import CurveQueries, compute_market_cap

COIN_A = coin_type_for("idol_a_1")
COIN_B = coin_type_for("idol_b_2")
COIN_C = coin_type_for("idol_c_3")


def u64(n: int) -> list[int]:
    return list(n.to_bytes(8, "little"))


def by_function(responses: dict[tuple[str, str], dict[str, Any]]):
    """Route a dev-inspect to a canned response keyed by (function name, coin type)."""

    def respond(plan: TransactionPlan) -> dict[str, Any]:
        call = plan.move_calls()[0]
        fn = call.target.rsplit("::", 1)[1]
        return responses.get((fn, call.type_arguments[1]), dev_inspect_abort("MoveAbort: no such curve"))

    return respond


def test_query_plan_shape(config: LaunchpadConfig) -> None:
    plan = CurveQueries(FakeLedger(), config).build_plan("get_marginal_price", COIN_A)
    (call,) = plan.move_calls()
    assert call.target == f"{POOLS_PACKAGE_ID}::bonding_curve::get_marginal_price"
    assert call.type_arguments == ("0x2::sui::SUI", COIN_A)
    assert call.arguments == (ObjectArg(config.pools_config_id),)


@pytest.mark.anyio
async def test_marginal_price_and_supply(ledger: FakeLedger, config: LaunchpadConfig) -> None:
    ledger.on_dev_inspect = by_function(
        {
            ("get_marginal_price", COIN_A): dev_inspect_ok(u64(1_500_000_000)),
            ("get_current_supply", COIN_A): dev_inspect_ok(u64(42)),
            ("get_curve_liquidity_reserve", COIN_A): dev_inspect_ok(u64(7)),
        }
    )
    q = CurveQueries(ledger, config)
    assert await q.marginal_price(COIN_A) == 1_500_000_000
    assert await q.current_supply(COIN_A) == 42
    assert await q.liquidity_reserve(COIN_A) == 7
    assert ledger.executed == []


@pytest.mark.anyio
@pytest.mark.parametrize(("discriminant", "state"), [(0, "Active"), (2, "Completed"), (9, "Unknown")])
async def test_curve_state(ledger: FakeLedger, config: LaunchpadConfig, discriminant: int, state: str) -> None:
    ledger.on_dev_inspect = lambda plan: dev_inspect_ok([discriminant])
    assert await CurveQueries(ledger, config).curve_state(COIN_A) == state


@pytest.mark.anyio
async def test_empty_result_carries_simulation_error(ledger: FakeLedger, config: LaunchpadConfig) -> None:
    ledger.on_dev_inspect = lambda plan: dev_inspect_abort("MoveAbort 3")
    with pytest.raises(QueryEmptyResultError) as exc:
        await CurveQueries(ledger, config).marginal_price(COIN_A)
    assert exc.value.data == {"function": "get_marginal_price", "error": "MoveAbort 3"}


@pytest.mark.anyio
async def test_wrong_width_is_decode_error(ledger: FakeLedger, config: LaunchpadConfig) -> None:
    ledger.on_dev_inspect = lambda plan: dev_inspect_ok([1, 2, 3])
    with pytest.raises(QueryDecodeError):
        await CurveQueries(ledger, config).current_supply(COIN_A)


def test_compute_market_cap() -> None:
    cap = compute_market_cap(COIN_A, 1_500_000_000, 2_000_000_000)
    assert cap.price == "1.500000000"
    assert cap.circulating_supply == "2.000000000"
    assert cap.market_cap == "3.000000000"


def test_compute_market_cap_small_values() -> None:
    cap = compute_market_cap(COIN_A, 1, 1_000_000_000)
    assert cap.price == "0.000000001"
    assert cap.market_cap == "0.000000001"


def test_compute_market_cap_u64_max() -> None:
    u64_max = 2**64 - 1
    cap = compute_market_cap(COIN_A, u64_max, u64_max)
    assert cap.price == "18446744073.709551615"
    assert cap.circulating_supply == "18446744073.709551615"
    assert cap.market_cap == "340282366920938463426.481119284"


@pytest.mark.anyio
async def test_market_caps_keeps_order_with_mixed_validity(ledger: FakeLedger, config: LaunchpadConfig) -> None:
    ledger.on_dev_inspect = by_function(
        {
            ("get_marginal_price", COIN_A): dev_inspect_ok(u64(2_000_000_000)),
            ("get_current_supply", COIN_A): dev_inspect_ok(u64(3_000_000_000)),
            ("get_marginal_price", COIN_C): dev_inspect_ok(u64(1_000_000_000)),
            ("get_current_supply", COIN_C): dev_inspect_ok(u64(500_000_000)),
        }
    )

    results = await CurveQueries(ledger, config).market_caps([COIN_A, COIN_B, COIN_C])

    assert [r["coinType"] for r in results] == [COIN_A, COIN_B, COIN_C]
    assert results[0]["marketCap"] == "6.000000000"
    assert results[1]["kind"] == "query_empty_result"
    assert "error" in results[1]
    assert results[2]["marketCap"] == "0.500000000"


@pytest.mark.anyio
async def test_market_caps_unexpected_exception_is_contained(ledger: FakeLedger, config: LaunchpadConfig) -> None:
    def explode(plan: TransactionPlan) -> dict[str, Any]:
        raise RuntimeError("socket closed")

    ledger.on_dev_inspect = explode
    results = await CurveQueries(ledger, config).market_caps([COIN_A])
    assert results == [{"coinType": COIN_A, "error": "socket closed", "kind": "unexpected"}]
