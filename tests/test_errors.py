from __future__ import annotations

import json

from idol_launchpad.errors import (
    CompilationError,
    LaunchError,
    LaunchpadError,
    NotAuthorizedError,
    PreflightMissingObjectError,
    QueryEmptyResultError,
    ReadinessTimeoutError,
    SimulationAbortError,
)


def test_to_dict_is_json_serializable() -> None:
    err = CompilationError("idol_x_1", "error[E01001]: bad")
    d = err.to_dict()
    assert d["kind"] == "compilation_failure"
    assert "idol_x_1" in d["message"]
    json.dumps(d)


def test_preflight_message_names_label_and_id() -> None:
    err = PreflightMissingObjectError("IAO_CONFIG_ID", "0x101")
    assert err.message == "[IAO_CONFIG_ID] object not found on chain: 0x101"


def test_not_authorized_is_a_simulation_abort() -> None:
    err = NotAuthorizedError("0xabc", "MoveAbort ... ::config::is_allowed ...")
    assert isinstance(err, SimulationAbortError)
    assert err.kind == "not_authorized"
    assert err.data["signer"] == "0xabc"
    assert "0xabc" in err.message


def test_readiness_timeout_names_label() -> None:
    err = ReadinessTimeoutError("TreasuryCap", "0x1", 15.0)
    assert err.message.startswith("[TreasuryCap]")
    assert err.data["timeoutSeconds"] == 15.0


def test_query_empty_result_includes_simulation_error() -> None:
    err = QueryEmptyResultError("get_marginal_price", "MoveAbort 7")
    assert err.message == "No return value from get_marginal_price. DevInspect error: MoveAbort 7"
    assert QueryEmptyResultError("f", None).message == "No return value from f."


def test_launch_error_carries_token_and_cause() -> None:
    cause = SimulationAbortError("boom")
    err = LaunchError(cause, {"packageId": "0xb"})
    assert isinstance(err, LaunchpadError)
    assert err.cause is cause
    assert err.data["publishedToken"] == {"packageId": "0xb"}
    assert err.data["cause"]["kind"] == "simulation_abort"
