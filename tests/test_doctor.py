from __future__ import annotations

from pathlib import Path

import httpx
import pytest
from conftest import CONFIG_ENV

from idol_launchpad import doctor
from idol_launchpad.config import REQUIRED_OBJECT_VARS


@pytest.fixture
def clean_env(monkeypatch) -> None:
    for key in (*CONFIG_ENV, "SUI_BIN", "SUI_RPC_URL", "SUI_NETWORK"):
        monkeypatch.delenv(key, raising=False)


def _env_file(tmp_path: Path, env: dict[str, str]) -> Path:
    path = tmp_path / ".env"
    path.write_text("".join(f"{k}={v}\n" for k, v in env.items()))
    return path


def test_check_config_ok(tmp_path: Path, clean_env) -> None:
    (ok, msg, fix), config = doctor.check_config(_env_file(tmp_path, CONFIG_ENV))
    assert ok is True
    assert config is not None
    assert f"{len(REQUIRED_OBJECT_VARS)} required ids" in msg
    assert fix is None


def test_check_config_notes_optional_ids(tmp_path: Path, clean_env) -> None:
    env = {k: v for k, v in CONFIG_ENV.items() if k != "IAO_ADMIN_CAP_ID"}
    (ok, msg, _), _ = doctor.check_config(_env_file(tmp_path, env))
    assert ok is True
    assert "graduation disabled" in msg


def test_check_config_missing_required(tmp_path: Path, clean_env) -> None:
    env = {k: v for k, v in CONFIG_ENV.items() if k != "IAO_CONFIG_ID"}
    (ok, msg, fix), config = doctor.check_config(_env_file(tmp_path, env))
    assert ok is False
    assert config is None
    assert "IAO_CONFIG_ID" in fix


def test_check_sui_cli_missing(monkeypatch) -> None:
    monkeypatch.setattr(doctor.shutil, "which", lambda name: None)
    ok, msg, fix = doctor.check_sui_cli("sui")
    assert ok is False
    assert fix is not None


def test_check_rpc_reachable(monkeypatch) -> None:
    def fake_post(url, **kwargs):
        assert kwargs["json"]["method"] == "sui_getLatestCheckpointSequenceNumber"
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "1234"})

    monkeypatch.setattr(doctor.httpx, "post", fake_post)
    ok, msg, _ = doctor.check_rpc("https://rpc.test")
    assert ok is True
    assert "1234" in msg


def test_check_rpc_unreachable(monkeypatch) -> None:
    def fake_post(url, **kwargs):
        raise httpx.ConnectError("refused")

    monkeypatch.setattr(doctor.httpx, "post", fake_post)
    ok, msg, fix = doctor.check_rpc("https://rpc.test")
    assert ok is False
    assert "ConnectError" in msg
    assert fix is not None


def test_run_skip_rpc_exit_code(tmp_path: Path, clean_env, monkeypatch) -> None:
    monkeypatch.setattr(doctor, "check_sui_cli", lambda sui_bin: (True, "Sui CLI found: sui 1.40.0", None))
    monkeypatch.setattr(doctor, "check_rpc", lambda url: pytest.fail("rpc should be skipped"))
    assert doctor.run(_env_file(tmp_path, CONFIG_ENV), skip_rpc=True) == 0


def test_run_reports_failure(tmp_path: Path, clean_env, monkeypatch) -> None:
    monkeypatch.setattr(doctor, "check_sui_cli", lambda sui_bin: (False, "missing", "install sui"))
    assert doctor.run(_env_file(tmp_path, CONFIG_ENV), skip_rpc=True) == 1
