"""
Idol Launchpad Doctor - environment validation before launching.

Usage:
    idol-launchpad-doctor                 # Check CLI, configuration and RPC
    idol-launchpad-doctor --env-file prod.env
    idol-launchpad-doctor --skip-rpc      # Offline check
"""

from __future__ import annotations

import argparse
import shutil
import subprocess
import sys
from pathlib import Path

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from idol_launchpad.config import REQUIRED_OBJECT_VARS, LaunchpadConfig, load_config
from idol_launchpad.constants import HEALTH_CHECK_TIMEOUT_SECONDS, TOOLING_CHECK_TIMEOUT_SECONDS
from idol_launchpad.errors import InvalidConfigError

console = Console()

CheckResult = tuple[bool, str, str | None]


def check_sui_cli(sui_bin: str) -> CheckResult:
    """Check that the Sui CLI runs (needed for compiling, publishing and signing)."""
    resolved = shutil.which(sui_bin)
    if resolved:
        try:
            result = subprocess.run(
                [resolved, "--version"],
                check=False,
                capture_output=True,
                text=True,
                timeout=TOOLING_CHECK_TIMEOUT_SECONDS,
            )
            if result.returncode == 0:
                version = result.stdout.strip().split("\n")[0]
                return True, f"Sui CLI found: {version}", None
        except (subprocess.TimeoutExpired, OSError):
            pass
    return (
        False,
        f"Sui CLI not found or not executable: {sui_bin}",
        "cargo install --locked --git https://github.com/MystenLabs/sui.git sui  (or set SUI_BIN)",
    )


def check_config(env_file: Path | None) -> tuple[CheckResult, LaunchpadConfig | None]:
    try:
        config = load_config(env_file)
    except InvalidConfigError as e:
        hint = f"Set {e.data['field']} in the environment or in {env_file or '.env'}"
        return (False, e.message, hint), None
    extras = []
    if not config.pools_package_id:
        extras.append("POOLS_PACKAGE_ID unset: price/supply/events/admin calls disabled")
    if not config.iao_admin_cap_id:
        extras.append("IAO_ADMIN_CAP_ID unset: graduation disabled")
    msg = f"{len(REQUIRED_OBJECT_VARS)} required ids set (network={config.network})"
    if extras:
        msg += "; " + "; ".join(extras)
    return (True, msg, None), config


def check_rpc(rpc_url: str) -> CheckResult:
    try:
        resp = httpx.post(
            rpc_url,
            json={"jsonrpc": "2.0", "id": 1, "method": "sui_getLatestCheckpointSequenceNumber", "params": []},
            timeout=HEALTH_CHECK_TIMEOUT_SECONDS,
        )
    except httpx.TimeoutException:
        return False, f"RPC timeout: {rpc_url}", "Set SUI_RPC_URL to a reachable fullnode"
    except httpx.HTTPError as e:
        return False, f"RPC unreachable: {rpc_url} ({type(e).__name__})", "Set SUI_RPC_URL to a reachable fullnode"
    if resp.status_code != 200:
        return False, f"RPC returned HTTP {resp.status_code}: {rpc_url}", None
    try:
        data = resp.json()
    except ValueError:
        return False, f"RPC returned invalid JSON: {rpc_url}", None
    if "result" not in data:
        return False, f"RPC error: {data.get('error')}", None
    return True, f"RPC reachable at checkpoint {data['result']}: {rpc_url}", None


def run_checks(env_file: Path | None = None, *, skip_rpc: bool = False) -> list[tuple[str, bool, str, str | None]]:
    """
    Returns:
        List of (check_name, passed, message, fix_command)
    """
    results: list[tuple[str, bool, str, str | None]] = []

    (ok, msg, fix), config = check_config(env_file)
    results.append(("Configuration", ok, msg, fix))

    ok, msg, fix = check_sui_cli(config.sui_bin if config else "sui")
    results.append(("Sui CLI", ok, msg, fix))

    if not skip_rpc and config is not None:
        ok, msg, fix = check_rpc(config.rpc_url)
        results.append(("Fullnode RPC", ok, msg, fix))

    return results


def print_results(results: list[tuple[str, bool, str, str | None]]) -> bool:
    table = Table(title="Idol Launchpad Environment Check", show_header=True)
    table.add_column("Check", style="cyan", width=15)
    table.add_column("Status", width=6)
    table.add_column("Details", style="dim")

    all_passed = True
    fixes: list[tuple[str, str]] = []
    for name, passed, message, fix in results:
        status = "[green]✓[/green]" if passed else "[red]✗[/red]"
        table.add_row(name, status, message)
        if not passed:
            all_passed = False
            if fix:
                fixes.append((name, fix))

    console.print(table)
    if fixes:
        console.print()
        console.print(
            Panel.fit(
                "\n".join([f"[bold]{name}:[/bold] {cmd}" for name, cmd in fixes]),
                title="[yellow]Suggested Fixes[/yellow]",
                border_style="yellow",
            )
        )
    return all_passed


def run(env_file: Path | None = None, *, skip_rpc: bool = False) -> int:
    console.print("[bold blue]Idol Launchpad Doctor[/bold blue]")
    console.print()
    all_passed = print_results(run_checks(env_file, skip_rpc=skip_rpc))
    console.print()
    if all_passed:
        console.print("[bold green]✓ All checks passed! Ready to launch.[/bold green]")
        return 0
    console.print("[bold red]✗ Some checks failed. See suggested fixes above.[/bold red]")
    return 1


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Idol Launchpad Doctor - environment validation")
    parser.add_argument("--env-file", type=Path, default=Path(".env"))
    parser.add_argument("--skip-rpc", action="store_true", help="Do not contact the fullnode")
    args = parser.parse_args(argv)
    sys.exit(run(args.env_file, skip_rpc=args.skip_rpc))


if __name__ == "__main__":
    main()
