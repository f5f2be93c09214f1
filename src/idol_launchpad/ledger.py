"""
Ledger client: the boundary to the Sui network.

Reads (object lookups, event queries, transaction indexing status) go to the
fullnode JSON-RPC over httpx. Move calls are built, signed and submitted by the
`sui` CLI (`sui client ptb --sender`). Compiled packages are turned into
transaction bytes by the node (`unsafe_publish`), signed with `sui keytool sign`
and executed over JSON-RPC. The CLI keystore is the only signer; no key
material passes through this process.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Protocol

import httpx

from idol_launchpad.config import LaunchpadConfig
from idol_launchpad.constants import TX_INDEX_INTERVAL_SECONDS, TX_INDEX_TIMEOUT_SECONDS
from idol_launchpad.errors import LedgerError, ReadinessTimeoutError, ToolingUnavailableError
from idol_launchpad.ptb import TransactionPlan
from idol_launchpad.utils import async_retry_with_backoff, run_command, safe_json_loads

logger = logging.getLogger(__name__)


class LedgerClient(Protocol):
    async def get_object(self, object_id: str) -> dict[str, Any] | None: ...

    async def query_events(self, event_type: str, *, limit: int, descending: bool = True) -> list[dict[str, Any]]: ...

    async def signer_address(self) -> str: ...

    async def dev_inspect(self, plan: TransactionPlan) -> dict[str, Any]: ...

    async def execute(self, plan: TransactionPlan) -> dict[str, Any]: ...

    async def publish(self, modules: list[str], dependencies: list[str], *, gas_budget: int) -> dict[str, Any]: ...

    async def wait_for_transaction(self, digest: str) -> dict[str, Any]: ...


class SuiRpcClient:
    """Minimal async JSON-RPC client for a Sui fullnode."""

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout_s: float,
        client: httpx.AsyncClient | None = None,
        max_attempts: int = 3,
        retry_base_delay: float = 1.0,
    ) -> None:
        self.rpc_url = rpc_url
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay

    async def aclose(self) -> None:
        await self._client.aclose()

    async def call(self, method: str, params: list[Any]) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            resp = await async_retry_with_backoff(
                lambda: self._client.post(self.rpc_url, json=payload),
                max_attempts=self.max_attempts,
                base_delay=self.retry_base_delay,
                retryable_exceptions=(httpx.TimeoutException, httpx.TransportError),
            )
        except httpx.TimeoutException as e:
            raise LedgerError(method, f"timeout talking to {self.rpc_url}") from e
        except httpx.RequestError as e:
            raise LedgerError(method, f"failed to connect to {self.rpc_url}: {e}") from e

        if resp.status_code != 200:
            raise LedgerError(method, f"HTTP {resp.status_code} from {self.rpc_url}")
        try:
            body = resp.json()
        except ValueError as e:
            raise LedgerError(method, f"invalid JSON response: {resp.text[:200]!r}") from e

        if "error" in body:
            err = body.get("error") or {}
            message = err.get("message", err) if isinstance(err, dict) else err
            raise LedgerError(method, f"RPC error: {message}")
        return body.get("result")

    async def get_object(self, object_id: str) -> dict[str, Any] | None:
        result = await self.call("sui_getObject", [object_id, {"showType": True, "showOwner": True}])
        if isinstance(result, dict) and result.get("data"):
            return result["data"]
        return None

    async def query_events(self, event_type: str, *, limit: int, descending: bool = True) -> list[dict[str, Any]]:
        result = await self.call("suix_queryEvents", [{"MoveEventType": event_type}, None, limit, descending])
        data = result.get("data") if isinstance(result, dict) else None
        return data if isinstance(data, list) else []

    async def get_transaction(self, digest: str) -> dict[str, Any]:
        return await self.call(
            "sui_getTransactionBlock",
            [digest, {"showEffects": True, "showObjectChanges": True, "showEvents": True}],
        )

    async def latest_checkpoint(self) -> str:
        return str(await self.call("sui_getLatestCheckpointSequenceNumber", []))

    async def unsafe_publish(self, sender: str, modules: list[str], dependencies: list[str], *, gas_budget: int) -> str:
        """Build unsigned publish transaction bytes; the node transfers the upgrade cap to `sender`."""
        result = await self.call("unsafe_publish", [sender, modules, dependencies, None, str(gas_budget)])
        tx_bytes = result.get("txBytes") if isinstance(result, dict) else None
        if not isinstance(tx_bytes, str) or not tx_bytes:
            raise LedgerError("unsafe_publish", f"response has no txBytes: {str(result)[:200]}")
        return tx_bytes

    async def execute_transaction_block(self, tx_bytes: str, signatures: list[str]) -> dict[str, Any]:
        result = await self.call(
            "sui_executeTransactionBlock",
            [
                tx_bytes,
                signatures,
                {"showEffects": True, "showObjectChanges": True, "showEvents": True},
                "WaitForLocalExecution",
            ],
        )
        if not isinstance(result, dict):
            raise LedgerError("sui_executeTransactionBlock", f"unexpected result: {str(result)[:200]}")
        return result


class SuiCli:
    """Async wrapper around the `sui` binary."""

    def __init__(self, sui_bin: str, *, timeout_s: float, client_config: str | None = None) -> None:
        self.sui_bin = sui_bin
        self.timeout_s = timeout_s
        self.client_config = client_config

    def _client_cmd(self, *args: str) -> list[str]:
        cmd = [self.sui_bin, "client"]
        if self.client_config:
            cmd += ["--client.config", self.client_config]
        return cmd + list(args)

    async def version(self, *, timeout_s: float) -> str:
        """Return the CLI version line; raise ToolingUnavailableError if it cannot run."""
        try:
            code, out, err = await run_command([self.sui_bin, "--version"], timeout_s=timeout_s)
        except (FileNotFoundError, PermissionError, TimeoutError) as e:
            raise ToolingUnavailableError(self.sui_bin, f"{type(e).__name__}: {e}") from e
        if code != 0:
            raise ToolingUnavailableError(self.sui_bin, f"exit {code}: {err.strip()[:200]}")
        return out.strip().splitlines()[0] if out.strip() else ""

    async def _run_json(self, cmd: list[str], *, context: str) -> Any:
        try:
            code, out, err = await run_command(cmd, timeout_s=self.timeout_s)
        except (FileNotFoundError, PermissionError) as e:
            raise ToolingUnavailableError(self.sui_bin, f"{type(e).__name__}: {e}") from e
        except TimeoutError as e:
            raise LedgerError(context, str(e)) from e
        if code != 0:
            raise LedgerError(context, f"exit {code}\nStderr: {err.strip()[:500] or 'N/A'}")
        try:
            return safe_json_loads(out, context=context)
        except ValueError as e:
            raise LedgerError(context, str(e)) from e

    async def active_address(self) -> str:
        out = await self._run_json(self._client_cmd("active-address", "--json"), context="active-address")
        if not isinstance(out, str):
            raise LedgerError("active-address", f"unexpected output: {out!r}")
        return out

    async def sign(self, address: str, tx_bytes: str) -> str:
        """Sign base64 transaction bytes with `address`'s key from the keystore."""
        cmd = [self.sui_bin, "keytool", "sign", "--address", address, "--data", tx_bytes, "--json"]
        out = await self._run_json(cmd, context="keytool sign")
        signature = out.get("suiSignature") if isinstance(out, dict) else None
        if not isinstance(signature, str) or not signature:
            raise LedgerError("keytool sign", f"no suiSignature in output: {str(out)[:200]}")
        return signature

    async def ptb(
        self, plan: TransactionPlan, *, dev_inspect: bool = False, sender: str | None = None
    ) -> dict[str, Any]:
        cmd = self._client_cmd("ptb", *plan.to_cli_args())
        if sender:
            cmd += ["--sender", f"@{sender}"]
        if dev_inspect:
            cmd.append("--dev-inspect")
        cmd.append("--json")
        context = "ptb --dev-inspect" if dev_inspect else "ptb"
        out = await self._run_json(cmd, context=context)
        if not isinstance(out, dict):
            raise LedgerError(context, f"non-object JSON output: {type(out).__name__}")
        return out


class SuiLedgerClient:
    def __init__(
        self,
        rpc: SuiRpcClient,
        cli: SuiCli,
        *,
        signer_address: str | None = None,
        index_timeout_s: float = TX_INDEX_TIMEOUT_SECONDS,
        index_interval_s: float = TX_INDEX_INTERVAL_SECONDS,
    ) -> None:
        self.rpc = rpc
        self.cli = cli
        self._signer_address = signer_address
        self.index_timeout_s = index_timeout_s
        self.index_interval_s = index_interval_s

    @classmethod
    def from_config(cls, config: LaunchpadConfig) -> SuiLedgerClient:
        rpc = SuiRpcClient(config.rpc_url, timeout_s=config.rpc_timeout_s)
        cli = SuiCli(config.sui_bin, timeout_s=config.cli_timeout_s, client_config=config.sui_client_config)
        return cls(rpc, cli, signer_address=config.signer_address)

    async def aclose(self) -> None:
        await self.rpc.aclose()

    async def get_object(self, object_id: str) -> dict[str, Any] | None:
        return await self.rpc.get_object(object_id)

    async def query_events(self, event_type: str, *, limit: int, descending: bool = True) -> list[dict[str, Any]]:
        return await self.rpc.query_events(event_type, limit=limit, descending=descending)

    async def signer_address(self) -> str:
        if self._signer_address is None:
            self._signer_address = await self.cli.active_address()
        return self._signer_address

    async def dev_inspect(self, plan: TransactionPlan) -> dict[str, Any]:
        return await self.cli.ptb(plan, dev_inspect=True, sender=await self.signer_address())

    async def execute(self, plan: TransactionPlan) -> dict[str, Any]:
        return await self.cli.ptb(plan, sender=await self.signer_address())

    async def publish(self, modules: list[str], dependencies: list[str], *, gas_budget: int) -> dict[str, Any]:
        """Publish already-compiled bytecode: build on the node, sign with the keystore, execute."""
        sender = await self.signer_address()
        tx_bytes = await self.rpc.unsafe_publish(sender, modules, dependencies, gas_budget=gas_budget)
        signature = await self.cli.sign(sender, tx_bytes)
        return await self.rpc.execute_transaction_block(tx_bytes, [signature])

    async def wait_for_transaction(self, digest: str) -> dict[str, Any]:
        """Poll until the fullnode has indexed `digest`."""
        deadline = time.monotonic() + self.index_timeout_s
        while True:
            try:
                return await self.rpc.get_transaction(digest)
            except LedgerError as e:
                logger.debug(f"Transaction {digest} not indexed yet: {e}")
            if time.monotonic() >= deadline:
                raise ReadinessTimeoutError("Transaction", digest, self.index_timeout_s)
            await asyncio.sleep(self.index_interval_s)


def simulation_status(result: dict[str, Any]) -> tuple[str | None, str | None]:
    """Extract (status, error) from a dev-inspect or execution response."""
    effects = result.get("effects")
    status: Any = None
    error: Any = None
    if isinstance(effects, dict):
        raw_status = effects.get("status")
        if isinstance(raw_status, dict):
            status = raw_status.get("status")
            error = raw_status.get("error")
        else:
            status = raw_status
    if error is None:
        error = result.get("error")
    return (str(status) if status is not None else None, str(error) if error is not None else None)


async def execute_confirmed(ledger: LedgerClient, plan: TransactionPlan, *, label: str) -> dict[str, Any]:
    """Submit `plan` and wait for both confirmations: local execution, then indexing."""
    return await confirm_execution(ledger, await ledger.execute(plan), label=label)


async def confirm_execution(ledger: LedgerClient, result: dict[str, Any], *, label: str) -> dict[str, Any]:
    """
    Check a submitted transaction's effects, then wait for the node to index it.

    Returns the execution response; object changes and events missing from it
    are filled in from the indexed transaction.
    """
    digest = result.get("digest")
    if not isinstance(digest, str) or not digest:
        raise LedgerError(label, f"execution response has no digest: {str(result)[:300]}")

    status, error = simulation_status(result)
    if status == "failure":
        raise LedgerError(label, f"transaction {digest} failed on chain: {error or 'unknown error'}")

    indexed = await ledger.wait_for_transaction(digest)
    logger.info(f"{label}: transaction {digest} executed and indexed")
    if isinstance(indexed, dict):
        for key in ("objectChanges", "events"):
            if not result.get(key) and indexed.get(key):
                result = {**result, key: indexed[key]}
    return result
