"""Launchpad error type definitions.

Every core failure carries a stable `kind` string, a human-readable message and
a structured `data` payload. The HTTP layer maps `InvalidRequestError` to 400 and
everything else to 500; callers that need finer handling match on the class.
"""

from __future__ import annotations

from typing import Any


class LaunchpadError(Exception):
    """Base class for launchpad errors."""

    kind = "launchpad_error"

    def __init__(self, message: str, data: dict[str, Any] | None = None):
        self.message = message
        self.data = data or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a JSON-serializable dictionary."""
        return {
            "kind": self.kind,
            "message": self.message,
            "data": self.data,
        }


class InvalidConfigError(LaunchpadError):
    """Invalid or missing configuration value."""

    kind = "invalid_config"

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid config: {field} - {reason}",
            data={"field": field, "reason": reason},
        )


class InvalidRequestError(LaunchpadError):
    """Client input failed validation (missing or malformed field)."""

    kind = "invalid_request"

    def __init__(self, field: str, reason: str):
        super().__init__(
            message=f"Invalid request: {field} - {reason}",
            data={"field": field, "reason": reason},
        )


class ToolingUnavailableError(LaunchpadError):
    """The Sui CLI could not be invoked."""

    kind = "tooling_unavailable"

    def __init__(self, binary: str, reason: str):
        super().__init__(
            message=(
                f'Sui CLI not found or not executable. Set SUI_BIN or fix PATH so "{binary}" is available. ({reason})'
            ),
            data={"binary": binary, "reason": reason},
        )


class CompilationError(LaunchpadError):
    """The Move compiler rejected the generated package or produced unusable output."""

    kind = "compilation_failure"

    def __init__(self, module_name: str, diagnostics: str):
        super().__init__(
            message=f"Failed to compile dynamic Move package {module_name}: {diagnostics}",
            data={"moduleName": module_name, "diagnostics": diagnostics},
        )


class ExtractionError(LaunchpadError):
    """An expected object record was not found in a transaction's object changes."""

    kind = "extraction_failure"

    def __init__(self, what: str, digest: str | None, raw: Any):
        super().__init__(
            message=f"Failed to extract {what} from transaction {digest or '<unknown>'}",
            data={"what": what, "digest": digest, "raw": raw},
        )


class PreflightMissingObjectError(LaunchpadError):
    """A referenced object does not exist on the configured network."""

    kind = "preflight_missing_object"

    def __init__(self, label: str, object_id: str):
        super().__init__(
            message=f"[{label}] object not found on chain: {object_id}",
            data={"label": label, "objectId": object_id},
        )


class SimulationAbortError(LaunchpadError):
    """A dev-inspect run predicted failure; nothing was submitted."""

    kind = "simulation_abort"

    def __init__(self, error_text: str | None, message: str | None = None, data: dict[str, Any] | None = None):
        payload = {"error": error_text}
        if data:
            payload.update(data)
        super().__init__(
            message=message or f"Move abort in preflight: {error_text or 'unknown error'}",
            data=payload,
        )


class NotAuthorizedError(SimulationAbortError):
    """The factory allow-list rejected the signer."""

    kind = "not_authorized"

    def __init__(self, signer: str, error_text: str | None):
        super().__init__(
            error_text,
            message=(
                "Permission check failed in factory config (config::is_allowed). "
                f"The signer {signer} is not authorized to launch. "
                "Have the admin add your address to the allowlist or use an open factory."
            ),
            data={"signer": signer},
        )


class ReadinessTimeoutError(LaunchpadError):
    """A created object (or transaction) did not become visible in time."""

    kind = "readiness_timeout"

    def __init__(self, label: str, object_id: str, timeout_s: float):
        super().__init__(
            message=f"[{label}] object not found on chain within {timeout_s:g}s: {object_id}",
            data={"label": label, "objectId": object_id, "timeoutSeconds": timeout_s},
        )


class QueryEmptyResultError(LaunchpadError):
    """A read adapter's simulation returned no payload."""

    kind = "query_empty_result"

    def __init__(self, function: str, error_text: str | None):
        suffix = f" DevInspect error: {error_text}" if error_text else ""
        super().__init__(
            message=f"No return value from {function}.{suffix}",
            data={"function": function, "error": error_text},
        )


class QueryDecodeError(LaunchpadError):
    """A read adapter's return payload could not be decoded."""

    kind = "query_decode"

    def __init__(self, function: str, reason: str):
        super().__init__(
            message=f"Could not decode return value of {function}: {reason}",
            data={"function": function, "reason": reason},
        )


class InvalidCoinTypeError(LaunchpadError):
    """A coin type tag is not of the form 0x<64 hex>::module::STRUCT."""

    kind = "invalid_coin_type"

    def __init__(self, coin_type: str):
        super().__init__(
            message=f"Coin type is not a fully qualified type tag: {coin_type!r}",
            data={"coinType": coin_type},
        )


class LedgerError(LaunchpadError):
    """Transport-level failure talking to the fullnode or the Sui CLI."""

    kind = "ledger_error"

    def __init__(self, method: str, reason: str):
        super().__init__(
            message=f"{method} failed: {reason}",
            data={"method": method, "reason": reason},
        )


class LaunchError(LaunchpadError):
    """Registration failed after the coin package was published.

    The published token is carried so registration can be retried without
    publishing a second package.
    """

    kind = "launch_failed"

    def __init__(self, cause: LaunchpadError, published: dict[str, Any]):
        self.cause = cause
        super().__init__(
            message=f"Asset registration failed after publish: {cause.message}",
            data={"cause": cause.to_dict(), "publishedToken": published},
        )
