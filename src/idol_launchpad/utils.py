"""Shared utility functions for retries, subprocesses and JSON handling."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import re
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ADDR_RE = re.compile(r"0x[0-9a-fA-F]{1,64}")
_OBJECT_ID_RE = re.compile(r"^0x[0-9a-fA-F]{1,64}$")


async def async_retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
) -> T:
    """
    Retry an awaitable function with exponential backoff and jitter.

    Args:
        fn: Zero-argument coroutine function to retry.
        max_attempts: Maximum number of attempts (values < 1 mean a single attempt).
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay in seconds.
        retryable_exceptions: Exception types that trigger a retry.

    Raises:
        The last exception encountered if all attempts fail.
    """
    if max_attempts < 1:
        return await fn()

    last_exc: Exception | None = None
    for attempt in range(max_attempts):
        try:
            return await fn()
        except retryable_exceptions as e:
            last_exc = e
            if attempt == max_attempts - 1:
                break

            delay = min(max_delay, base_delay * (2**attempt) + random.uniform(0, base_delay))
            logger.warning(
                f"Async retry {attempt + 1}/{max_attempts} after {delay:.1f}s (reason: {type(e).__name__}: {e})"
            )
            await asyncio.sleep(delay)

    assert last_exc is not None
    raise last_exc


@asynccontextmanager
async def managed_subprocess(*args: Any, **kwargs: Any):
    """
    Async context manager for subprocesses ensuring cleanup on failure or exit.

    Yields:
        The created process object. A process still running when the block exits
        (timeout, cancellation) is terminated, then killed if it does not exit.
    """
    proc = await asyncio.create_subprocess_exec(*args, **kwargs)
    try:
        yield proc
    finally:
        if proc.returncode is None:
            try:
                proc.terminate()
                try:
                    await asyncio.wait_for(proc.wait(), timeout=5.0)
                except TimeoutError:
                    proc.kill()
                    await proc.wait()
            except ProcessLookupError:
                pass


async def run_command(cmd: list[str], *, timeout_s: float, cwd: str | None = None) -> tuple[int, str, str]:
    """
    Run a command with a hard deadline and capture its output.

    Returns:
        (returncode, stdout, stderr)

    Raises:
        TimeoutError: If the command does not finish within timeout_s.
        FileNotFoundError: If the executable does not exist.
    """
    async with managed_subprocess(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
    ) as proc:
        try:
            out, err = await asyncio.wait_for(proc.communicate(), timeout=timeout_s)
        except TimeoutError as e:
            raise TimeoutError(f"{cmd[0]} timed out after {timeout_s}s") from e
    return proc.returncode or 0, out.decode("utf-8", "replace"), err.decode("utf-8", "replace")


def safe_json_loads(text: str, *, context: str = "", max_snippet_len: int = 100) -> Any:
    """
    Parse JSON with better error messages and recovery from noisy CLI output.

    The Sui CLI sometimes prints warnings around its JSON document; if direct
    parsing fails, the outermost `{...}` or `[...]` span is tried.
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError as first:
        s = text.strip()
        for opener, closer in (("{", "}"), ("[", "]")):
            start = s.find(opener)
            end = s.rfind(closer)
            if start == -1 or end <= start:
                continue
            try:
                return json.loads(s[start : end + 1])
            except json.JSONDecodeError:
                continue

        start = max(0, first.pos - max_snippet_len // 2)
        end = min(len(text), first.pos + max_snippet_len // 2)
        snippet = text[start:end]
        if start > 0:
            snippet = "..." + snippet
        if end < len(text):
            snippet = snippet + "..."
        raise ValueError(
            f"JSON parse error{f' in {context}' if context else ''}: {first.msg}\n"
            f"Position {first.pos}, snippet: {snippet!r}"
        ) from first


def normalize_address(addr: str) -> str:
    """
    Canonicalize an address as 32-byte (64 hex) lowercase with 0x prefix.
    """
    s = addr.strip().lower()
    if not s.startswith("0x"):
        return addr
    h = s[2:]
    if not h:
        return "0x" + "0" * 64
    if len(h) > 64:
        return s
    return "0x" + h.rjust(64, "0")


def normalize_type_string(type_str: str) -> str:
    """
    Canonicalize all `0x...` address literals inside a Sui type string by padding to 32 bytes.

    Examples:
      - "0x2::coin::Coin<0x2::sui::SUI>" -> "0x000...0002::coin::Coin<0x000...0002::sui::SUI>"
    """

    def _sub(m: re.Match[str]) -> str:
        return normalize_address(m.group(0))

    return _ADDR_RE.sub(_sub, type_str.strip())


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))
