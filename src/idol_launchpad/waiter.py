"""Polling for eventual visibility of freshly created objects."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from idol_launchpad.constants import OBJECT_READY_INTERVAL_SECONDS, OBJECT_READY_TIMEOUT_SECONDS
from idol_launchpad.errors import ReadinessTimeoutError
from idol_launchpad.ledger import LedgerClient

logger = logging.getLogger(__name__)


async def wait_for_object(
    ledger: LedgerClient,
    object_id: str,
    label: str,
    *,
    timeout_s: float = OBJECT_READY_TIMEOUT_SECONDS,
    interval_s: float = OBJECT_READY_INTERVAL_SECONDS,
) -> dict[str, Any]:
    """
    Block until `object_id` is returned by a point lookup.

    Lookup errors count as "not visible yet". Raises ReadinessTimeoutError
    naming `label` once `timeout_s` has elapsed without a hit.
    """
    start = time.monotonic()
    attempts = 0
    while True:
        attempts += 1
        try:
            data = await ledger.get_object(object_id)
            if data:
                if attempts > 1:
                    logger.debug(f"[{label}] {object_id} visible after {attempts} lookups")
                return data
        except Exception as e:
            logger.debug(f"[{label}] lookup {attempts} for {object_id} failed: {type(e).__name__}: {e}")
        if time.monotonic() - start >= timeout_s:
            raise ReadinessTimeoutError(label, object_id, timeout_s)
        await asyncio.sleep(interval_s)
