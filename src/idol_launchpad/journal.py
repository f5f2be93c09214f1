"""
Launch journal: append-only JSONL audit trail of launch steps.

Layout under the journal directory, one folder per service run:
- run_metadata.json: one JSON object describing the run
- events.jsonl: step events (publish_started, package_published, ...)
- launches.jsonl: one row per finished launch, successful or not

A published package whose registration failed is otherwise unreachable, so
every publish is recorded before registration starts.
"""

from __future__ import annotations

import json
import os
import secrets
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any


def _now_unix() -> int:
    return int(time.time())


def _safe_filename(s: str) -> str:
    out = []
    for ch in s:
        if ch.isalnum() or ch in ("-", "_", "."):
            out.append(ch)
        else:
            out.append("_")
    return "".join(out)[:120]


def default_run_id(*, prefix: str = "launchpad") -> str:
    """Timestamp, PID and a random suffix; unique across concurrent service processes."""
    ts = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    return f"{prefix}_{ts}_pid{os.getpid()}_{secrets.token_hex(3)}"


@dataclass(frozen=True)
class JournalPaths:
    root: Path
    run_metadata: Path
    events: Path
    launches: Path


class LaunchJournal:
    def __init__(self, *, base_dir: Path, run_id: str | None = None) -> None:
        root = base_dir / _safe_filename(run_id or default_run_id())
        root.mkdir(parents=True, exist_ok=True)
        self.paths = JournalPaths(
            root=root,
            run_metadata=root / "run_metadata.json",
            events=root / "events.jsonl",
            launches=root / "launches.jsonl",
        )

    def write_run_metadata(self, obj: dict[str, Any]) -> None:
        self.paths.run_metadata.write_text(json.dumps(obj, indent=2, sort_keys=True) + "\n", encoding="utf-8")

    def _append(self, path: Path, row: dict[str, Any]) -> None:
        with path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(row, sort_keys=True, default=str) + "\n")

    def event(self, name: str, **fields: object) -> None:
        """Every row carries `t` (unix seconds) and `event`; extra fields as given."""
        self._append(self.paths.events, {"t": _now_unix(), "event": name, **fields})

    def launch_row(self, row: dict[str, Any]) -> None:
        self._append(self.paths.launches, {"t": _now_unix(), **row})

    def read_events(self) -> list[dict[str, Any]]:
        if not self.paths.events.exists():
            return []
        lines = self.paths.events.read_text(encoding="utf-8").splitlines()
        return [json.loads(line) for line in lines if line.strip()]
