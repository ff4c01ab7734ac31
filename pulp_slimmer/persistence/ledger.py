"""
Run Ledger — Append-only NDJSON record of a run's stage transitions.

Each line is one JSON object (newline-delimited JSON). Events are never
edited, only appended, so several runs can share one ledger file.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4


def generate_run_id() -> str:
    """Generate a unique run ID, e.g. ``R-20260204T221903-92929A``."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    suffix = uuid4().hex[:6].upper()
    return f"R-{ts}-{suffix}"


class RunLedger:
    """
    Append-only NDJSON ledger writer.

    Usage:
        ledger = RunLedger(Path("state/runs.ndjson"), run_id="R-123")
        ledger.emit("stage", repo="pulp-base-os", stage="repo-ensured")

    With ``path=None`` events are dropped, which keeps callers free of
    "is there a ledger" checks.
    """

    def __init__(self, path: Optional[Path], run_id: Optional[str] = None):
        self.path = Path(path) if path else None
        self.run_id = run_id or generate_run_id()
        # Pipeline workers emit from several threads
        self._lock = threading.Lock()
        if self.path:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)

    def emit(
        self,
        event_type: str,
        repo: Optional[str] = None,
        stage: Optional[str] = None,
        level: str = "info",
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[str]:
        """
        Append one event.

        Returns:
            Generated event_id, or None when the ledger is disabled
        """
        if not self.path:
            return None

        event_id = f"E-{uuid4().hex[:8].upper()}"
        entry: Dict[str, Any] = {
            "ts_iso": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "event_id": event_id,
            "run_id": self.run_id,
            "level": level,
            "type": event_type,
        }
        if repo is not None:
            entry["repo"] = repo
        if stage is not None:
            entry["stage"] = stage
        if details:
            entry["details"] = details

        line = json.dumps(entry, separators=(",", ":")) + "\n"
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            f.write(line)

        return event_id
