"""
Batch run statistics.

The orchestrator reports into a CacheRunStats instance handed to it by the
caller, so failures are countable without parsing log output.

Usage:
    stats = CacheRunStats()
    cache_images(index, stats=stats)
    if stats.fetch_failed:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class CacheRunStats:
    """Counters for a single batch run."""

    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    status: str = "idle"  # idle, running, success, partial, disabled
    pending: int = 0
    cached: int = 0
    fetch_failed: int = 0
    write_failed: int = 0
    persists: int = 0
    persist_failures: int = 0
    cached_ids: List[str] = field(default_factory=list)
    skipped_ids: List[str] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return self.fetch_failed + self.write_failed

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def start_run(self, pending: int) -> None:
        self.started_at = datetime.now(timezone.utc)
        self.status = "running"
        self.pending = pending

    def report_cached(self, item_id: str) -> None:
        self.cached += 1
        self.cached_ids.append(item_id)

    def report_fetch_failed(self, item_id: str) -> None:
        self.fetch_failed += 1
        self.skipped_ids.append(item_id)

    def report_write_failed(self, item_id: str) -> None:
        self.write_failed += 1
        self.skipped_ids.append(item_id)

    def report_persist(self, ok: bool) -> None:
        if ok:
            self.persists += 1
        else:
            self.persist_failures += 1

    def finish_run(self, status: Optional[str] = None) -> None:
        self.finished_at = datetime.now(timezone.utc)
        if status is not None:
            self.status = status
        elif self.skipped or self.persist_failures:
            self.status = "partial"
        else:
            self.status = "success"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable summary."""
        return {
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "status": self.status,
            "pending": self.pending,
            "cached": self.cached,
            "fetch_failed": self.fetch_failed,
            "write_failed": self.write_failed,
            "persists": self.persists,
            "persist_failures": self.persist_failures,
        }
