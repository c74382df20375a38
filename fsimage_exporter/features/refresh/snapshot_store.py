"""Atomically swappable holder for the published statistics snapshot.

The refresh task is the only writer; any number of scrape threads read.
Every write builds a new frozen RefreshState and swaps the reference. The lock
only guards that swap (never a parse), so readers see either the old or the
new state in full and never wait on a refresh.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime

from fsimage_exporter.common.datetime_utils import utcnow
from fsimage_exporter.features.statistics.models import StatisticsSnapshot


@dataclass(frozen=True)
class RefreshState:
    """Process-wide refresh state. Replaced wholesale, never mutated."""

    snapshot: StatisticsSnapshot | None = None
    last_identity: str | None = None  # advanced only by a successful publish
    last_attempted_identity: str | None = None
    last_error: str | None = None  # cleared by the next success
    last_error_type: str | None = None
    success_count: int = 0
    failure_count: int = 0
    last_attempt_at: datetime | None = None


class SnapshotStore:
    """Single-writer, many-reader cell for the current RefreshState."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = RefreshState()

    @property
    def state(self) -> RefreshState:
        with self._lock:
            return self._state

    @property
    def last_identity(self) -> str | None:
        return self.state.last_identity

    def read_current(self) -> StatisticsSnapshot | None:
        """Return the published snapshot, or None before the first success."""
        return self.state.snapshot

    def publish(self, snapshot: StatisticsSnapshot) -> None:
        """Install a fully built snapshot and advance the last processed identity."""
        with self._lock:
            self._state = replace(
                self._state,
                snapshot=snapshot,
                last_identity=snapshot.source_identity,
                last_attempted_identity=snapshot.source_identity,
                last_error=None,
                last_error_type=None,
                success_count=self._state.success_count + 1,
                last_attempt_at=utcnow(),
            )

    def record_failure(self, error: BaseException, identity: str | None = None) -> None:
        """Record a failed cycle; the published snapshot stays as it was."""
        with self._lock:
            self._state = replace(
                self._state,
                last_attempted_identity=identity or self._state.last_attempted_identity,
                last_error=str(error) or type(error).__name__,
                last_error_type=type(error).__name__,
                failure_count=self._state.failure_count + 1,
                last_attempt_at=utcnow(),
            )
