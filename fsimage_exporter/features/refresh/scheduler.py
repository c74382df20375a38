"""Background refresh loop for fsimage statistics.

This module implements an async infinite loop that:
1. Locates the newest fsimage (local directory scan or NameNode download)
2. Skips it if its identity equals the last published one
3. Parses and aggregates it in the thread pool (can take minutes)
4. Publishes the resulting snapshot atomically for scrapes to read

The first cycle runs immediately; afterwards the loop sleeps for the refresh
interval between the end of one cycle and the start of the next.
"""

import asyncio
from enum import Enum

from loguru import logger

from fsimage_exporter.common.datetime_utils import format_iso8601_utc
from fsimage_exporter.common.errors import FetchFailed, ParseFailed
from fsimage_exporter.features.fsimage_locator.artifact import ArtifactLocator, ArtifactReference
from fsimage_exporter.features.refresh.change_detector import has_changed
from fsimage_exporter.features.refresh.snapshot_store import SnapshotStore
from fsimage_exporter.features.statistics.oiv_parser import FsImageParser


class RefreshPhase(str, Enum):
    IDLE = "idle"
    LOCATING = "locating"
    PARSING = "parsing"
    PUBLISHING = "publishing"
    BACKOFF = "backoff"  # last cycle failed; waits the normal interval


class RefreshOutcome(str, Enum):
    NOT_FOUND = "not_found"
    UNCHANGED = "unchanged"
    PUBLISHED = "published"
    FAILED = "failed"


class RefreshScheduler:
    """Drives locate → detect → parse → publish on a single background task."""

    def __init__(
        self,
        locator: ArtifactLocator,
        parser: FsImageParser,
        store: SnapshotStore,
        interval_seconds: float = 60,
    ):
        self.locator = locator
        self.parser = parser
        self.store = store
        self.interval_seconds = interval_seconds
        self.phase = RefreshPhase.IDLE

    async def run_forever(self) -> None:
        """Background task that keeps the published snapshot current.

        Error Handling:
            - Nothing found yet: debug log, no-op cycle
            - Download errors: warning, retry on next cycle
            - Parse errors: error log, last identity not advanced, retry on next cycle
            - Cancellation: propagates (shutdown)
        """
        logger.info(
            "Starting fsimage refresh",
            extra={"locator": repr(self.locator), "interval": self.interval_seconds},
        )

        try:
            while True:
                await self.refresh_once()
                await asyncio.sleep(self.interval_seconds)

        except asyncio.CancelledError:
            logger.info("fsimage refresh cancelled, shutting down")
            raise

        finally:
            logger.info("fsimage refresh stopped")

    async def refresh_once(self) -> RefreshOutcome:
        """Run one cycle. Never raises, except on cancellation."""
        reference: ArtifactReference | None = None
        try:
            self.phase = RefreshPhase.LOCATING
            reference = await self.locator.locate_newest()
            return await self._process(reference)

        except FetchFailed as e:
            self.phase = RefreshPhase.BACKOFF
            logger.warning(f"Can not download fsimage file: {e}")
            self.store.record_failure(e)
            return RefreshOutcome.FAILED

        except Exception as e:
            # ParseFailed, or anything unexpected: the loop must keep running
            self.phase = RefreshPhase.BACKOFF
            # Traceback only for the unexpected ones
            log = logger if isinstance(e, ParseFailed) else logger.opt(exception=e)
            log.error(
                "Error in refresh cycle",
                extra={
                    "identity": reference.identity if reference else None,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            self.store.record_failure(e, identity=reference.identity if reference else None)
            return RefreshOutcome.FAILED

    async def _process(self, reference: ArtifactReference | None) -> RefreshOutcome:
        if reference is None:
            logger.debug("No fsimage available yet")
            self.phase = RefreshPhase.IDLE
            return RefreshOutcome.NOT_FOUND

        previous = self.store.last_identity
        if not has_changed(previous, reference):
            logger.debug(f"Skipping previously processed {reference.identity}")
            self.phase = RefreshPhase.IDLE
            return RefreshOutcome.UNCHANGED

        logger.info(
            "Detected new fsimage",
            extra={"old": previous or "", "new": reference.identity, "path": reference.path},
        )

        # Parse in thread pool (blocking, can take minutes)
        self.phase = RefreshPhase.PARSING
        loop = asyncio.get_event_loop()
        snapshot = await loop.run_in_executor(None, self.parser.parse, reference)

        self.phase = RefreshPhase.PUBLISHING
        self.store.publish(snapshot)
        self.phase = RefreshPhase.IDLE

        logger.info(
            "Published fsimage statistics",
            extra={
                "identity": snapshot.source_identity,
                "computed_at": format_iso8601_utc(snapshot.computed_at),
                "files": snapshot.overall.file_count,
                "dirs": snapshot.overall.dir_count,
                "parse_duration": round(snapshot.parse_duration_seconds, 3),
            },
        )
        return RefreshOutcome.PUBLISHED
