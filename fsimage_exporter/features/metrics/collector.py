"""Prometheus collector for fsimage statistics.

Note:
    A background task watches and parses the fsimage (see
    features/refresh/scheduler.py), so collection never blocks on a parse.
    Parse time depends on fsimage size and can be minutes.
"""

from loguru import logger
from prometheus_client import Counter, Gauge
from prometheus_client.core import CounterMetricFamily, Metric
from prometheus_client.registry import Collector

from fsimage_exporter.config.settings import StatisticsSettings
from fsimage_exporter.features.metrics.translation import METRIC_PREFIX, translate_snapshot
from fsimage_exporter.features.refresh.snapshot_store import SnapshotStore


class FsImageCollector(Collector):
    """Collects stats from the most recently published fsimage snapshot.

    A scrape before the first successful refresh, or one whose translation
    fails, still succeeds: it returns the bookkeeping families only and
    counts a scrape error.
    """

    def __init__(self, store: SnapshotStore, statistics: StatisticsSettings):
        self.store = store
        self.statistics = statistics
        # Unregistered: this collector emits them itself, after the data families
        self._scrape_requests = Counter(
            METRIC_PREFIX + "scrape_requests_total", "Exporter requests made", registry=None
        )
        self._scrape_errors = Counter(
            METRIC_PREFIX + "scrape_errors_total", "Counts failed scrapes.", registry=None
        )
        self._scrape_duration = Gauge(
            METRIC_PREFIX + "scrape_duration_seconds", "Scrape duration", registry=None
        )

    def collect(self) -> list[Metric]:
        families: list[Metric] = []

        with self._scrape_duration.time():
            self._scrape_requests.inc()
            try:
                snapshot = self.store.read_current()
                if snapshot is None:
                    logger.debug("No fsimage statistics published yet")
                    self._scrape_errors.inc()
                else:
                    families.extend(translate_snapshot(snapshot, self.statistics))
            except Exception as e:
                self._scrape_errors.inc()
                logger.error(
                    "fsimage scrape failed",
                    extra={"error": str(e), "error_type": type(e).__name__},
                )

        families.append(self._refresh_errors())
        families.extend(self._scrape_duration.collect())
        families.extend(self._scrape_requests.collect())
        families.extend(self._scrape_errors.collect())
        return families

    def _refresh_errors(self) -> Metric:
        return CounterMetricFamily(
            METRIC_PREFIX + "refresh_errors_total",
            "Counts failed fsimage refresh cycles (download or parse).",
            value=self.store.state.failure_count,
        )
