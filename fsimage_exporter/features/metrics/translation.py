"""Translate a StatisticsSnapshot into Prometheus metric families."""

from collections.abc import Mapping

from prometheus_client.core import (
    GaugeMetricFamily,
    HistogramMetricFamily,
    Metric,
    SummaryMetricFamily,
)
from prometheus_client.utils import floatToGoString

from fsimage_exporter.common.errors import TranslationFailed
from fsimage_exporter.config.settings import StatisticsSettings
from fsimage_exporter.features.statistics.models import StatisticsSnapshot, UsageStats

METRIC_PREFIX = "fsimage_"


def _bucket_samples(stats: UsageStats, bounds: tuple[float, ...]) -> list[tuple[str, float]]:
    cumulative = stats.cumulative_bucket_counts()
    if len(cumulative) != len(bounds) + 1:
        raise ValueError(
            f"Bucket count mismatch: {len(cumulative)} counts for {len(bounds)} bounds (+Inf)"
        )
    les = [floatToGoString(b) for b in bounds] + ["+Inf"]
    return list(zip(les, cumulative, strict=True))


def _overall_families(snapshot: StatisticsSnapshot) -> list[Metric]:
    overall = snapshot.overall

    fsize = HistogramMetricFamily(
        METRIC_PREFIX + "fsize", "Overall file size distribution in bytes"
    )
    fsize.add_metric([], _bucket_samples(overall, snapshot.bucket_bounds), overall.file_size_sum)

    return [
        fsize,
        GaugeMetricFamily(METRIC_PREFIX + "dirs", "Number of directories.", value=overall.dir_count),
        GaugeMetricFamily(METRIC_PREFIX + "links", "Number of sym links.", value=overall.link_count),
        GaugeMetricFamily(METRIC_PREFIX + "blocks", "Number of blocks.", value=overall.block_count),
        GaugeMetricFamily(
            METRIC_PREFIX + "replication_sum",
            "Sum of file replication factors.",
            value=overall.replication_sum,
        ),
    ]


def _dimension_families(
    dimension: str,
    label: str,
    stats_by_value: Mapping[str, UsageStats],
    bounds: tuple[float, ...],
    skip_distribution: bool,
) -> list[Metric]:
    """Families for one breakdown (user, group, path, path_set)."""
    prefix = f"{METRIC_PREFIX}{dimension}_"
    fsize: HistogramMetricFamily | SummaryMetricFamily
    if skip_distribution:
        fsize = SummaryMetricFamily(
            prefix + "fsize", f"Per {dimension} file size in bytes", labels=[label]
        )
    else:
        fsize = HistogramMetricFamily(
            prefix + "fsize", f"Per {dimension} file size distribution in bytes", labels=[label]
        )
    dirs = GaugeMetricFamily(prefix + "dirs", f"Number of directories per {dimension}.", labels=[label])
    links = GaugeMetricFamily(prefix + "links", f"Number of sym links per {dimension}.", labels=[label])
    blocks = GaugeMetricFamily(prefix + "blocks", f"Number of blocks per {dimension}.", labels=[label])

    for value in sorted(stats_by_value):
        stats = stats_by_value[value]
        if skip_distribution:
            fsize.add_metric([value], count_value=stats.file_count, sum_value=stats.file_size_sum)
        else:
            fsize.add_metric([value], _bucket_samples(stats, bounds), stats.file_size_sum)
        dirs.add_metric([value], stats.dir_count)
        links.add_metric([value], stats.link_count)
        blocks.add_metric([value], stats.block_count)

    return [fsize, dirs, links, blocks]


def _load_families(snapshot: StatisticsSnapshot) -> list[Metric]:
    return [
        GaugeMetricFamily(
            METRIC_PREFIX + "compute_stats_duration_seconds",
            "Time spent parsing and aggregating the fsimage.",
            value=snapshot.parse_duration_seconds,
        ),
        GaugeMetricFamily(
            METRIC_PREFIX + "load_file_size_bytes",
            "Size of the parsed fsimage file.",
            value=snapshot.source_size_bytes,
        ),
        GaugeMetricFamily(
            METRIC_PREFIX + "last_refresh_timestamp_seconds",
            "Unix time the published statistics were computed.",
            value=snapshot.computed_at.timestamp(),
        ),
    ]


def translate_snapshot(snapshot: StatisticsSnapshot, statistics: StatisticsSettings) -> list[Metric]:
    """Build every data metric family for a snapshot.

    Returns all families or raises; never a partial list.

    Raises:
        TranslationFailed: If any family could not be built
    """
    bounds = snapshot.bucket_bounds
    try:
        families = _overall_families(snapshot)
        for dimension, label, stats_by_value, skip in (
            ("user", "user_name", snapshot.users, statistics.skip_file_distribution_for_user_stats),
            ("group", "group_name", snapshot.groups, statistics.skip_file_distribution_for_group_stats),
            ("path", "path", snapshot.paths, statistics.skip_file_distribution_for_path_stats),
            (
                "path_set",
                "path_set",
                snapshot.path_sets,
                statistics.skip_file_distribution_for_path_set_stats,
            ),
        ):
            if stats_by_value:
                families.extend(_dimension_families(dimension, label, stats_by_value, bounds, skip))
        families.extend(_load_families(snapshot))
    except Exception as e:
        raise TranslationFailed(
            f"Could not translate statistics of {snapshot.source_identity}: {e}"
        ) from e
    return families
