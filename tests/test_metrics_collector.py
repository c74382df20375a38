"""Tests for FsImageCollector and snapshot translation."""

from unittest.mock import patch

import pytest
from helpers import create_statistics_settings, delimited_text
from prometheus_client import CollectorRegistry, generate_latest

from fsimage_exporter.common.errors import ParseFailed, TranslationFailed
from fsimage_exporter.config.settings import DEFAULT_FILE_SIZE_BUCKETS
from fsimage_exporter.features.metrics.collector import FsImageCollector
from fsimage_exporter.features.metrics.translation import translate_snapshot
from fsimage_exporter.features.refresh.snapshot_store import SnapshotStore
from fsimage_exporter.features.statistics.oiv_parser import OivFsImageParser, iter_delimited_entries


def _sample_snapshot(statistics, identity: str = "fsimage_7"):
    return (
        OivFsImageParser(statistics)
        .new_aggregator()
        .add_all(iter_delimited_entries(delimited_text().splitlines()))
        .build(source_identity=identity, parse_duration_seconds=2.5, source_size_bytes=4096)
    )


def _collect(collector: FsImageCollector) -> dict[tuple[str, frozenset], float]:
    """Run a single scrape and index samples by (name, labels)."""
    return {
        (s.name, frozenset(s.labels.items())): s.value
        for family in collector.collect()
        for s in family.samples
    }


def _family_names(collector: FsImageCollector) -> list[str]:
    return [family.name for family in collector.collect()]


def _store_with(snapshot=None) -> SnapshotStore:
    store = SnapshotStore()
    if snapshot is not None:
        store.publish(snapshot)
    return store


BOOKKEEPING = [
    "fsimage_refresh_errors",
    "fsimage_scrape_duration_seconds",
    "fsimage_scrape_requests",
    "fsimage_scrape_errors",
]


@pytest.mark.unit
def test_scrape_before_first_refresh(statistics_settings):
    collector = FsImageCollector(_store_with(), statistics_settings)

    samples = _collect(collector)

    assert _family_names(collector) == BOOKKEEPING
    assert samples[("fsimage_scrape_requests_total", frozenset())] == 1
    assert samples[("fsimage_scrape_errors_total", frozenset())] == 1
    assert samples[("fsimage_refresh_errors_total", frozenset())] == 0


@pytest.mark.unit
def test_overall_families(statistics_settings):
    collector = FsImageCollector(_store_with(_sample_snapshot(statistics_settings)), statistics_settings)

    samples = _collect(collector)

    assert samples[("fsimage_dirs", frozenset())] == 5
    assert samples[("fsimage_links", frozenset())] == 1
    assert samples[("fsimage_blocks", frozenset())] == 4
    assert samples[("fsimage_replication_sum", frozenset())] == 8
    assert samples[("fsimage_fsize_count", frozenset())] == 3
    assert samples[("fsimage_fsize_sum", frozenset())] == 205_001_024
    assert samples[("fsimage_fsize_bucket", frozenset({("le", "+Inf")}))] == 3
    assert samples[("fsimage_fsize_bucket", frozenset({("le", "0.0")}))] == 0
    assert samples[("fsimage_compute_stats_duration_seconds", frozenset())] == 2.5
    assert samples[("fsimage_load_file_size_bytes", frozenset())] == 4096
    assert samples[("fsimage_scrape_errors_total", frozenset())] == 0


@pytest.mark.unit
def test_histogram_buckets_are_cumulative(statistics_settings):
    snapshot = _sample_snapshot(statistics_settings)
    (fsize,) = [f for f in translate_snapshot(snapshot, statistics_settings) if f.name == "fsimage_fsize"]

    buckets = [s.value for s in fsize.samples if s.name == "fsimage_fsize_bucket"]

    assert len(buckets) == len(DEFAULT_FILE_SIZE_BUCKETS) + 1
    assert buckets == [0, 1, 2, 2, 2, 3, 3, 3]


@pytest.mark.unit
def test_user_and_group_families(statistics_settings):
    collector = FsImageCollector(_store_with(_sample_snapshot(statistics_settings)), statistics_settings)

    samples = _collect(collector)

    alice = frozenset({("user_name", "alice")})
    assert samples[("fsimage_user_dirs", alice)] == 1
    assert samples[("fsimage_user_blocks", alice)] == 3
    assert samples[("fsimage_user_fsize_count", alice)] == 2
    assert samples[("fsimage_user_links", frozenset({("user_name", "hdfs")}))] == 1
    assert samples[("fsimage_group_fsize_count", frozenset({("group_name", "users")}))] == 3
    # No paths configured, so no path families
    assert not any(name.startswith("fsimage_path") for name, _ in samples)


@pytest.mark.unit
def test_path_and_path_set_families():
    statistics = create_statistics_settings(
        FSIMAGE_PATHS=["/user/a.*", "/tmp"],
        FSIMAGE_PATH_SETS={"all_users": ["/user", "/user/alice"]},
    )
    collector = FsImageCollector(_store_with(_sample_snapshot(statistics)), statistics)

    samples = _collect(collector)

    assert samples[("fsimage_path_fsize_count", frozenset({("path", "/user/alice")}))] == 2
    assert samples[("fsimage_path_links", frozenset({("path", "/tmp")}))] == 1
    all_users = frozenset({("path_set", "all_users")})
    assert samples[("fsimage_path_set_dirs", all_users)] == 3
    assert samples[("fsimage_path_set_fsize_count", all_users)] == 3


@pytest.mark.unit
def test_skipped_distribution_becomes_summary():
    statistics = create_statistics_settings(FSIMAGE_SKIP_FILE_DISTRIBUTION_FOR_USER_STATS=True)
    families = translate_snapshot(_sample_snapshot(statistics), statistics)
    by_name = {f.name: f for f in families}

    assert by_name["fsimage_user_fsize"].type == "summary"
    assert by_name["fsimage_group_fsize"].type == "histogram"
    assert not any(s.name.endswith("_bucket") for s in by_name["fsimage_user_fsize"].samples)


@pytest.mark.unit
def test_label_values_are_sorted(statistics_settings):
    families = translate_snapshot(_sample_snapshot(statistics_settings), statistics_settings)
    (user_dirs,) = [f for f in families if f.name == "fsimage_user_dirs"]

    assert [s.labels["user_name"] for s in user_dirs.samples] == ["alice", "bob", "hdfs"]


@pytest.mark.unit
def test_translation_failure_yields_bookkeeping_only(statistics_settings):
    collector = FsImageCollector(_store_with(_sample_snapshot(statistics_settings)), statistics_settings)

    with patch(
        "fsimage_exporter.features.metrics.collector.translate_snapshot",
        side_effect=TranslationFailed("bad snapshot"),
    ):
        samples = _collect(collector)
        names = _family_names(collector)

    assert names == BOOKKEEPING
    assert samples[("fsimage_scrape_errors_total", frozenset())] == 1


@pytest.mark.unit
def test_translate_wraps_errors(statistics_settings):
    snapshot = _sample_snapshot(statistics_settings)
    # Bounds no longer line up with the snapshot's bucket counts
    object.__setattr__(snapshot, "bucket_bounds", (0.0,))

    with pytest.raises(TranslationFailed, match="fsimage_7"):
        translate_snapshot(snapshot, statistics_settings)


@pytest.mark.unit
def test_refresh_errors_follow_store(statistics_settings):
    store = _store_with()
    collector = FsImageCollector(store, statistics_settings)
    store.record_failure(ParseFailed("corrupt"))
    store.record_failure(ParseFailed("corrupt"))

    assert _collect(collector)[("fsimage_refresh_errors_total", frozenset())] == 2


@pytest.mark.unit
def test_generate_latest_exposition(statistics_settings):
    registry = CollectorRegistry()
    registry.register(
        FsImageCollector(_store_with(_sample_snapshot(statistics_settings)), statistics_settings)
    )

    output = generate_latest(registry).decode()

    assert "# TYPE fsimage_fsize histogram" in output
    assert 'fsimage_fsize_bucket{le="+Inf"} 3.0' in output
    assert 'fsimage_user_dirs{user_name="alice"} 1.0' in output
    assert "fsimage_scrape_requests_total 1.0" in output
