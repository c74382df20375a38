"""Aggregate fsimage entries into a StatisticsSnapshot.

Entries arrive one at a time (an fsimage can hold hundreds of millions of
inodes), so aggregation keeps only running totals per dimension value.

Path matching:
    "/data/warehouse"   matches itself and everything below it
    "/user/ab.*"        expands to every direct child directory of /user whose
                        name fully matches "ab.*"; each child is reported under
                        its own path (e.g. /user/abc, /user/abd)
"""

import re
from bisect import bisect_left
from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import datetime

from fsimage_exporter.common.datetime_utils import utcnow
from fsimage_exporter.common.errors import InvalidConfiguration
from fsimage_exporter.features.statistics.models import (
    EntryKind,
    FsEntry,
    StatisticsSnapshot,
    UsageStats,
)

# A last path component containing any of these is treated as a regex.
# A plain "." is not enough: dotted directory names are common.
_REGEX_CHARS = frozenset("*+?[](){}|^$\\")


class _UsageAccumulator:
    __slots__ = (
        "file_count",
        "dir_count",
        "link_count",
        "block_count",
        "file_size_sum",
        "replication_sum",
        "bucket_counts",
    )

    def __init__(self, bucket_count: int):
        self.file_count = 0
        self.dir_count = 0
        self.link_count = 0
        self.block_count = 0
        self.file_size_sum = 0
        self.replication_sum = 0
        self.bucket_counts = [0] * bucket_count

    def add(self, entry: FsEntry, bucket_index: int) -> None:
        if entry.kind is EntryKind.DIRECTORY:
            self.dir_count += 1
        elif entry.kind is EntryKind.SYMLINK:
            self.link_count += 1
        else:
            self.file_count += 1
            self.block_count += entry.blocks
            self.file_size_sum += entry.size_bytes
            self.replication_sum += entry.replication
            self.bucket_counts[bucket_index] += 1

    def freeze(self) -> UsageStats:
        return UsageStats(
            file_count=self.file_count,
            dir_count=self.dir_count,
            link_count=self.link_count,
            block_count=self.block_count,
            file_size_sum=self.file_size_sum,
            replication_sum=self.replication_sum,
            bucket_counts=tuple(self.bucket_counts),
        )


def _split_parent(path: str) -> tuple[str, str]:
    parent, _, last = path.rstrip("/").rpartition("/")
    return parent or "/", last


def _is_below(path: str, prefix: str) -> bool:
    if prefix == "/":
        return path.startswith("/")
    return path == prefix or path.startswith(prefix + "/")


class PathMatcher:
    """Maps an inode path to the configured path labels it belongs to."""

    def __init__(self, spec: str):
        self.spec = spec
        parent, last = _split_parent(spec)
        if any(c in _REGEX_CHARS for c in last):
            self.parent: str | None = parent
            try:
                self.child_pattern: re.Pattern[str] | None = re.compile(last)
            except re.error as e:
                raise InvalidConfiguration(f"Invalid path pattern {spec!r}: {e}") from e
        else:
            self.parent = None
            self.child_pattern = None
        self.prefix = spec.rstrip("/") or "/"

    def match(self, entry: FsEntry) -> str | None:
        """Return the concrete path label for this entry, or None."""
        if self.child_pattern is None:
            return self.prefix if _is_below(entry.path, self.prefix) else None

        parent = self.parent or "/"
        base = "" if parent == "/" else parent
        if not entry.path.startswith(base + "/"):
            return None
        child, sep, _rest = entry.path[len(base) + 1 :].partition("/")
        if not child or not self.child_pattern.fullmatch(child):
            return None
        # Only directories expand; a matching plain file directly under parent does not
        if not sep and entry.kind is not EntryKind.DIRECTORY:
            return None
        return f"{base}/{child}"


class StatisticsAggregator:
    """Folds FsEntry rows into overall and per-dimension usage statistics."""

    def __init__(
        self,
        bucket_bounds: Iterable[float],
        paths: Iterable[str] = (),
        path_sets: Mapping[str, Iterable[str]] | None = None,
    ):
        self.bucket_bounds = tuple(sorted(bucket_bounds))
        bucket_count = len(self.bucket_bounds) + 1  # + overflow (+Inf)
        self._path_matchers = [PathMatcher(p) for p in dict.fromkeys(paths)]
        self._path_set_matchers = {
            name: [PathMatcher(p) for p in members] for name, members in (path_sets or {}).items()
        }

        def new() -> _UsageAccumulator:
            return _UsageAccumulator(bucket_count)

        self._overall = new()
        self._users: defaultdict[str, _UsageAccumulator] = defaultdict(new)
        self._groups: defaultdict[str, _UsageAccumulator] = defaultdict(new)
        self._paths: defaultdict[str, _UsageAccumulator] = defaultdict(new)
        self._path_sets: defaultdict[str, _UsageAccumulator] = defaultdict(new)
        self.entry_count = 0

    def bucket_index(self, size_bytes: int) -> int:
        """Index of the first bucket whose upper bound is >= size_bytes."""
        return bisect_left(self.bucket_bounds, size_bytes)

    def add(self, entry: FsEntry) -> None:
        index = self.bucket_index(entry.size_bytes)
        self.entry_count += 1

        self._overall.add(entry, index)
        self._users[entry.user].add(entry, index)
        self._groups[entry.group].add(entry, index)

        if self._path_matchers:
            labels = {label for m in self._path_matchers if (label := m.match(entry))}
            for label in labels:
                self._paths[label].add(entry, index)

        for name, matchers in self._path_set_matchers.items():
            # Counted once per set even if several members match
            if any(m.match(entry) for m in matchers):
                self._path_sets[name].add(entry, index)

    def add_all(self, entries: Iterable[FsEntry]) -> "StatisticsAggregator":
        for entry in entries:
            self.add(entry)
        return self

    def build(
        self,
        source_identity: str,
        computed_at: datetime | None = None,
        parse_duration_seconds: float = 0.0,
        source_size_bytes: int = 0,
    ) -> StatisticsSnapshot:
        """Freeze the running totals into an immutable snapshot."""
        return StatisticsSnapshot(
            source_identity=source_identity,
            computed_at=computed_at or utcnow(),
            bucket_bounds=self.bucket_bounds,
            overall=self._overall.freeze(),
            users={k: v.freeze() for k, v in self._users.items()},
            groups={k: v.freeze() for k, v in self._groups.items()},
            paths={k: v.freeze() for k, v in self._paths.items()},
            path_sets={k: v.freeze() for k, v in self._path_sets.items()},
            parse_duration_seconds=parse_duration_seconds,
            source_size_bytes=source_size_bytes,
        )
