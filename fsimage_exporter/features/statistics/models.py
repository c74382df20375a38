"""Statistics snapshot models.

All models are frozen. A snapshot is built once by the aggregator and then
shared read-only between the refresh task and any number of scrapes.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from itertools import accumulate
from types import MappingProxyType


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


@dataclass(frozen=True)
class FsEntry:
    """One inode row from the fsimage."""

    path: str
    kind: EntryKind
    user: str
    group: str
    size_bytes: int = 0
    blocks: int = 0
    replication: int = 0


@dataclass(frozen=True)
class UsageStats:
    """Aggregated usage for one dimension value (a user, a path, ...).

    bucket_counts are per bucket (not cumulative), aligned with the snapshot's
    bucket_bounds, plus one trailing overflow bucket (+Inf).
    """

    file_count: int = 0
    dir_count: int = 0
    link_count: int = 0
    block_count: int = 0
    file_size_sum: int = 0
    replication_sum: int = 0
    bucket_counts: tuple[int, ...] = ()

    def cumulative_bucket_counts(self) -> list[int]:
        """Bucket counts as Prometheus expects them (each le includes smaller ones)."""
        return list(accumulate(self.bucket_counts))


def _freeze(mapping: Mapping[str, UsageStats]) -> Mapping[str, UsageStats]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class StatisticsSnapshot:
    """Result of one successful parse + aggregate cycle."""

    source_identity: str
    computed_at: datetime
    bucket_bounds: tuple[float, ...]
    overall: UsageStats
    users: Mapping[str, UsageStats] = field(default_factory=dict)
    groups: Mapping[str, UsageStats] = field(default_factory=dict)
    paths: Mapping[str, UsageStats] = field(default_factory=dict)
    path_sets: Mapping[str, UsageStats] = field(default_factory=dict)
    parse_duration_seconds: float = 0.0
    source_size_bytes: int = 0

    def __post_init__(self) -> None:
        # Read-only views so a published snapshot cannot be mutated in place
        for name in ("users", "groups", "paths", "path_sets"):
            object.__setattr__(self, name, _freeze(getattr(self, name)))
        object.__setattr__(self, "bucket_bounds", tuple(self.bucket_bounds))
