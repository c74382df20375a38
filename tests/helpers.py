"""Test helpers: Delimited fixtures data, isolated settings, and in-memory
locators/parsers for driving the refresh loop without Hadoop.
"""

from collections.abc import Callable

from pydantic_settings import SettingsConfigDict

from fsimage_exporter.common.errors import ParseFailed
from fsimage_exporter.config.settings import StatisticsSettings
from fsimage_exporter.features.fsimage_locator.artifact import ArtifactReference
from fsimage_exporter.features.statistics.aggregator import StatisticsAggregator
from fsimage_exporter.features.statistics.models import EntryKind, FsEntry, StatisticsSnapshot

DELIMITED_HEADER = (
    "Path\tReplication\tModificationTime\tAccessTime\tPreferredBlockSize\t"
    "BlocksCount\tFileSize\tNSQUOTA\tDSQUOTA\tPermission\tUserName\tGroupName"
)

# (path, replication, blocks, size, permission, user, group)
SAMPLE_ROWS = [
    ("/", 0, 0, 0, "drwxr-xr-x", "hdfs", "supergroup"),
    ("/user", 0, 0, 0, "drwxr-xr-x", "hdfs", "supergroup"),
    ("/user/alice", 0, 0, 0, "drwx------", "alice", "users"),
    ("/user/alice/a.txt", 3, 1, 1024, "-rw-r--r--", "alice", "users"),
    ("/user/alice/big.bin", 3, 2, 200_000_000, "-rw-r--r--", "alice", "users"),
    ("/user/bob", 0, 0, 0, "drwx------", "bob", "users"),
    ("/user/bob/b.txt", 2, 1, 5_000_000, "-rw-r--r--", "bob", "users"),
    ("/tmp", 0, 0, 0, "drwxrwxrwt", "hdfs", "supergroup"),
    ("/tmp/link", 0, 0, 0, "lrwxrwxrwx", "hdfs", "supergroup"),
]


def delimited_text(rows: list[tuple] = SAMPLE_ROWS) -> str:
    """Render rows the way ``hdfs oiv -p Delimited`` prints them."""
    lines = [DELIMITED_HEADER]
    for path, replication, blocks, size, permission, user, group in rows:
        lines.append(
            "\t".join(
                [
                    path,
                    str(replication),
                    "2024-01-01 00:00",
                    "2024-01-01 00:00",
                    "134217728" if not permission.startswith("d") else "0",
                    str(blocks),
                    str(size),
                    "-1" if permission.startswith("d") else "0",
                    "-1" if permission.startswith("d") else "0",
                    permission,
                    user,
                    group,
                ]
            )
        )
    return "\n".join(lines) + "\n"


class _IsolatedStatisticsSettings(StatisticsSettings):
    """Test-only subclass that disables environment loading."""

    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Only use init_settings source (constructor args), ignore all env sources."""
        return (init_settings,)


def create_statistics_settings(**kwargs) -> StatisticsSettings:
    """Create StatisticsSettings without env loading.

    Note: pass ALIAS names (e.g., FSIMAGE_PATHS), not field names.
    """
    return _IsolatedStatisticsSettings(**kwargs)


def make_snapshot(identity: str, file_count: int = 1, **kwargs) -> StatisticsSnapshot:
    """Build a small snapshot whose file count encodes which cycle produced it."""
    bounds = [float(b) for b in (0, 1024**2, 1024**3)]
    aggregator = StatisticsAggregator(bucket_bounds=bounds)
    for i in range(file_count):
        aggregator.add(
            FsEntry(
                path=f"/data/f{i}",
                kind=EntryKind.FILE,
                user="hdfs",
                group="supergroup",
                size_bytes=100,
                blocks=1,
                replication=3,
            )
        )
    return aggregator.build(source_identity=identity, **kwargs)


class StaticLocator:
    """Locator returning a scripted sequence of references (last one repeats)."""

    def __init__(self, *references: ArtifactReference | None | Exception):
        self.references = list(references)
        self.calls = 0

    async def locate_newest(self) -> ArtifactReference | None:
        item = self.references[min(self.calls, len(self.references) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class RecordingParser:
    """Parser that records calls and builds snapshots via a callback."""

    def __init__(self, build: Callable[[ArtifactReference], StatisticsSnapshot] | None = None):
        self.calls: list[str] = []
        self._build = build or (lambda ref: make_snapshot(ref.identity))

    def parse(self, reference: ArtifactReference) -> StatisticsSnapshot:
        self.calls.append(reference.identity)
        return self._build(reference)


def reference(identity: str, path: str = "/tmp/none", version: int | None = None) -> ArtifactReference:
    return ArtifactReference(identity=identity, path=path, version=version, size_bytes=0)


def failing_once(identity: str) -> Callable[[ArtifactReference], StatisticsSnapshot]:
    """Build callback that fails the first parse of ``identity`` only."""
    seen: set[str] = set()

    def build(ref: ArtifactReference) -> StatisticsSnapshot:
        if ref.identity == identity and identity not in seen:
            seen.add(identity)
            raise ParseFailed(f"corrupt {identity}")
        return make_snapshot(ref.identity)

    return build


