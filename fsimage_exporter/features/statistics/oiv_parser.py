"""fsimage parser backed by Hadoop's Offline Image Viewer.

Runs ``hdfs oiv -p Delimited -i <fsimage> -o -`` and streams its tab-separated
output through the StatisticsAggregator, so memory stays bounded by the number
of distinct users, groups and paths rather than the number of inodes.

Delimited output (header row first):
    Path  Replication  ModificationTime  AccessTime  PreferredBlockSize
    BlocksCount  FileSize  NSQUOTA  DSQUOTA  Permission  UserName  GroupName
"""

import subprocess
import tempfile
import time
from collections.abc import Iterable, Iterator
from typing import Protocol

from loguru import logger

from fsimage_exporter.common.datetime_utils import utcnow
from fsimage_exporter.common.errors import ParseFailed
from fsimage_exporter.config.settings import StatisticsSettings
from fsimage_exporter.features.fsimage_locator.artifact import ArtifactReference
from fsimage_exporter.features.statistics.aggregator import StatisticsAggregator
from fsimage_exporter.features.statistics.models import EntryKind, FsEntry, StatisticsSnapshot

DELIMITER = "\t"
REQUIRED_COLUMNS = ("Path", "Replication", "BlocksCount", "FileSize", "Permission", "UserName", "GroupName")
STDERR_TAIL_CHARS = 2000
EXIT_WAIT_SECONDS = 5.0


class FsImageParser(Protocol):
    """Parses one fsimage into a statistics snapshot."""

    def parse(self, reference: ArtifactReference) -> StatisticsSnapshot:
        """Parse and aggregate an fsimage.

        Raises:
            ParseFailed: With a human-readable cause
        """
        ...


def _entry_kind(permission: str) -> EntryKind:
    if permission.startswith("d"):
        return EntryKind.DIRECTORY
    if permission.startswith("l"):
        return EntryKind.SYMLINK
    return EntryKind.FILE


def iter_delimited_entries(lines: Iterable[str]) -> Iterator[FsEntry]:
    """Parse OIV Delimited output lines into FsEntry rows.

    Columns are located by header name, so extra columns from newer Hadoop
    releases are ignored.

    Raises:
        ParseFailed: On a missing header, missing columns or a malformed row
    """
    iterator = iter(lines)
    header_line = next(iterator, None)
    if header_line is None:
        raise ParseFailed("Offline Image Viewer produced no output")

    header = header_line.rstrip("\r\n").split(DELIMITER)
    missing = [c for c in REQUIRED_COLUMNS if c not in header]
    if missing:
        raise ParseFailed(f"Delimited output is missing columns: {', '.join(missing)}")
    idx = {name: header.index(name) for name in REQUIRED_COLUMNS}
    width = max(idx.values()) + 1

    for line_number, line in enumerate(iterator, start=2):
        line = line.rstrip("\r\n")
        if not line:
            continue
        fields = line.split(DELIMITER)
        if len(fields) < width:
            raise ParseFailed(f"Malformed row {line_number}: expected {width} columns, got {len(fields)}")
        try:
            yield FsEntry(
                path=fields[idx["Path"]],
                kind=_entry_kind(fields[idx["Permission"]]),
                user=fields[idx["UserName"]],
                group=fields[idx["GroupName"]],
                size_bytes=int(fields[idx["FileSize"]]),
                blocks=int(fields[idx["BlocksCount"]]),
                replication=int(fields[idx["Replication"]]),
            )
        except ValueError as e:
            raise ParseFailed(f"Malformed row {line_number}: {e}") from e


class OivFsImageParser:
    """Parses fsimage files by streaming ``hdfs oiv`` Delimited output."""

    def __init__(self, statistics: StatisticsSettings, hdfs_command: str = "hdfs"):
        """Initialize parser.

        Raises:
            InvalidConfiguration: If a configured path pattern does not compile
        """
        self.statistics = statistics
        self.hdfs_command = hdfs_command
        # Compiles the configured path patterns
        self.new_aggregator()

    def command(self, fsimage_path: str) -> list[str]:
        return [self.hdfs_command, "oiv", "-p", "Delimited", "-i", fsimage_path, "-o", "-"]

    def new_aggregator(self) -> StatisticsAggregator:
        return StatisticsAggregator(
            bucket_bounds=self.statistics.file_size_bucket_bounds,
            paths=self.statistics.paths,
            path_sets=self.statistics.path_sets,
        )

    def parse(self, reference: ArtifactReference) -> StatisticsSnapshot:
        start = time.monotonic()
        aggregator = self.new_aggregator()
        cmd = self.command(reference.path)

        logger.info(
            "Parsing fsimage",
            extra={"identity": reference.identity, "path": reference.path, "size_bytes": reference.size_bytes},
        )

        # stderr goes to a temp file: a full stderr pipe would stall oiv
        with tempfile.TemporaryFile(mode="w+", encoding="utf-8", errors="replace") as stderr_file:
            try:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=stderr_file,
                    # Undecodable path bytes become U+FFFD rather than failing the parse
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1024 * 1024,
                )
            except OSError as e:
                raise ParseFailed(f"Could not run {self.hdfs_command}: {e}") from e

            try:
                assert process.stdout is not None
                aggregator.add_all(iter_delimited_entries(process.stdout))
                returncode = process.wait()
            except ParseFailed as e:
                # Truncated or empty output usually means oiv itself failed;
                # prefer its exit status and stderr over the row error
                try:
                    returncode = process.wait(timeout=EXIT_WAIT_SECONDS)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()
                    raise e from None
                if returncode == 0:
                    raise
            except BaseException:
                process.kill()
                process.wait()
                raise
            finally:
                if process.stdout is not None:
                    process.stdout.close()

            if returncode != 0:
                stderr_file.seek(0)
                stderr_tail = stderr_file.read()[-STDERR_TAIL_CHARS:].strip()
                raise ParseFailed(
                    f"Offline Image Viewer failed for {reference.identity} (exit {returncode}): {stderr_tail}"
                )

        duration = time.monotonic() - start
        snapshot = aggregator.build(
            source_identity=reference.identity,
            computed_at=utcnow(),
            parse_duration_seconds=duration,
            source_size_bytes=reference.size_bytes,
        )
        logger.info(
            f"Parsed fsimage in {duration:.1f}s",
            extra={
                "identity": reference.identity,
                "entries": aggregator.entry_count,
                "users": len(snapshot.users),
                "groups": len(snapshot.groups),
            },
        )
        return snapshot
