"""Filesystem scanner for fsimage checkpoints.

Lists the NameNode image directory (dfs.namenode.name.dir/current) and picks
the checkpoint with the highest transaction id.

Expected directory contents (written by the NameNode):
    fsimage_0000000000000012345
    fsimage_0000000000000012345.md5
    edits_...
    VERSION
"""

import asyncio
from pathlib import Path

from loguru import logger

from fsimage_exporter.common.errors import InvalidConfiguration
from fsimage_exporter.features.fsimage_locator.artifact import (
    ArtifactReference,
    parse_fsimage_version,
)


def scan_fsimage_files(base_path: str) -> list[ArtifactReference]:
    """List fsimage checkpoints in a directory (non-recursive).

    Args:
        base_path: Directory holding fsimage files

    Returns:
        References for every entry named fsimage_<digits>, in directory order.
        Returns empty list if base_path doesn't exist (anymore).
    """
    base = Path(base_path)

    if not base.is_dir():
        logger.warning(f"fsimage path is not a directory: {base_path}")
        return []

    files: list[ArtifactReference] = []
    for entry in base.iterdir():
        version = parse_fsimage_version(entry.name)
        if version is None:
            continue
        try:
            stat = entry.stat()
        except OSError as e:
            # NameNode may purge old checkpoints between iterdir and stat
            logger.warning(f"Could not stat file {entry}: {e}")
            continue
        if not entry.is_file():
            continue
        files.append(
            ArtifactReference(
                identity=entry.name,
                path=str(entry),
                version=version,
                size_bytes=stat.st_size,
            )
        )

    logger.debug(f"Found {len(files)} fsimage files in {base_path}")
    return files


def select_newest(files: list[ArtifactReference]) -> ArtifactReference | None:
    """Pick the reference with the greatest version; the first one wins ties."""
    newest: ArtifactReference | None = None
    for candidate in files:
        if newest is None or (candidate.version or 0) > (newest.version or 0):
            newest = candidate
    return newest


class LocalDirectoryLocator:
    """Finds the newest fsimage in a local directory."""

    def __init__(self, fsimage_dir: str):
        path = Path(fsimage_dir)
        if not path.exists():
            raise InvalidConfiguration(
                f"The directory for fsimage snapshots (FSIMAGE_PATH) {path.resolve()} does not exist"
            )
        if not path.is_dir():
            raise InvalidConfiguration(f"{path.resolve()} is not a directory")
        self.fsimage_dir = str(path.resolve())

    async def locate_newest(self) -> ArtifactReference | None:
        # Run filesystem scan in thread pool (blocking I/O)
        loop = asyncio.get_event_loop()
        files = await loop.run_in_executor(None, scan_fsimage_files, self.fsimage_dir)

        newest = select_newest(files)
        if newest is None:
            logger.debug(f"No fsimage found in {self.fsimage_dir}")
        return newest

    def __repr__(self) -> str:
        return f"LocalDirectoryLocator({self.fsimage_dir!r})"
