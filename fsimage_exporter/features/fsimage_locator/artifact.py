"""fsimage artifact references and the locator contract."""

import re
from dataclasses import dataclass
from typing import Protocol

# NameNode checkpoints are named fsimage_<txid>, e.g. fsimage_0000000000000012345.
# Sidecar files (fsimage_<txid>.md5) and in-progress checkpoints (fsimage.ckpt_<txid>)
# must not match.
FSIMAGE_PATTERN = re.compile(r"fsimage_(\d+)")


def parse_fsimage_version(name: str) -> int | None:
    """Return the transaction id of an fsimage filename, or None if it is not one."""
    match = FSIMAGE_PATTERN.fullmatch(name)
    if not match:
        return None
    return int(match.group(1))


@dataclass(frozen=True)
class ArtifactReference:
    """One discoverable fsimage version.

    Two references with the same identity are the same version, regardless of
    path, size or modification time.
    """

    identity: str  # filename or version token used for change detection
    path: str  # local path (staging file for downloads)
    version: int | None  # ordering key, None if identity carries no txid
    size_bytes: int


class ArtifactLocator(Protocol):
    """Produces a reference to the newest locally available fsimage."""

    async def locate_newest(self) -> ArtifactReference | None:
        """Return the newest fsimage, or None if nothing is available yet.

        Raises:
            FetchFailed: If a remote download failed
        """
        ...
