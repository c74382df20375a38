"""Decide whether a located fsimage is a new version."""

from fsimage_exporter.features.fsimage_locator.artifact import ArtifactReference


def has_changed(previous_identity: str | None, candidate: ArtifactReference) -> bool:
    """Compare by identity only; size and modification time are ignored.

    Returns True on the very first cycle (no previous identity).
    """
    return candidate.identity != previous_identity
