"""Shared fixtures for exporter tests.

Provides isolated settings, fsimage directories, and fake ``hdfs`` commands
that replay (or fail like) the Offline Image Viewer.
"""

import stat
from pathlib import Path

import pytest
from helpers import create_statistics_settings

from fsimage_exporter.config.settings import DEFAULT_FILE_SIZE_BUCKETS, StatisticsSettings


def _write_script(path: Path, body: str) -> str:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


@pytest.fixture
def statistics_settings() -> StatisticsSettings:
    return create_statistics_settings(FSIMAGE_FILE_SIZE_BUCKETS=list(DEFAULT_FILE_SIZE_BUCKETS))


@pytest.fixture
def fsimage_dir(tmp_path: Path) -> Path:
    """Empty directory standing in for dfs.namenode.name.dir/current."""
    path = tmp_path / "current"
    path.mkdir()
    return path


@pytest.fixture
def fake_hdfs(tmp_path: Path) -> str:
    """A fake ``hdfs`` command: ``hdfs oiv -p Delimited -i <file> -o -`` cats <file>."""
    return _write_script(tmp_path / "hdfs", '[ "$1" = "oiv" ] || exit 64\ncat "$5"\n')


@pytest.fixture
def failing_hdfs(tmp_path: Path) -> str:
    """A fake ``hdfs`` command that fails like oiv does on a corrupt image."""
    return _write_script(
        tmp_path / "hdfs-failing",
        'echo "java.io.IOException: Unsupported layout version" >&2\nexit 255\n',
    )
