"""Pytest configuration.

IMPORTANT: Environment variables must be set BEFORE importing app code.
The settings singleton is created at import time, so the env var setup
happens at module level and app imports are deferred to tests and fixtures.
"""

import os
import tempfile

# Local mode against an empty temp directory: the refresh task started by the
# app lifespan finds nothing and idles.
if "FSIMAGE_PATH" not in os.environ:
    _test_base_dir = tempfile.mkdtemp(prefix="fsimage_exporter_test_")
    os.environ["FSIMAGE_PATH"] = _test_base_dir

os.environ.setdefault("FSIMAGE_FETCH_FROM_REMOTE", "false")
os.environ.setdefault("FSIMAGE_REFRESH_INTERVAL", "3600")
os.environ.setdefault("FSIMAGE_LOG_FORMAT", "text")
os.environ.setdefault("FSIMAGE_LOG_LEVEL", "debug")
