"""
Exporter settings using Pydantic Settings v2.

Environment variables are loaded from .env file and can be overridden
by actual environment variables.
"""

import json
from pathlib import Path
from typing import Annotated

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fsimage_exporter.common.iec_units import parse_iec_size

DEFAULT_FILE_SIZE_BUCKETS = ["0", "1 MiB", "32 MiB", "64 MiB", "128 MiB", "1 GiB", "10 GiB"]


def find_env_file() -> str:
    """
    Find .env file in current directory or parent directory.

    Returns:
        Path to .env file (current dir, parent dir, or default ".env")
    """
    current = Path.cwd() / ".env"
    parent = Path.cwd().parent / ".env"

    if current.exists():
        return str(current)
    elif parent.exists():
        return str(parent)
    else:
        # Fallback to default (will use environment variables only)
        return ".env"


def _parse_str_list(v: str | list[str] | None) -> list[str]:
    """Parse a list from a JSON array string, comma-separated string, or list."""
    if v is None:
        return []
    if isinstance(v, str):
        try:
            parsed = json.loads(v)
        except json.JSONDecodeError:
            # Fallback to comma-separated
            return [item.strip() for item in v.split(",") if item.strip()]
        if isinstance(parsed, str):
            return [parsed]
        return parsed
    return v


class FsImageSettings(BaseSettings):
    """Where fsimage files come from and how often to look for new ones."""

    fsimage_path: Annotated[
        str | None,
        Field(
            default=None,
            description="Directory where the NameNode stores fsimage snapshots (local mode)",
            validation_alias="FSIMAGE_PATH",
        ),
    ]
    fetch_from_remote: Annotated[
        bool,
        Field(
            default=False,
            description="Download the newest fsimage from a NameNode instead of scanning a directory",
            validation_alias="FSIMAGE_FETCH_FROM_REMOTE",
        ),
    ]
    # Note: Type is str | list[str] so Pydantic Settings falls back to the raw
    # string when the env var is not JSON. The validator splits on commas.
    namenode_urls: Annotated[
        str | list[str],
        Field(
            default_factory=list,
            description="NameNode web URLs (JSON array or comma-separated). Only the first is used.",
            validation_alias="FSIMAGE_NAMENODE_URLS",
        ),
    ]
    staging_path: Annotated[
        str,
        Field(
            default="/tmp/fsimage-exporter",
            description="Directory for the downloaded fsimage staging file (remote mode)",
            validation_alias="FSIMAGE_STAGING_PATH",
        ),
    ]
    refresh_interval: Annotated[
        int,
        Field(
            default=60,
            ge=1,
            le=86400,
            description="Seconds between the end of one refresh cycle and the start of the next",
            validation_alias="FSIMAGE_REFRESH_INTERVAL",
        ),
    ]
    fetch_timeout: Annotated[
        float,
        Field(
            default=600.0,
            gt=0,
            description="Read timeout in seconds for fsimage downloads",
            validation_alias="FSIMAGE_FETCH_TIMEOUT",
        ),
    ]
    hdfs_command: Annotated[
        str,
        Field(
            default="hdfs",
            description="Hadoop CLI used to run the Offline Image Viewer (hdfs oiv)",
            validation_alias="FSIMAGE_HDFS_COMMAND",
        ),
    ]

    @field_validator("namenode_urls", mode="before")
    @classmethod
    def parse_namenode_urls(cls, v: str | list[str] | None) -> list[str]:
        """Parse NameNode URLs and require an http(s) scheme.

        Args:
            v: Either a JSON string, comma-separated string, or list of URLs.

        Returns:
            List of URLs without trailing slashes.
        """
        urls = _parse_str_list(v)
        for url in urls:
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"NameNode URL must start with http:// or https://. Got: {url}")
        return [url.rstrip("/") for url in urls]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def fsimage_path_resolved(self) -> str | None:
        """Resolved absolute fsimage directory, or None when unset."""
        if not self.fsimage_path:
            return None
        return str(Path(self.fsimage_path).resolve())

    @computed_field  # type: ignore[prop-decorator]
    @property
    def staging_path_resolved(self) -> str:
        """Resolved absolute staging directory."""
        return str(Path(self.staging_path).resolve())

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


class KerberosSettings(BaseSettings):
    """Kerberos credentials for SPNEGO-protected NameNode web endpoints."""

    principal: Annotated[
        str | None,
        Field(
            default=None,
            description="Kerberos principal (e.g. exporter/host@REALM)",
            validation_alias="FSIMAGE_KERBEROS_PRINCIPAL",
        ),
    ]
    keytab_path: Annotated[
        str | None,
        Field(
            default=None,
            description="Path to the keytab holding the principal's key",
            validation_alias="FSIMAGE_KERBEROS_KEYTAB",
        ),
    ]
    kinit_command: Annotated[
        str,
        Field(
            default="kinit",
            description="kinit binary used to acquire the ticket at startup",
            validation_alias="FSIMAGE_KINIT_COMMAND",
        ),
    ]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def enabled(self) -> bool:
        """True when any credential parameter is configured."""
        return bool(self.principal or self.keytab_path)

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


class StatisticsSettings(BaseSettings):
    """Which breakdowns to compute and how to bucket file sizes.

    Paths may end in a regular expression component, like "/user/ab.*",
    which expands to every matching direct child directory.
    """

    paths: Annotated[
        str | list[str],
        Field(
            default_factory=list,
            description="Paths to report statistics for (JSON array or comma-separated)",
            validation_alias="FSIMAGE_PATHS",
        ),
    ]
    path_sets: Annotated[
        dict[str, list[str]],
        Field(
            default_factory=dict,
            description='Named groups of paths as JSON, e.g. {"logs": ["/var/log", "/tmp/logs"]}',
            validation_alias="FSIMAGE_PATH_SETS",
        ),
    ]
    file_size_buckets: Annotated[
        str | list[str],
        Field(
            default_factory=lambda: list(DEFAULT_FILE_SIZE_BUCKETS),
            description="File size distribution bucket upper bounds (KiB, MiB, GiB, TiB, PiB)",
            validation_alias="FSIMAGE_FILE_SIZE_BUCKETS",
        ),
    ]
    skip_file_distribution_for_user_stats: Annotated[
        bool,
        Field(default=False, validation_alias="FSIMAGE_SKIP_FILE_DISTRIBUTION_FOR_USER_STATS"),
    ]
    skip_file_distribution_for_group_stats: Annotated[
        bool,
        Field(default=False, validation_alias="FSIMAGE_SKIP_FILE_DISTRIBUTION_FOR_GROUP_STATS"),
    ]
    skip_file_distribution_for_path_stats: Annotated[
        bool,
        Field(default=False, validation_alias="FSIMAGE_SKIP_FILE_DISTRIBUTION_FOR_PATH_STATS"),
    ]
    skip_file_distribution_for_path_set_stats: Annotated[
        bool,
        Field(
            default=False, validation_alias="FSIMAGE_SKIP_FILE_DISTRIBUTION_FOR_PATH_SET_STATS"
        ),
    ]

    @field_validator("paths", mode="before")
    @classmethod
    def parse_paths(cls, v: str | list[str] | None) -> list[str]:
        """Parse configured paths; each must be absolute."""
        paths = _parse_str_list(v)
        for path in paths:
            if not path.startswith("/"):
                raise ValueError(f"Path must be absolute: {path}")
        return paths

    @field_validator("path_sets")
    @classmethod
    def validate_path_sets(cls, v: dict[str, list[str]]) -> dict[str, list[str]]:
        """Require every path set to name at least one absolute path."""
        for name, members in v.items():
            if not members:
                raise ValueError(f"Path set '{name}' must contain at least one path")
            for path in members:
                if not path.startswith("/"):
                    raise ValueError(f"Path set '{name}' contains a relative path: {path}")
        return v

    @field_validator("file_size_buckets", mode="before")
    @classmethod
    def parse_file_size_buckets(cls, v: str | list[str] | None) -> list[str]:
        """Validate IEC bucket strings and order them by size."""
        buckets = [str(b) for b in _parse_str_list(v)]
        if not buckets:
            raise ValueError("At least one file size bucket is required")
        sizes = [parse_iec_size(b) for b in buckets]
        if len(set(sizes)) != len(sizes):
            raise ValueError(f"File size buckets must be distinct: {buckets}")
        return [b for _, b in sorted(zip(sizes, buckets, strict=True))]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def file_size_bucket_bounds(self) -> list[float]:
        """Bucket upper bounds in bytes, ascending."""
        return [parse_iec_size(b) for b in self.file_size_buckets]

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )


class AppSettings(BaseSettings):
    """Main exporter settings"""

    # Environment
    exporter_env: Annotated[
        str,
        Field(
            default="development",
            description="Environment (development/production)",
            validation_alias="FSIMAGE_EXPORTER_ENV",
        ),
    ]

    # Server
    host: Annotated[
        str,
        Field(
            default="0.0.0.0",
            description="HTTP bind address for the metrics endpoint",
            validation_alias="FSIMAGE_EXPORTER_HOST",
        ),
    ]
    port: Annotated[
        int,
        Field(
            default=9709,
            ge=1,
            le=65535,
            description="HTTP server port serving /metrics",
            validation_alias="FSIMAGE_EXPORTER_PORT",
        ),
    ]

    # Logging
    log_level: Annotated[
        str,
        Field(
            default="info",
            description="Log level: debug, info, warning, error",
            validation_alias="FSIMAGE_LOG_LEVEL",
        ),
    ]
    log_format: Annotated[
        str,
        Field(
            default="json",
            description="Log format: json, text",
            validation_alias="FSIMAGE_LOG_FORMAT",
        ),
    ]

    # Nested settings
    fsimage: Annotated[
        FsImageSettings, Field(default_factory=FsImageSettings, description="fsimage source settings")
    ]
    kerberos: Annotated[
        KerberosSettings,
        Field(default_factory=KerberosSettings, description="Kerberos credential settings"),
    ]
    statistics: Annotated[
        StatisticsSettings,
        Field(default_factory=StatisticsSettings, description="Statistics breakdown settings"),
    ]

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Only json and text formats are supported."""
        if v.lower() not in ("json", "text"):
            raise ValueError(f"FSIMAGE_LOG_FORMAT must be 'json' or 'text'. Got: {v}")
        return v.lower()

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance (singleton, loaded once at import)
settings = AppSettings()
