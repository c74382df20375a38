"""Tests for exporter settings parsing and validation."""

import pytest
from pydantic import ValidationError
from pydantic_settings import SettingsConfigDict

from fsimage_exporter.config.settings import AppSettings, FsImageSettings, StatisticsSettings


class _IsolatedAppSettings(AppSettings):
    """Test-only subclass that disables environment loading."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_prefix="",
        extra="ignore",
    )

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


class _IsolatedFsImageSettings(FsImageSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (init_settings,)


class _IsolatedStatisticsSettings(StatisticsSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (init_settings,)


def create_test_settings(**kwargs):
    """Create AppSettings instance for testing without env loading.

    Note: When using validation_alias in Pydantic Settings, you must pass
    the ALIAS names (e.g., FSIMAGE_LOG_FORMAT) not the field names (e.g., log_format).
    """
    return _IsolatedAppSettings(**kwargs)


class TestNameNodeURLs:
    """NameNode URL list parsing."""

    def test_comma_separated_urls(self):
        fsimage = _IsolatedFsImageSettings(
            FSIMAGE_NAMENODE_URLS="http://nn1:9870, http://nn2:9870/"
        )
        assert fsimage.namenode_urls == ["http://nn1:9870", "http://nn2:9870"]

    def test_json_array_urls(self):
        fsimage = _IsolatedFsImageSettings(FSIMAGE_NAMENODE_URLS='["https://nn1:9871"]')
        assert fsimage.namenode_urls == ["https://nn1:9871"]

    def test_url_must_have_protocol(self):
        with pytest.raises(ValidationError, match="must start with http"):
            _IsolatedFsImageSettings(FSIMAGE_NAMENODE_URLS="nn1:9870")

    def test_defaults(self):
        fsimage = _IsolatedFsImageSettings()
        assert fsimage.namenode_urls == []
        assert fsimage.refresh_interval == 60
        assert fsimage.fetch_from_remote is False
        assert fsimage.fsimage_path_resolved is None

    def test_refresh_interval_bounds(self):
        with pytest.raises(ValidationError):
            _IsolatedFsImageSettings(FSIMAGE_REFRESH_INTERVAL=0)


class TestStatisticsSettings:
    """Paths, path sets and file size buckets."""

    def test_buckets_are_sorted_by_size(self):
        stats = _IsolatedStatisticsSettings(FSIMAGE_FILE_SIZE_BUCKETS="1 GiB,0,1 MiB")
        assert stats.file_size_buckets == ["0", "1 MiB", "1 GiB"]
        assert stats.file_size_bucket_bounds == [0.0, 1024.0**2, 1024.0**3]

    def test_invalid_bucket_unit(self):
        with pytest.raises(ValidationError, match="Invalid size"):
            _IsolatedStatisticsSettings(FSIMAGE_FILE_SIZE_BUCKETS=["1 MB"])

    def test_duplicate_buckets_rejected(self):
        with pytest.raises(ValidationError, match="distinct"):
            _IsolatedStatisticsSettings(FSIMAGE_FILE_SIZE_BUCKETS=["1024", "1 KiB"])

    def test_default_buckets(self):
        stats = _IsolatedStatisticsSettings()
        assert stats.file_size_buckets[0] == "0"
        assert stats.file_size_bucket_bounds[-1] == 10 * 1024.0**3

    def test_paths_must_be_absolute(self):
        with pytest.raises(ValidationError, match="absolute"):
            _IsolatedStatisticsSettings(FSIMAGE_PATHS="user/alice")

    def test_paths_from_comma_string(self):
        stats = _IsolatedStatisticsSettings(FSIMAGE_PATHS="/user/ab.*,/tmp")
        assert stats.paths == ["/user/ab.*", "/tmp"]

    def test_path_sets(self):
        stats = _IsolatedStatisticsSettings(
            FSIMAGE_PATH_SETS={"logs": ["/var/log", "/tmp/logs"]}
        )
        assert stats.path_sets == {"logs": ["/var/log", "/tmp/logs"]}

    def test_empty_path_set_rejected(self):
        with pytest.raises(ValidationError, match="at least one path"):
            _IsolatedStatisticsSettings(FSIMAGE_PATH_SETS={"empty": []})


class TestAppSettings:
    """Top-level settings."""

    def test_log_format_normalized(self):
        settings = create_test_settings(FSIMAGE_LOG_FORMAT="TEXT")
        assert settings.log_format == "text"

    def test_log_format_rejected(self):
        with pytest.raises(ValidationError, match="FSIMAGE_LOG_FORMAT"):
            create_test_settings(FSIMAGE_LOG_FORMAT="xml")

    def test_port_bounds(self):
        with pytest.raises(ValidationError):
            create_test_settings(FSIMAGE_EXPORTER_PORT=70000)
