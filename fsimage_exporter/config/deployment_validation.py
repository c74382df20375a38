"""Startup logging of the effective exporter configuration."""

from loguru import logger

from fsimage_exporter.config.settings import AppSettings, settings


def log_deployment_configuration(app_settings: AppSettings = settings) -> None:
    """Log exporter configuration during application startup.

    Displays the fsimage source mode and the statistics breakdowns.
    Called from main.py lifespan function.
    """
    logger.info("-" * 80)

    if app_settings.fsimage.fetch_from_remote:
        _log_remote_config(app_settings)
    else:
        _log_local_config(app_settings)

    _log_statistics_config(app_settings)

    logger.info("-" * 80)


def _log_remote_config(app_settings: AppSettings) -> None:
    """Log remote fetch mode configuration."""
    fsimage = app_settings.fsimage
    logger.info("REMOTE MODE (download fsimage from NameNode)")
    logger.info(f"NameNode URLs:    {', '.join(fsimage.namenode_urls) or '(none)'}")
    if len(fsimage.namenode_urls) > 1:
        logger.info("  → only the first NameNode URL is used for downloads")
    logger.info(f"Staging path:     {fsimage.staging_path_resolved}")
    logger.info(f"Refresh interval: {fsimage.refresh_interval}s")

    # Never log the keytab contents, only where it lives
    if app_settings.kerberos.enabled:
        logger.info(f"Kerberos principal: {app_settings.kerberos.principal}")
        logger.info(f"Kerberos keytab:    {app_settings.kerberos.keytab_path}")
    else:
        logger.info("Kerberos: disabled")


def _log_local_config(app_settings: AppSettings) -> None:
    """Log local directory mode configuration."""
    fsimage = app_settings.fsimage
    logger.info("LOCAL MODE (scan fsimage directory)")
    logger.info(f"fsimage path:     {fsimage.fsimage_path_resolved or '(not set)'}")
    logger.info(f"Refresh interval: {fsimage.refresh_interval}s")


def _log_statistics_config(app_settings: AppSettings) -> None:
    """Log which statistics breakdowns are computed."""
    stats = app_settings.statistics
    logger.info(f"File size buckets: {', '.join(stats.file_size_buckets)}")
    if stats.paths:
        logger.info(f"Paths:     {', '.join(stats.paths)}")
    if stats.path_sets:
        logger.info(f"Path sets: {', '.join(sorted(stats.path_sets))}")
