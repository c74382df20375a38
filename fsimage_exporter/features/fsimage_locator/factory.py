"""Build the configured fsimage locator."""

from fsimage_exporter.common.errors import InvalidConfiguration
from fsimage_exporter.config.settings import AppSettings
from fsimage_exporter.features.fsimage_locator.artifact import ArtifactLocator
from fsimage_exporter.features.fsimage_locator.kerberos import login_from_keytab, spnego_auth
from fsimage_exporter.features.fsimage_locator.local_locator import LocalDirectoryLocator
from fsimage_exporter.features.fsimage_locator.remote_locator import RemoteFetchLocator


def build_locator(app_settings: AppSettings) -> ArtifactLocator:
    """Create the locator for the configured mode.

    Remote mode acquires Kerberos credentials first when any are configured
    and downloads with SPNEGO auth.

    Raises:
        InvalidConfiguration: If the selected mode is not fully configured
    """
    fsimage = app_settings.fsimage

    if not fsimage.fetch_from_remote:
        if not fsimage.fsimage_path_resolved:
            raise InvalidConfiguration(
                "FSIMAGE_PATH must point to the fsimage directory when remote fetch is disabled"
            )
        return LocalDirectoryLocator(fsimage.fsimage_path_resolved)

    if not fsimage.namenode_urls:
        raise InvalidConfiguration("Remote option is active but no NameNode URLs have been provided")

    auth = None
    if app_settings.kerberos.enabled:
        login_from_keytab(app_settings.kerberos)
        auth = spnego_auth()

    return RemoteFetchLocator(
        namenode_urls=list(fsimage.namenode_urls),
        staging_dir=fsimage.staging_path_resolved,
        timeout=fsimage.fetch_timeout,
        auth=auth,
    )
