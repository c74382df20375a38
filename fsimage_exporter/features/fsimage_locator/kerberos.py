"""Kerberos ticket acquisition for secured NameNodes.

The ticket is acquired once at startup with ``kinit -kt <keytab> <principal>``
into the process credential cache. Downloads then authenticate with SPNEGO
using that ticket (``spnego_auth``).
"""

import subprocess
from pathlib import Path

import httpx
from loguru import logger

from fsimage_exporter.common.errors import InvalidConfiguration
from fsimage_exporter.config.settings import KerberosSettings


def login_from_keytab(kerberos: KerberosSettings, timeout: float = 30.0) -> None:
    """Acquire a Kerberos ticket for the configured principal.

    Args:
        kerberos: Principal, keytab and kinit command
        timeout: Seconds to wait for kinit

    Raises:
        InvalidConfiguration: If principal or keytab is missing, the keytab
            does not exist, or kinit fails
    """
    principal, keytab = kerberos.principal, kerberos.keytab_path
    logger.info(f"Using principal: {principal}, keytab path: {keytab}")

    if not principal or not keytab:
        raise InvalidConfiguration(
            "Please check that both principal and keytab are given "
            "(FSIMAGE_KERBEROS_PRINCIPAL, FSIMAGE_KERBEROS_KEYTAB)"
        )
    if not Path(keytab).is_file():
        raise InvalidConfiguration(f"Keytab {keytab} does not exist")

    try:
        result = subprocess.run(
            [kerberos.kinit_command, "-kt", keytab, principal],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise InvalidConfiguration(f"Could not run {kerberos.kinit_command}: {e}") from e

    if result.returncode != 0:
        raise InvalidConfiguration(
            f"kinit failed for {principal} (exit {result.returncode}): {result.stderr.strip()}"
        )

    logger.info(f"Kerberos ticket acquired for {principal}")


def spnego_auth() -> httpx.Auth:
    """httpx auth flow negotiating with the ticket from ``login_from_keytab``.

    Hadoop's AuthenticationFilter does not always return a mutual
    authentication token, so mutual authentication is optional.
    """
    from httpx_gssapi import OPTIONAL, HTTPSPNEGOAuth

    return HTTPSPNEGOAuth(mutual_authentication=OPTIONAL)
