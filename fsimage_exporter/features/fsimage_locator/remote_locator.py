"""Download the most recent fsimage from a NameNode web endpoint.

Uses the NameNode ImageServlet (the endpoint `hdfs dfsadmin -fetchImage` uses):
    GET {namenode}/imagetransfer?getimage=1&txid=latest

The servlet names the image in Content-Disposition and sends its MD5 in
X-MD5-Digest. Downloads stream into a ``.part`` file that is renamed over the
fixed staging file on success, so a failed transfer never leaves a partial
image where the parser would read it.
"""

import hashlib
import os
import re
from pathlib import Path

import httpx
from loguru import logger

from fsimage_exporter.common.errors import FetchFailed, InvalidConfiguration
from fsimage_exporter.features.fsimage_locator.artifact import (
    ArtifactReference,
    parse_fsimage_version,
)

STAGING_FILENAME = "fsimage.download"
IMAGE_TRANSFER_PATH = "/imagetransfer"
IMAGE_TRANSFER_PARAMS = {"getimage": "1", "txid": "latest"}
MD5_HEADER = "X-MD5-Digest"
CHUNK_SIZE = 1024 * 1024

_FILENAME_PATTERN = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


def parse_content_disposition_filename(header: str | None) -> str | None:
    """Extract the filename from a Content-Disposition header value."""
    if not header:
        return None
    match = _FILENAME_PATTERN.search(header)
    if not match:
        return None
    # Servlet sends a bare name, but never trust a path from the wire
    return os.path.basename(match.group(1).strip()) or None


def parse_content_length(header: str | None) -> int | None:
    """Parse a Content-Length header value.

    Raises:
        FetchFailed: If the value is not a non-negative integer
    """
    if header is None:
        return None
    try:
        length = int(header)
    except ValueError:
        raise FetchFailed(f"Invalid Content-Length header: {header!r}") from None
    if length < 0:
        raise FetchFailed(f"Invalid Content-Length header: {header!r}")
    return length


class RemoteFetchLocator:
    """Fetches the newest fsimage from the first configured NameNode.

    Only the first URL is tried; there is no fallback to the others.
    """

    def __init__(
        self,
        namenode_urls: list[str],
        staging_dir: str,
        timeout: float = 600.0,
        transport: httpx.AsyncBaseTransport | None = None,
        auth: httpx.Auth | None = None,
    ):
        """Initialize remote locator.

        Args:
            namenode_urls: NameNode web URLs, e.g. http://namenode:9870
            staging_dir: Directory for the staging file (created if absent)
            timeout: Read timeout in seconds for the image transfer
            transport: Optional httpx transport (tests inject MockTransport)
            auth: Optional httpx auth flow for secured NameNodes

        Raises:
            InvalidConfiguration: If no URL is given or staging_dir is unusable
        """
        if not namenode_urls:
            raise InvalidConfiguration(
                "Remote fetch is enabled but no NameNode URLs were provided (FSIMAGE_NAMENODE_URLS)"
            )

        staging = Path(staging_dir)
        try:
            staging.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InvalidConfiguration(f"Cannot create staging directory {staging}: {e}") from e
        if not staging.is_dir() or not os.access(staging, os.W_OK):
            raise InvalidConfiguration(f"Staging directory {staging} is not a writable directory")

        self.namenode_urls = list(namenode_urls)
        self.staging_file = staging / STAGING_FILENAME
        self.timeout = timeout
        self._transport = transport
        self.auth = auth

    @property
    def image_url(self) -> str:
        return f"{self.namenode_urls[0].rstrip('/')}{IMAGE_TRANSFER_PATH}"

    async def locate_newest(self) -> ArtifactReference:
        """Download the latest fsimage into the staging file.

        Returns:
            Reference to the staged image. Identity is the NameNode's filename
            (fsimage_<txid>) when reported, else its MD5, else the staging name.

        Raises:
            FetchFailed: On transport errors, non-2xx status, truncated body
                or checksum mismatch
        """
        part_path = self.staging_file.with_suffix(self.staging_file.suffix + ".part")
        logger.info(
            "Downloading fsimage",
            extra={"url": self.image_url, "staging_file": str(self.staging_file)},
        )

        try:
            md5 = hashlib.md5()  # noqa: S324 - matches NameNode digest, not used for security
            written = 0
            async with httpx.AsyncClient(  # noqa: SIM117
                timeout=httpx.Timeout(self.timeout, connect=30.0),
                follow_redirects=True,
                transport=self._transport,
                auth=self.auth,
            ) as client:
                async with client.stream(
                    "GET", self.image_url, params=IMAGE_TRANSFER_PARAMS
                ) as response:
                    response.raise_for_status()
                    filename = parse_content_disposition_filename(
                        response.headers.get("content-disposition")
                    )
                    expected_md5 = response.headers.get(MD5_HEADER)
                    expected_length = parse_content_length(
                        response.headers.get("content-length")
                    )

                    with part_path.open("wb") as f:
                        async for chunk in response.aiter_bytes(chunk_size=CHUNK_SIZE):
                            f.write(chunk)
                            md5.update(chunk)
                            written += len(chunk)

            if expected_length is not None and written != expected_length:
                raise FetchFailed(
                    f"Truncated fsimage download: got {written} of {expected_length} bytes"
                )

            actual_md5 = md5.hexdigest()
            if expected_md5 and actual_md5 != expected_md5.lower():
                raise FetchFailed(
                    f"Checksum mismatch for downloaded fsimage: expected {expected_md5}, got {actual_md5}"
                )

            # Atomic rename over the previous staged image
            os.replace(part_path, self.staging_file)

        except FetchFailed:
            part_path.unlink(missing_ok=True)
            raise
        except httpx.HTTPError as exc:
            part_path.unlink(missing_ok=True)
            raise FetchFailed(f"Download from {self.image_url} failed: {exc}") from exc
        except OSError as exc:
            part_path.unlink(missing_ok=True)
            raise FetchFailed(f"File write error for {self.staging_file}: {exc}") from exc

        identity = filename or expected_md5 or STAGING_FILENAME
        logger.info(
            "Downloaded fsimage",
            extra={"identity": identity, "size_bytes": written},
        )
        return ArtifactReference(
            identity=identity,
            path=str(self.staging_file),
            version=parse_fsimage_version(identity),
            size_bytes=written,
        )

    def __repr__(self) -> str:
        return f"RemoteFetchLocator({self.image_url!r})"
