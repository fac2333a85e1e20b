"""
Streaming HTTP download with concurrent SHA-256 verification.

The response body is streamed into a temporary file created next to the
final destination, passing through a HashingWriter so the digest is ready as
soon as the last byte lands. Downloads are never resumed: any failure
discards the temporary file and a retry starts from byte zero.

Downloads are bounded by a fixed wall-clock timeout. Callers cannot cancel
an in-flight download early.
"""

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests
from requests.exceptions import RequestException

from nativekit import __version__
from nativekit.core.exceptions import InstallError, NetworkError
from nativekit.core.verification import HashingWriter

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024
CONNECT_TIMEOUT = 30.0
USER_AGENT = f"nativekit/{__version__}"


@dataclass(frozen=True)
class FetchedFile:
    """A fully downloaded (and, if requested, verified) temporary file."""

    path: Path
    sha256: str
    size: int


def fetch_to_temp(
    url: str,
    directory: Path,
    prefix: str,
    suffix: str = "",
    expected_sha256: Optional[str] = None,
    timeout: float = 600.0,
) -> FetchedFile:
    """
    Download a URL into a new temporary file inside ``directory``.

    The caller owns the returned file and must remove it. On any error the
    temporary file has already been removed.

    Args:
        url: URL to download
        directory: Directory for the temporary file (same filesystem as the
            final install location)
        prefix: Temporary file name prefix
        suffix: Temporary file name suffix
        expected_sha256: If set, the digest the body must match
        timeout: Wall-clock limit for the whole transfer in seconds

    Returns:
        FetchedFile describing the downloaded bytes

    Raises:
        NetworkError: Transport failure, non-2xx status or timeout
        IntegrityMismatchError: Body digest differs from expected_sha256
        InstallError: Temporary file cannot be created or written

    Example:
        >>> fetched = fetch_to_temp(url, dest_dir, "shim-download-", ".tgz", sha)
        >>> try:
        ...     install(fetched.path)
        ... finally:
        ...     fetched.path.unlink(missing_ok=True)
    """
    try:
        fd, temp_name = tempfile.mkstemp(dir=directory, prefix=prefix, suffix=suffix)
    except OSError as e:
        raise InstallError(f"Failed to create download temp file in {directory}: {e}") from e

    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as sink:
            writer = HashingWriter(sink)
            _stream(url, writer, timeout)

        if expected_sha256:
            writer.verify(expected_sha256, url.rsplit("/", 1)[-1])
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise

    logger.info(f"Download complete: {url} ({writer.bytes_written} bytes)")
    return FetchedFile(path=temp_path, sha256=writer.hexdigest(), size=writer.bytes_written)


def _stream(url: str, writer: HashingWriter, timeout: float) -> None:
    """Copy the response body into the writer, enforcing the deadline."""
    deadline = time.monotonic() + timeout
    logger.info(f"Downloading from {url}")

    try:
        response = requests.get(
            url,
            stream=True,
            timeout=(min(CONNECT_TIMEOUT, timeout), timeout),
            allow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
    except RequestException as e:
        raise NetworkError(f"Download {url} failed: {e}") from e

    with response:
        if not 200 <= response.status_code < 300:
            raise NetworkError(
                f"Download {url} failed: unexpected status "
                f"{response.status_code} {response.reason or ''}".rstrip()
            )

        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if not chunk:
                    continue
                try:
                    writer.write(chunk)
                except OSError as e:
                    raise InstallError(f"Failed to write download of {url}: {e}") from e
                if time.monotonic() > deadline:
                    raise NetworkError(
                        f"Download {url} exceeded the {timeout:.0f}s time limit"
                    )
        except RequestException as e:
            raise NetworkError(f"Download {url} failed: {e}") from e


__all__ = ["FetchedFile", "fetch_to_temp", "CHUNK_SIZE"]
