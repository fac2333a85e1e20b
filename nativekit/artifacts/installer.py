"""
Fetch -> verify -> extract -> install pipeline.

This module orchestrates getting one verified library into its cache entry:

1. Short-circuit if the final path already exists
2. Take the destination directory's download lock, re-check existence
3. Stream the asset into a temporary file while hashing it
4. Compare digests; on mismatch nothing is ever installed
5. Extract (tar.gz tree or single bzip2 stream) into a temporary directory
6. Atomically move the library to its final path and finish the install
   (executable bit, optional symlink, LICENSE/NOTICE copies)

Every temporary file and directory is created next to the destination and
removed on every exit path. The final path only appears through the last
atomic move, so it is never observably partial or unverified.
"""

import enum
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

from nativekit.core.cache import CacheEntry
from nativekit.core.config import DownloadOptions
from nativekit.core.download import fetch_to_temp
from nativekit.core.exceptions import InstallError
from nativekit.core.filesystem import (
    copy_optional_file,
    decompress_bzip2,
    extract_tar_gz,
    find_file_by_name,
    make_executable,
    move_file,
    replace_symlink,
    temporary_directory,
)
from nativekit.core.locking import download_lock

logger = logging.getLogger(__name__)


class ArchiveKind(enum.Enum):
    """How a downloaded asset is unpacked."""

    TAR_GZ = "tar.gz"
    BZIP2 = "bz2"
    RAW = "raw"

    @classmethod
    def from_name(cls, name: str) -> "ArchiveKind":
        """
        Guess the archive kind from a URL or file name.

        Example:
            >>> ArchiveKind.from_name("libopenh264-2.5.1-mac-arm64.dylib.bz2")
            <ArchiveKind.BZIP2: 'bz2'>
        """
        lowered = name.lower()
        if lowered.endswith((".tar.gz", ".tgz")):
            return cls.TAR_GZ
        if lowered.endswith(".bz2"):
            return cls.BZIP2
        return cls.RAW

    @property
    def suffix(self) -> str:
        return {"tar.gz": ".tgz", "bz2": ".bz2", "raw": ""}[self.value]


@dataclass(frozen=True)
class InstallRequest:
    """
    One artifact to install into the cache.

    Attributes:
        component: Component name used for temp files and messages
        url: Asset download URL
        expected_sha256: Required digest, or None to skip verification
        entry: Cache entry that receives the library
        archive_kind: How to unpack the asset
        symlink_name: Optional unversioned link created next to the library
        extra_files: Files copied from the archive next to the library if present
    """

    component: str
    url: str
    expected_sha256: Optional[str]
    entry: CacheEntry
    archive_kind: ArchiveKind
    symlink_name: Optional[str] = None
    extra_files: Tuple[str, ...] = field(default_factory=tuple)


def ensure_installed(request: InstallRequest, options: DownloadOptions) -> bool:
    """
    Make sure the request's library exists at its final cache path.

    Args:
        request: What to install and where
        options: Timeout and lock retry settings

    Returns:
        True if this call downloaded and installed the library, False if it
        was already cached (possibly installed meanwhile by another process)

    Raises:
        NetworkError, IntegrityMismatchError, ArchiveError, LockTimeoutError,
        InstallError: The install failed; nothing exists at the final path
    """
    entry = request.entry
    if entry.exists():
        logger.debug(f"{request.component} already cached: {entry.path}")
        return False

    entry.prepare()

    with download_lock(
        entry.directory,
        retry_delay=options.lock_retry_delay,
        attempts=options.lock_attempts,
    ):
        if entry.exists():
            logger.info(f"{request.component} installed by another process: {entry.path}")
            return False
        install_artifact(request, options.timeout)

    if not entry.exists():
        raise InstallError(f"{request.component} not found after download: {entry.path}")
    return True


def install_artifact(request: InstallRequest, timeout: float) -> Path:
    """
    Download, verify, extract and install one artifact (lock must be held).

    Returns:
        The final library path
    """
    entry = request.entry
    start = time.time()

    fetched = fetch_to_temp(
        request.url,
        entry.directory,
        prefix=f"{request.component}-download-",
        suffix=request.archive_kind.suffix,
        expected_sha256=request.expected_sha256,
        timeout=timeout,
    )
    try:
        with temporary_directory(entry.directory, f"{request.component}-extract-") as extract_dir:
            library = _extract_library(request, fetched.path, extract_dir)

            move_file(library, entry.path)
            make_executable(entry.path)

            if request.symlink_name:
                replace_symlink(entry.directory / request.symlink_name, entry.library_name)

            for name in request.extra_files:
                copy_optional_file(extract_dir, name, entry.directory / name)
    finally:
        fetched.path.unlink(missing_ok=True)

    logger.info(
        f"Installed {request.component} to {entry.path} in {time.time() - start:.2f}s"
    )
    return entry.path


def _extract_library(request: InstallRequest, archive: Path, extract_dir: Path) -> Path:
    library_name = request.entry.library_name
    kind = request.archive_kind

    if kind is ArchiveKind.TAR_GZ:
        extract_tar_gz(archive, extract_dir)
        return find_file_by_name(extract_dir, library_name)

    target = extract_dir / library_name
    if kind is ArchiveKind.BZIP2:
        decompress_bzip2(archive, target)
    else:
        move_file(archive, target)
    return target


__all__ = ["ArchiveKind", "InstallRequest", "ensure_installed", "install_artifact"]
