"""
Archive extraction and install primitives for nativekit.

This module provides:
- Streaming tar.gz extraction with directory-traversal defense
- Bounded single-stream bzip2 decompression
- Locating a file by exact name in an extracted tree
- Atomic install (rename, with a copy fallback across filesystems)
- Small best-effort helpers (executable bit, symlinks, optional files)
"""

import bz2
import logging
import os
import posixpath
import shutil
import tarfile
import tempfile
from contextlib import contextmanager
from pathlib import Path, PureWindowsPath
from typing import Union

from nativekit.core.exceptions import ArchiveError, InsecureArchiveError, InstallError

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"

MAX_DECOMPRESSED_SIZE = 100 * 1024 * 1024
COPY_CHUNK_SIZE = 64 * 1024


# ============================================================================
# Archive Extraction
# ============================================================================


def _safe_member_path(name: str) -> str:
    """
    Clean an archive member name and reject anything escaping the root.

    Raises:
        InsecureArchiveError: If the cleaned path is absolute or starts with '..'
    """
    cleaned = posixpath.normpath(name.replace("\\", "/"))
    if (
        cleaned == ".."
        or cleaned.startswith("../")
        or posixpath.isabs(cleaned)
        or PureWindowsPath(cleaned).drive
    ):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )
    return cleaned


def extract_tar_gz(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract a .tar.gz archive entry by entry.

    Every member name is validated before anything is written for it.
    Directories are created, regular files copied; any other entry type
    (symlinks, hard links, devices, FIFOs) fails the extraction.

    Args:
        archive_path: Path to the archive
        destination: Existing directory to extract into

    Raises:
        InsecureArchiveError: If a member escapes the destination
        ArchiveError: If the archive is corrupt or has unsupported entries
    """
    destination = Path(destination)

    try:
        with tarfile.open(archive_path, mode="r|gz") as tar:
            for member in tar:
                relative = _safe_member_path(member.name)
                target = destination / relative

                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isreg():
                    target.parent.mkdir(parents=True, exist_ok=True)
                    source = tar.extractfile(member)
                    with source, open(target, "wb") as out:
                        shutil.copyfileobj(source, out, COPY_CHUNK_SIZE)
                else:
                    raise ArchiveError(f"Unsupported archive entry: {member.name}")
    except ArchiveError:
        raise
    except (tarfile.TarError, OSError, EOFError) as e:
        raise ArchiveError(f"Failed to extract {archive_path}: {e}") from e


def decompress_bzip2(
    source: Union[str, Path],
    destination: Union[str, Path],
    max_size: int = MAX_DECOMPRESSED_SIZE,
) -> int:
    """
    Decompress a single bzip2 stream into one file.

    Args:
        source: Compressed file
        destination: Output file (created or truncated)
        max_size: Output size ceiling in bytes

    Returns:
        Number of bytes written

    Raises:
        ArchiveError: If the stream is corrupt or exceeds max_size
    """
    written = 0
    try:
        with bz2.open(source, "rb") as reader, open(destination, "wb") as out:
            while chunk := reader.read(COPY_CHUNK_SIZE):
                written += len(chunk)
                if written > max_size:
                    raise ArchiveError(
                        f"Decompressed size of {source} exceeds {max_size} bytes"
                    )
                out.write(chunk)
    except ArchiveError:
        raise
    except (OSError, EOFError, ValueError) as e:
        raise ArchiveError(f"Failed to decompress {source}: {e}") from e
    return written


def find_file_by_name(root: Union[str, Path], name: str) -> Path:
    """
    Find the first regular file called ``name`` below ``root``.

    Directories are walked in sorted order so the result is deterministic.

    Raises:
        ArchiveError: If no such file exists
    """
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        if name in filenames:
            candidate = Path(dirpath) / name
            if candidate.is_file():
                return candidate
    raise ArchiveError(f"File {name} not found in archive")


# ============================================================================
# Install Operations
# ============================================================================


def move_file(source: Path, destination: Path) -> None:
    """
    Move a file into place atomically.

    Tries a rename first. When that fails (e.g. across filesystems) the file
    is copied to a temporary sibling of the destination, renamed over the
    destination, and the source is deleted.

    Raises:
        InstallError: If the file cannot be installed
    """
    try:
        os.replace(source, destination)
        return
    except OSError as e:
        logger.debug(f"Rename {source} -> {destination} failed ({e}), copying instead")

    try:
        fd, temp_name = tempfile.mkstemp(
            dir=destination.parent, prefix=f".{destination.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise InstallError(f"Failed to install {destination}: {e}") from e
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as out, open(source, "rb") as src:
            shutil.copyfileobj(src, out, COPY_CHUNK_SIZE)
            out.flush()
            os.fsync(out.fileno())
        os.replace(temp_path, destination)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise InstallError(f"Failed to install {destination}: {e}") from e

    source.unlink(missing_ok=True)


def make_executable(path: Path) -> None:
    """Set mode 0o755 on POSIX systems (no-op on Windows)."""
    if IS_WINDOWS:
        return
    try:
        os.chmod(path, 0o755)
    except OSError as e:
        logger.warning(f"Could not mark {path} executable: {e}")


def replace_symlink(link_path: Path, target_name: str) -> None:
    """
    Create or replace a relative symlink ``link_path -> target_name``.

    Best effort: failures are logged, the versioned file stays usable.
    """
    try:
        link_path.unlink(missing_ok=True)
        os.symlink(target_name, link_path)
        logger.debug(f"Linked {link_path} -> {target_name}")
    except OSError as e:
        logger.warning(f"Could not create symlink {link_path}: {e}")


def copy_optional_file(root: Path, name: str, destination: Path) -> bool:
    """
    Copy ``name`` from an extracted tree if present (e.g. LICENSE, NOTICE).

    Returns:
        True if the file was copied
    """
    try:
        found = find_file_by_name(root, name)
    except ArchiveError:
        return False

    try:
        shutil.copyfile(found, destination)
    except OSError as e:
        logger.warning(f"Could not copy {name} to {destination}: {e}")
        return False
    return True


@contextmanager
def temporary_directory(parent: Path, prefix: str):
    """
    Context manager for a temporary directory inside ``parent``.

    Yields:
        Path to the temporary directory, removed on exit
    """
    try:
        temp_dir = Path(tempfile.mkdtemp(dir=parent, prefix=prefix))
    except OSError as e:
        raise InstallError(f"Failed to create temp directory in {parent}: {e}") from e

    try:
        yield temp_dir
    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)


__all__ = [
    "MAX_DECOMPRESSED_SIZE",
    "extract_tar_gz",
    "decompress_bzip2",
    "find_file_by_name",
    "move_file",
    "make_executable",
    "replace_symlink",
    "copy_optional_file",
    "temporary_directory",
]
