"""
Cross-process download lock for nativekit.

The unit of mutual exclusion is the destination directory. A
``.download.lock`` file inside it is created with ``O_CREAT | O_EXCL``:
existence means held, and the atomic create is the test-and-set. Because the
lock lives on the filesystem it excludes independent processes sharing one
cache root, not only threads. The file is empty and its contents are never
inspected, so any writer following the same protocol is excluded too.

Acquisition retries at a fixed delay for a bounded number of attempts and
then fails with LockTimeoutError instead of blocking forever. A lock file is
never reclaimed automatically: one left behind by a crashed holder blocks
installs into that directory until it is removed (``nativekit unlock``).

Usage:
    from nativekit.core.locking import download_lock

    with download_lock(dest_dir, retry_delay=0.2, attempts=50):
        if not final_path.exists():
            install()
"""

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path

from nativekit.core.exceptions import InstallError, LockTimeoutError

logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".download.lock"

_CREATE_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_EXCL


def lock_path_for(directory: Path) -> Path:
    """Path of the lock file guarding a destination directory."""
    return Path(directory) / LOCK_FILE_NAME


def _try_create(lock_path: Path) -> bool:
    """
    Attempt the exclusive create once.

    Returns:
        True if this call created the lock file, False if it already exists

    Raises:
        InstallError: If the lock file cannot be created for another reason
    """
    try:
        fd = os.open(str(lock_path), _CREATE_FLAGS, 0o644)
    except FileExistsError:
        return False
    except PermissionError as e:
        # Windows reports a file pending deletion as access denied
        if os.name == "nt" and lock_path.exists():
            return False
        raise InstallError(f"Failed to create download lock {lock_path}: {e}") from e
    except OSError as e:
        raise InstallError(f"Failed to create download lock {lock_path}: {e}") from e
    os.close(fd)
    return True


def acquire_lock(lock_path: Path, retry_delay: float, attempts: int) -> None:
    """
    Create ``lock_path`` exclusively, retrying at a fixed delay.

    Raises:
        LockTimeoutError: If the file still exists after all attempts
        InstallError: If the lock file cannot be created for another reason
    """
    for attempt in range(1, attempts + 1):
        if _try_create(lock_path):
            return
        if attempt < attempts:
            logger.debug(f"Download lock {lock_path} held, retry {attempt}/{attempts}")
            time.sleep(retry_delay)

    logger.error(f"Could not acquire download lock {lock_path}")
    raise LockTimeoutError(lock_path, attempts)


def release_lock(lock_path: Path) -> None:
    """Delete a held lock file. A file already removed by hand is not an error."""
    try:
        lock_path.unlink()
    except FileNotFoundError:
        logger.warning(f"Download lock {lock_path} was removed while held")


@contextmanager
def download_lock(directory: Path, retry_delay: float = 0.2, attempts: int = 50):
    """
    Hold the download lock for a destination directory.

    Args:
        directory: Destination directory (must exist)
        retry_delay: Seconds to sleep between attempts
        attempts: Number of attempts before giving up

    Yields:
        Path to the held lock file

    Raises:
        LockTimeoutError: If the lock is still held after all attempts
        InstallError: If the lock file cannot be created for another reason

    Example:
        >>> with download_lock(Path('/cache/shim/basic/v1/linux_amd64')):
        ...     download_and_install()
    """
    lock_path = lock_path_for(directory)
    acquire_lock(lock_path, retry_delay, attempts)

    logger.debug(f"Acquired download lock: {lock_path}")
    try:
        yield lock_path
    finally:
        release_lock(lock_path)
        logger.debug(f"Released download lock: {lock_path}")


def remove_lock(directory: Path) -> bool:
    """
    Remove an abandoned lock file.

    Only safe when no other process is installing into ``directory``.

    Returns:
        True if a lock file was removed, False if none existed
    """
    lock_path = lock_path_for(directory)
    try:
        lock_path.unlink()
    except FileNotFoundError:
        return False
    logger.info(f"Removed lock file: {lock_path}")
    return True


__all__ = [
    "LOCK_FILE_NAME",
    "lock_path_for",
    "acquire_lock",
    "release_lock",
    "download_lock",
    "remove_lock",
]
