"""
Cache directory location for nativekit.

Directory Structure:
    Cache root (~/.libgowebrtc/ or %USERPROFILE%\\.libgowebrtc\\):
        - shim/<flavor>/<release_tag>/<platform>/     : Installed shim library
        - openh264/<version>/<platform>/              : Installed OpenH264 library

    Each leaf directory may transiently contain a ``.download.lock`` file and
    temporary download/extract files while an installation is in progress.
"""

import os
from pathlib import Path

from nativekit.core.exceptions import ConfigurationError, InstallError

CACHE_DIR_NAME = ".libgowebrtc"


def get_default_cache_root() -> Path:
    """
    Get the platform-specific default cache root.

    Returns:
        Path: The cache root.
            - Windows: %USERPROFILE%\\.libgowebrtc
            - Linux/macOS: ~/.libgowebrtc

    Raises:
        ConfigurationError: If the home directory cannot be determined

    Example:
        >>> get_default_cache_root()
        PosixPath('/home/user/.libgowebrtc')  # on Linux
    """
    if os.name == "nt":  # Windows
        user_profile = os.environ.get("USERPROFILE")
        if not user_profile:
            raise ConfigurationError(
                "USERPROFILE environment variable is not set. "
                "Cannot determine cache directory."
            )
        return Path(user_profile) / CACHE_DIR_NAME

    try:
        return Path.home() / CACHE_DIR_NAME
    except RuntimeError as e:
        raise ConfigurationError(f"Cannot resolve home directory: {e}") from e


def ensure_directory(path: Path) -> Path:
    """
    Create a cache directory (and parents) if it does not exist.

    Raises:
        InstallError: If the directory cannot be created
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallError(f"Failed to create cache directory {path}: {e}") from e
    return path


__all__ = ["CACHE_DIR_NAME", "get_default_cache_root", "ensure_directory"]
