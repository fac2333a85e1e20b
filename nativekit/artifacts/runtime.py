"""
Startup entry point: resolve every native library the host needs.

The host calls ``resolve_runtime()`` once, then loads the returned paths with
its own loader. When software codecs are preferred, OpenH264 is resolved
first and its directory is prepended to the platform's library search path
so that the shim's own loader finds it.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import MutableMapping, Optional

from nativekit.artifacts.openh264 import OpenH264Resolver
from nativekit.artifacts.resolution import Resolution, ResolutionSource
from nativekit.artifacts.shim import ShimResolver
from nativekit.core.config import NativeConfig, load_config
from nativekit.core.platform import HostPlatform, detect_host

logger = logging.getLogger(__name__)

LIBRARY_PATH_VARIABLES = {
    "windows": "PATH",
    "darwin": "DYLD_LIBRARY_PATH",
}


def library_path_variable(os_name: str) -> str:
    """Environment variable the system loader searches on this OS."""
    return LIBRARY_PATH_VARIABLES.get(os_name, "LD_LIBRARY_PATH")


def add_library_dir_to_env(
    directory: Path,
    os_name: Optional[str] = None,
    environ: Optional[MutableMapping[str, str]] = None,
) -> bool:
    """
    Prepend a directory to the loader search path variable.

    Args:
        directory: Directory containing a resolved library
        os_name: OS token (default: detected host)
        environ: Environment to modify (default: os.environ)

    Returns:
        True if the variable was changed, False if the directory was present
    """
    if environ is None:
        environ = os.environ
    if os_name is None:
        os_name = detect_host().os

    variable = library_path_variable(os_name)
    separator = ";" if os_name == "windows" else ":"
    entry = str(directory)
    existing = environ.get(variable, "")

    if entry in existing.split(separator):
        return False

    environ[variable] = f"{entry}{separator}{existing}" if existing else entry
    logger.debug(f"Added {entry} to {variable}")
    return True


def requires_openh264(prefer_hw: bool, config: NativeConfig) -> bool:
    """
    Whether an encoder/decoder setup needs the OpenH264 library.

    Software codecs are needed when explicitly preferred or when hardware
    acceleration was not requested.
    """
    if config.prefer_software_codecs:
        return True
    return not prefer_hw


@dataclass(frozen=True)
class RuntimeLibraries:
    """Resolved libraries for one process."""

    shim: Resolution
    openh264: Optional[Resolution] = None

    @property
    def ok(self) -> bool:
        results = [self.shim] + ([self.openh264] if self.openh264 else [])
        return all(result.ok for result in results)


def resolve_runtime(
    config: Optional[NativeConfig] = None, host: Optional[HostPlatform] = None
) -> RuntimeLibraries:
    """
    Resolve the shim (and OpenH264 when software codecs are preferred).

    Args:
        config: Configuration (default: load_config() from the environment)
        host: Host platform (default: detected)

    Returns:
        RuntimeLibraries; failures are carried in each Resolution's error
    """
    if config is None:
        config = load_config()
    if host is None:
        host = detect_host()

    openh264 = None
    if config.prefer_software_codecs:
        openh264 = resolve_openh264(config, host)

    shim = ShimResolver(config, host).resolve()
    return RuntimeLibraries(shim=shim, openh264=openh264)


def resolve_openh264(
    config: NativeConfig, host: Optional[HostPlatform] = None
) -> Resolution:
    """
    Resolve OpenH264 and expose its directory to the system loader.

    Returns:
        The Resolution; a downloaded, cached or local library's directory
        is added to the library search path
    """
    host = host or detect_host()
    resolution = OpenH264Resolver(config, host).resolve()
    if resolution.source is not ResolutionSource.FALLBACK:
        add_library_dir_to_env(Path(resolution.path).parent, host.os)
    return resolution


__all__ = [
    "RuntimeLibraries",
    "add_library_dir_to_env",
    "library_path_variable",
    "requires_openh264",
    "resolve_openh264",
    "resolve_runtime",
]
