"""
Platform detection and platform-key tables for nativekit.

This module maps the host operating system and CPU architecture to the
canonical tokens used in release asset names (``darwin``/``linux``/``windows``
and ``amd64``/``arm64``/``386``/``arm``) and from there to the platform keys
understood by each resolver.

The shim and OpenH264 components are published for different sets of
platforms, so each keeps its own supported-platform table. A missing table
entry always means "unsupported"; nothing is ever guessed.

Usage:
    from nativekit.core.platform import detect_host, shim_platform_key

    host = detect_host()
    key = shim_platform_key(host.os, host.arch)   # e.g. 'linux_amd64'
"""

import functools
import platform
from dataclasses import dataclass

from nativekit.core.exceptions import PlatformUnsupportedError

SHIM_PLATFORMS = frozenset(
    {
        ("darwin", "amd64"),
        ("darwin", "arm64"),
        ("linux", "amd64"),
        ("linux", "arm64"),
    }
)

OPENH264_PLATFORMS = frozenset(
    {
        ("darwin", "amd64"),
        ("darwin", "arm64"),
        ("linux", "amd64"),
        ("linux", "386"),
        ("linux", "arm"),
        ("linux", "arm64"),
        ("windows", "amd64"),
        ("windows", "386"),
        ("windows", "arm64"),
    }
)


@dataclass(frozen=True)
class HostPlatform:
    """
    Normalized host platform.

    Attributes:
        os: Operating system token ('darwin', 'linux', 'windows', ...)
        arch: Architecture token ('amd64', 'arm64', '386', 'arm', ...)
    """

    os: str
    arch: str

    def directory_name(self) -> str:
        """
        Directory name used by bundled ``lib/<os>_<arch>/`` layouts.

        Example:
            >>> HostPlatform('linux', 'amd64').directory_name()
            'linux_amd64'
        """
        return f"{self.os}_{self.arch}"

    def __str__(self) -> str:
        return f"{self.os}/{self.arch}"


@functools.lru_cache(maxsize=1)
def detect_host() -> HostPlatform:
    """
    Detect the current platform.

    This function is cached - it only runs detection once per process.

    Returns:
        HostPlatform with normalized os and arch tokens
    """
    return HostPlatform(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    """
    Detect operating system.

    Returns:
        Normalized OS token. Unknown systems are returned lower-cased so
        that the resolver tables can reject them explicitly.
    """
    system = platform.system().lower()

    if system == "darwin":
        return "darwin"
    elif system.startswith(("windows", "cygwin", "msys")):
        return "windows"
    return system


def _detect_architecture() -> str:
    """
    Detect CPU architecture.

    Returns:
        Normalized architecture token: 'amd64', 'arm64', '386', 'arm',
        or the raw machine name for anything else
    """
    machine = platform.machine().lower()

    if machine in ("x86_64", "amd64", "x64"):
        return "amd64"
    elif machine in ("aarch64", "arm64", "armv8l"):
        return "arm64"
    elif machine in ("i386", "i486", "i586", "i686", "x86"):
        return "386"
    elif machine.startswith("arm"):
        return "arm"
    return machine


def clear_host_cache():
    """
    Clear the host detection cache.

    Useful for testing when platform.system() or platform.machine() are patched.
    """
    detect_host.cache_clear()


def shim_platform_key(os_name: str, arch: str) -> str:
    """
    Map (os, arch) to the shim manifest platform key.

    Raises:
        PlatformUnsupportedError: If no shim build exists for the pair

    Example:
        >>> shim_platform_key('darwin', 'arm64')
        'darwin_arm64'
    """
    if (os_name, arch) not in SHIM_PLATFORMS:
        raise PlatformUnsupportedError("shim", os_name, arch)
    return f"{os_name}_{arch}"


def openh264_platform_key(os_name: str, arch: str) -> str:
    """
    Map (os, arch) to the OpenH264 cache platform key.

    Raises:
        PlatformUnsupportedError: If the pair is not in the OpenH264 table
    """
    if (os_name, arch) not in OPENH264_PLATFORMS:
        raise PlatformUnsupportedError("openh264", os_name, arch)
    return f"{os_name}_{arch}"


def shim_library_name(os_name: str) -> str:
    """
    Get the platform-specific shim library file name.

    Unknown systems get the ELF name, which is what the system loader on
    any remaining Unix-like platform expects.
    """
    if os_name == "darwin":
        return "libwebrtc_shim.dylib"
    elif os_name == "windows":
        return "libwebrtc_shim.dll"
    return "libwebrtc_shim.so"


__all__ = [
    "HostPlatform",
    "SHIM_PLATFORMS",
    "OPENH264_PLATFORMS",
    "detect_host",
    "clear_host_cache",
    "shim_platform_key",
    "openh264_platform_key",
    "shim_library_name",
]
