"""
OpenH264 codec library resolution.

OpenH264 has no manifest. Its download URL, cache location and installed
file name are derived from naming conventions:

    archive:  libopenh264-<version>-linux64.<abi>.so.bz2  (per platform)
    URL:      <base_url>/<archive>
    library:  libopenh264.so.<abi> / libopenh264.dylib / openh264.dll
    cache:    <root>/openh264/<version>/<platform>/<library>

Every derived piece can be overridden (version, URL, ABI number, digest,
base URL). Platforms without a published binary raise
BinaryNotPublishedError so callers can fall back to a code path that does
not need OpenH264.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from nativekit.artifacts.installer import ArchiveKind, InstallRequest, ensure_installed
from nativekit.artifacts.resolution import Resolution, ResolutionSource
from nativekit.core.cache import CacheEntry, CacheStore
from nativekit.core.config import NativeConfig, OpenH264Options
from nativekit.core.directory import get_default_cache_root
from nativekit.core.exceptions import (
    BinaryNotPublishedError,
    LocalOverrideMissingError,
    NativeKitError,
    PlatformUnsupportedError,
)
from nativekit.core.platform import HostPlatform, detect_host, openh264_platform_key

logger = logging.getLogger(__name__)

COMPONENT = "openh264"
DEFAULT_VERSION = "2.5.1"
DEFAULT_BASE_URL = "https://ciscobinary.openh264.org"
CUSTOM_VERSION = "custom"
UNVERSIONED_LINUX_NAME = "libopenh264.so"

# (os, arch) -> archive name pattern
_ARCHIVE_PATTERNS = {
    ("darwin", "amd64"): "libopenh264-{version}-mac-x64.dylib.bz2",
    ("darwin", "arm64"): "libopenh264-{version}-mac-arm64.dylib.bz2",
    ("linux", "amd64"): "libopenh264-{version}-linux64.{abi}.so.bz2",
    ("linux", "386"): "libopenh264-{version}-linux32.{abi}.so.bz2",
    ("linux", "arm"): "libopenh264-{version}-linux-arm.{abi}.so.bz2",
    ("linux", "arm64"): "libopenh264-{version}-linux-arm64.{abi}.so.bz2",
    ("windows", "amd64"): "openh264-{version}-win64.dll.bz2",
    ("windows", "386"): "openh264-{version}-win32.dll.bz2",
    ("windows", "arm64"): "openh264-{version}-win-arm64.dll.bz2",
}


def openh264_library_name(os_name: str, abi: str) -> str:
    """
    Installed library file name (independent of the release version).

    Raises:
        PlatformUnsupportedError: For operating systems without OpenH264 builds

    Example:
        >>> openh264_library_name('linux', '7')
        'libopenh264.so.7'
    """
    if os_name == "darwin":
        return "libopenh264.dylib"
    elif os_name == "linux":
        return f"libopenh264.so.{abi}"
    elif os_name == "windows":
        return "openh264.dll"
    raise PlatformUnsupportedError(COMPONENT, os_name, "*")


def openh264_archive_name(os_name: str, arch: str, version: str, abi: str) -> str:
    """
    Name of the published archive for a platform, version and ABI number.

    Raises:
        BinaryNotPublishedError: No binary is published for (os, arch)

    Example:
        >>> openh264_archive_name('darwin', 'arm64', '2.5.1', '7')
        'libopenh264-2.5.1-mac-arm64.dylib.bz2'
    """
    pattern = _ARCHIVE_PATTERNS.get((os_name, arch))
    if pattern is None:
        raise BinaryNotPublishedError(COMPONENT, os_name, arch)
    return pattern.format(version=version, abi=abi)


@dataclass(frozen=True)
class DownloadSpec:
    """Procedurally derived download description. Built fresh per call."""

    url: str
    version: str
    platform_key: str
    library_name: str
    archive_name: Optional[str]
    sha256: Optional[str]
    cache_root: Path


def build_download_spec(options: OpenH264Options, host: HostPlatform) -> DownloadSpec:
    """
    Derive the download spec from options and host.

    The version is the override, else ``custom`` when only a URL override is
    given, else the default. With a URL override the archive name is not
    derived (and unpublished platforms are not an error).

    Raises:
        PlatformUnsupportedError: Host not in the OpenH264 platform table
        BinaryNotPublishedError: No archive published for the host
        ConfigurationError: Cache root cannot be determined
        InvalidDigestFormatError: The configured sha256 is malformed
    """
    url_override = (options.url or "").strip()
    version = (options.version or "").strip()
    if not version:
        version = CUSTOM_VERSION if url_override else DEFAULT_VERSION

    platform_key = openh264_platform_key(host.os, host.arch)
    library_name = openh264_library_name(host.os, options.soversion)

    archive_name = None
    url = url_override
    if not url:
        archive_name = openh264_archive_name(host.os, host.arch, version, options.soversion)
        base_url = (options.base_url or "").strip() or DEFAULT_BASE_URL
        url = f"{base_url.rstrip('/')}/{archive_name}"

    return DownloadSpec(
        url=url,
        version=version,
        platform_key=platform_key,
        library_name=library_name,
        archive_name=archive_name,
        sha256=options.checked_sha256(),
        cache_root=options.cache_dir or get_default_cache_root(),
    )


class OpenH264Resolver:
    """
    Resolves the OpenH264 library for one configuration and host.

    Args:
        config: Loaded configuration
        host: Host platform (default: detected)
    """

    def __init__(self, config: NativeConfig, host: Optional[HostPlatform] = None):
        self.config = config
        self.options = config.openh264
        self.host = host or detect_host()

    @property
    def fallback_name(self) -> str:
        try:
            return openh264_library_name(self.host.os, self.options.soversion)
        except PlatformUnsupportedError:
            return UNVERSIONED_LINUX_NAME

    def spec(self) -> DownloadSpec:
        return build_download_spec(self.options, self.host)

    def cache_entry(self, spec: DownloadSpec) -> CacheEntry:
        return CacheStore(spec.cache_root).openh264_entry(
            spec.version, spec.platform_key, spec.library_name
        )

    def find_local(self) -> Optional[Path]:
        """
        Return the explicitly configured library path, unverified.

        Raises:
            LocalOverrideMissingError: A path is configured but does not exist
        """
        path = self.options.library_path
        if path is None:
            return None
        if not path.exists():
            raise LocalOverrideMissingError(path)
        logger.info(f"Using OpenH264 from configured path: {path}")
        return path

    def ensure_downloaded(self) -> Resolution:
        """
        Resolve through the cache, downloading if needed.

        Raises:
            NativeKitError: Any resolution, network, integrity, archive,
                lock or install failure
        """
        spec = self.spec()
        entry = self.cache_entry(spec)

        request = InstallRequest(
            component=COMPONENT,
            url=spec.url,
            expected_sha256=spec.sha256,
            entry=entry,
            archive_kind=ArchiveKind.from_name(spec.url),
            symlink_name=UNVERSIONED_LINUX_NAME if self.host.os == "linux" else None,
        )
        if spec.sha256 is None:
            logger.warning(f"No sha256 configured for {spec.url}; download is not verified")

        downloaded = ensure_installed(request, self.config.download)
        source = ResolutionSource.DOWNLOADED if downloaded else ResolutionSource.CACHED
        return Resolution(COMPONENT, str(entry.path), source)

    def resolve(self) -> Resolution:
        """
        Resolve the OpenH264 library path. Never raises NativeKitError.

        Returns:
            Resolution; on failure the path is the bare library name and
            ``error`` holds the cause (BinaryNotPublishedError for
            platforms without published binaries)
        """
        try:
            local = self.find_local()
        except LocalOverrideMissingError as e:
            return Resolution(COMPONENT, self.fallback_name, ResolutionSource.FALLBACK, e)
        if local is not None:
            return Resolution(COMPONENT, str(local), ResolutionSource.LOCAL)

        if self.options.disable_download:
            logger.info("OpenH264 download disabled; using system library search path")
            return Resolution(COMPONENT, self.fallback_name, ResolutionSource.FALLBACK)

        try:
            return self.ensure_downloaded()
        except NativeKitError as e:
            logger.warning(f"OpenH264 auto-download failed: {e}")
            return Resolution(COMPONENT, self.fallback_name, ResolutionSource.FALLBACK, e)


def is_not_published(resolution: Resolution) -> bool:
    """True if a resolution failed only because no binary exists for the host."""
    return isinstance(resolution.error, BinaryNotPublishedError)


__all__ = [
    "DEFAULT_VERSION",
    "DEFAULT_BASE_URL",
    "DownloadSpec",
    "OpenH264Resolver",
    "build_download_spec",
    "openh264_archive_name",
    "openh264_library_name",
    "is_not_published",
]
