"""
Shim library resolution.

Resolution order:
    1. Explicit path / conventional ``lib/<os>_<arch>/`` directories (unverified)
    2. Disabled downloads -> bare library name
    3. Manifest lookup -> cache check -> locked download and install
    4. On any download failure -> bare library name plus the error

Example:
    >>> from nativekit.core.config import load_config
    >>> resolution = ShimResolver(load_config()).resolve()
    >>> print(resolution.path)
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from nativekit.artifacts.installer import ArchiveKind, InstallRequest, ensure_installed
from nativekit.artifacts.local import find_local_library
from nativekit.artifacts.manifest import Manifest, ShimRelease, load_manifest, resolve_release
from nativekit.artifacts.resolution import Resolution, ResolutionSource
from nativekit.core.cache import CacheEntry, CacheStore
from nativekit.core.config import NativeConfig
from nativekit.core.directory import get_default_cache_root
from nativekit.core.exceptions import NativeKitError
from nativekit.core.platform import (
    HostPlatform,
    detect_host,
    shim_library_name,
    shim_platform_key,
)

logger = logging.getLogger(__name__)

COMPONENT = "shim"
EXTRA_FILES = ("LICENSE", "NOTICE")


class ShimResolver:
    """
    Resolves the shim library for one configuration and host.

    Args:
        config: Loaded configuration
        host: Host platform (default: detected)
        manifest_loader: Returns the Manifest (default: embedded manifest)
    """

    def __init__(
        self,
        config: NativeConfig,
        host: Optional[HostPlatform] = None,
        manifest_loader: Callable[[], Manifest] = load_manifest,
    ):
        self.config = config
        self.options = config.shim
        self.host = host or detect_host()
        self.manifest_loader = manifest_loader

    @property
    def library_name(self) -> str:
        return shim_library_name(self.host.os)

    @property
    def cache_root(self) -> Path:
        return self.options.cache_dir or get_default_cache_root()

    def find_local(self) -> Optional[Path]:
        return find_local_library(self.options.library_path, self.library_name, self.host)

    def release(self) -> ShimRelease:
        """
        Select the manifest asset for the configured flavor and this host.

        Raises:
            ManifestError: Manifest invalid or missing the flavor/asset
            PlatformUnsupportedError: No shim builds for this host
        """
        manifest = self.manifest_loader()
        flavor = self.options.flavor
        # an unknown flavor is reported before an unsupported platform
        manifest.flavor(flavor)
        platform_key = shim_platform_key(self.host.os, self.host.arch)
        return resolve_release(manifest, flavor, platform_key, self.options.base_url)

    def cache_entry(self, release: ShimRelease) -> CacheEntry:
        return CacheStore(self.cache_root).shim_entry(
            release.flavor, release.release_tag, release.platform_key, self.library_name
        )

    def ensure_downloaded(self) -> Resolution:
        """
        Resolve through the cache, downloading if needed.

        Returns:
            Resolution with source CACHED or DOWNLOADED

        Raises:
            NativeKitError: Any resolution, network, integrity, archive,
                lock or install failure
        """
        release = self.release()
        entry = self.cache_entry(release)

        request = InstallRequest(
            component=COMPONENT,
            url=release.url,
            expected_sha256=release.sha256,
            entry=entry,
            archive_kind=ArchiveKind.TAR_GZ,
            extra_files=EXTRA_FILES,
        )
        downloaded = ensure_installed(request, self.config.download)

        source = ResolutionSource.DOWNLOADED if downloaded else ResolutionSource.CACHED
        return Resolution(COMPONENT, str(entry.path), source)

    def resolve(self) -> Resolution:
        """
        Resolve the shim library path. Never raises for download failures.

        Returns:
            Resolution; on failure the path is the bare library name and
            ``error`` holds the cause
        """
        local = self.find_local()
        if local is not None:
            return Resolution(COMPONENT, str(local), ResolutionSource.LOCAL)

        if self.options.disable_download:
            logger.info("Shim download disabled; using system library search path")
            return Resolution(COMPONENT, self.library_name, ResolutionSource.FALLBACK)

        try:
            return self.ensure_downloaded()
        except NativeKitError as e:
            logger.warning(f"Shim auto-download failed: {e}")
            return Resolution(COMPONENT, self.library_name, ResolutionSource.FALLBACK, e)


def resolve_shim(config: NativeConfig, host: Optional[HostPlatform] = None) -> Resolution:
    """Convenience wrapper around ShimResolver(config, host).resolve()."""
    return ShimResolver(config, host).resolve()


__all__ = ["ShimResolver", "resolve_shim"]
