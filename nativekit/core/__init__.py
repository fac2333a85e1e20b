"""
Core functionality for nativekit.

This package contains the platform, configuration, network, locking and
filesystem building blocks that the artifact resolvers are assembled from.
"""

from .exceptions import (
    NativeKitError,
    ConfigurationError,
    PlatformUnsupportedError,
    BinaryNotPublishedError,
    ManifestError,
    ManifestMalformedError,
    UnknownFlavorError,
    MissingAssetError,
    InvalidDigestFormatError,
    NetworkError,
    IntegrityMismatchError,
    ArchiveError,
    InsecureArchiveError,
    LockTimeoutError,
    InstallError,
    LocalOverrideMissingError,
)

from .platform import (
    HostPlatform,
    detect_host,
    clear_host_cache,
    shim_platform_key,
    openh264_platform_key,
    shim_library_name,
)

from .config import (
    NativeConfig,
    ShimOptions,
    OpenH264Options,
    DownloadOptions,
    load_config,
)

from .cache import CacheEntry, CacheStore
from .locking import download_lock, remove_lock, LOCK_FILE_NAME

__all__ = [
    "NativeKitError",
    "ConfigurationError",
    "PlatformUnsupportedError",
    "BinaryNotPublishedError",
    "ManifestError",
    "ManifestMalformedError",
    "UnknownFlavorError",
    "MissingAssetError",
    "InvalidDigestFormatError",
    "NetworkError",
    "IntegrityMismatchError",
    "ArchiveError",
    "InsecureArchiveError",
    "LockTimeoutError",
    "InstallError",
    "LocalOverrideMissingError",
    "HostPlatform",
    "detect_host",
    "clear_host_cache",
    "shim_platform_key",
    "openh264_platform_key",
    "shim_library_name",
    "NativeConfig",
    "ShimOptions",
    "OpenH264Options",
    "DownloadOptions",
    "load_config",
    "CacheEntry",
    "CacheStore",
    "download_lock",
    "remove_lock",
    "LOCK_FILE_NAME",
]
