"""
Native library artifacts: the shim and the OpenH264 codec.

This package resolves each component to a local path, consulting local
overrides, the artifact cache and finally the network.
"""

from .manifest import (
    AssetRef,
    FlavorInfo,
    Manifest,
    ShimRelease,
    load_manifest,
    parse_manifest,
    resolve_release,
)
from .resolution import Resolution, ResolutionSource
from .shim import ShimResolver, resolve_shim
from .openh264 import (
    DownloadSpec,
    OpenH264Resolver,
    build_download_spec,
    is_not_published,
    openh264_archive_name,
    openh264_library_name,
)
from .runtime import (
    RuntimeLibraries,
    add_library_dir_to_env,
    requires_openh264,
    resolve_openh264,
    resolve_runtime,
)

__all__ = [
    "AssetRef",
    "FlavorInfo",
    "Manifest",
    "ShimRelease",
    "load_manifest",
    "parse_manifest",
    "resolve_release",
    "Resolution",
    "ResolutionSource",
    "ShimResolver",
    "resolve_shim",
    "DownloadSpec",
    "OpenH264Resolver",
    "build_download_spec",
    "is_not_published",
    "openh264_archive_name",
    "openh264_library_name",
    "RuntimeLibraries",
    "add_library_dir_to_env",
    "requires_openh264",
    "resolve_openh264",
    "resolve_runtime",
]
