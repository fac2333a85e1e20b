"""
Shim release manifest.

The manifest is a JSON document shipped inside the package that lists, for
every shim flavor, the release tag and the per-platform asset (file name and
SHA-256 digest):

    {
      "schema_version": 1,
      "base_url": "https://.../releases/download",
      "flavors": {
        "basic": {
          "release_tag": "shim-v0.4.0",
          "assets": {
            "linux_amd64": {"file": "libwebrtc_shim_linux_amd64_basic.tar.gz",
                            "sha256": "<64 hex>"}
          }
        }
      }
    }

Every digest is validated when the manifest is parsed. The embedded manifest
is parsed at most once per process; concurrent first callers share a single
parse and all observe the same Manifest or the same error.
"""

import json
import logging
import threading
from dataclasses import dataclass
from importlib import resources
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Union

from nativekit.core.exceptions import (
    InvalidDigestFormatError,
    ManifestError,
    ManifestMalformedError,
    MissingAssetError,
    UnknownFlavorError,
)
from nativekit.core.verification import is_valid_sha256

logger = logging.getLogger(__name__)

MANIFEST_RESOURCE = "shim_manifest.json"
SUPPORTED_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class AssetRef:
    """One downloadable asset."""

    file: str
    sha256: str


@dataclass(frozen=True)
class FlavorInfo:
    """A flavor's release tag and its assets keyed by platform key."""

    release_tag: str
    assets: Mapping[str, AssetRef]


@dataclass(frozen=True)
class Manifest:
    """Parsed, immutable shim manifest."""

    schema_version: int
    base_url: str
    flavors: Mapping[str, FlavorInfo]

    def flavor(self, name: str) -> FlavorInfo:
        """
        Look up a flavor.

        Raises:
            UnknownFlavorError: If the flavor is not listed
        """
        try:
            return self.flavors[name]
        except KeyError:
            raise UnknownFlavorError(name) from None


@dataclass(frozen=True)
class ShimRelease:
    """Everything needed to download one shim asset."""

    flavor: str
    release_tag: str
    platform_key: str
    file: str
    sha256: str
    url: str


def parse_manifest(data: Union[bytes, str]) -> Manifest:
    """
    Parse and validate manifest JSON.

    Raises:
        ManifestMalformedError: Invalid JSON or schema violation
        InvalidDigestFormatError: An asset digest is not 64 hex characters

    Example:
        >>> manifest = parse_manifest(b'{"schema_version": 1, "base_url": "https://x", "flavors": {}}')
        >>> manifest.base_url
        'https://x'
    """
    try:
        raw = json.loads(data)
    except (ValueError, TypeError) as e:
        raise ManifestMalformedError(f"Parse shim manifest: {e}") from e

    if not isinstance(raw, dict):
        raise ManifestMalformedError("Shim manifest must be a JSON object")

    schema_version = raw.get("schema_version")
    if not isinstance(schema_version, int) or isinstance(schema_version, bool):
        raise ManifestMalformedError("Shim manifest schema_version must be an integer")
    if schema_version > SUPPORTED_SCHEMA_VERSION:
        raise ManifestMalformedError(
            f"Unsupported shim manifest schema_version {schema_version} "
            f"(expected <= {SUPPORTED_SCHEMA_VERSION})"
        )

    base_url = raw.get("base_url", "")
    if not isinstance(base_url, str):
        raise ManifestMalformedError("Shim manifest base_url must be a string")

    flavors_raw = raw.get("flavors")
    if not isinstance(flavors_raw, dict):
        raise ManifestMalformedError("Shim manifest flavors must be an object")

    flavors = {
        name: _parse_flavor(name, flavor_raw) for name, flavor_raw in flavors_raw.items()
    }

    return Manifest(
        schema_version=schema_version,
        base_url=base_url,
        flavors=MappingProxyType(flavors),
    )


def _parse_flavor(name: str, raw) -> FlavorInfo:
    if not isinstance(raw, dict):
        raise ManifestMalformedError(f"Shim manifest flavor {name!r} must be an object")

    release_tag = raw.get("release_tag", "")
    if not isinstance(release_tag, str):
        raise ManifestMalformedError(f"Shim manifest release_tag for flavor {name!r} must be a string")

    assets_raw = raw.get("assets", {})
    if not isinstance(assets_raw, dict):
        raise ManifestMalformedError(f"Shim manifest assets for flavor {name!r} must be an object")

    assets = {}
    for platform_key, asset in assets_raw.items():
        if not isinstance(asset, dict):
            raise ManifestMalformedError(
                f"Shim manifest asset for {platform_key} flavor {name!r} must be an object"
            )
        file_name = asset.get("file", "")
        sha256 = asset.get("sha256", "")
        if not isinstance(file_name, str):
            raise ManifestMalformedError(
                f"Shim manifest file for {platform_key} flavor {name!r} must be a string"
            )
        if not is_valid_sha256(sha256):
            raise InvalidDigestFormatError(
                f"Shim manifest has invalid sha256 for {platform_key} flavor {name!r}: {sha256!r}"
            )
        assets[platform_key] = AssetRef(file=file_name, sha256=sha256.lower())

    return FlavorInfo(release_tag=release_tag, assets=MappingProxyType(assets))


def resolve_release(
    manifest: Manifest,
    flavor: str,
    platform_key: str,
    base_url_override: Optional[str] = None,
) -> ShimRelease:
    """
    Select the asset for a flavor and platform and build its download URL.

    The URL is ``<base_url>/<release_tag>/<file>``; a non-empty
    ``base_url_override`` replaces the manifest's base URL.

    Raises:
        UnknownFlavorError: Flavor not in the manifest
        MissingAssetError: Flavor has no asset for the platform
        ManifestMalformedError: Empty file name, release tag or base URL
    """
    flavor_info = manifest.flavor(flavor)

    asset = flavor_info.assets.get(platform_key)
    if asset is None:
        raise MissingAssetError(flavor, platform_key)
    if not asset.file:
        raise ManifestMalformedError(
            f"Shim manifest missing file for {platform_key} flavor {flavor!r}"
        )

    base_url = manifest.base_url.rstrip("/")
    if base_url_override and base_url_override.strip():
        base_url = base_url_override.strip().rstrip("/")
    if not base_url:
        raise ManifestMalformedError("Shim manifest base_url is empty")

    if not flavor_info.release_tag:
        raise ManifestMalformedError(
            f"Shim manifest missing release_tag for flavor {flavor!r}"
        )

    return ShimRelease(
        flavor=flavor,
        release_tag=flavor_info.release_tag,
        platform_key=platform_key,
        file=asset.file,
        sha256=asset.sha256,
        url=f"{base_url}/{flavor_info.release_tag}/{asset.file}",
    )


class OnceCell:
    """
    Single-assignment cell computed once under a lock.

    The first caller runs the factory; its result (or exception) is stored
    and handed to every later caller. Reads after initialization take no lock.
    """

    def __init__(self, factory: Callable[[], object]):
        self._factory = factory
        self._lock = threading.Lock()
        self._done = False
        self._value = None
        self._error: Optional[BaseException] = None

    def get(self):
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        self._value = self._factory()
                    except ManifestError as e:
                        self._error = e
                    self._done = True
        if self._error is not None:
            raise self._error
        return self._value

    def reset(self) -> None:
        with self._lock:
            self._done = False
            self._value = None
            self._error = None


def _read_embedded_manifest() -> Manifest:
    try:
        data = resources.files(__package__).joinpath(MANIFEST_RESOURCE).read_bytes()
    except OSError as e:
        raise ManifestMalformedError(f"Cannot read embedded shim manifest: {e}") from e
    manifest = parse_manifest(data)
    logger.debug(
        f"Loaded shim manifest (schema {manifest.schema_version}, "
        f"{len(manifest.flavors)} flavors)"
    )
    return manifest


_embedded_manifest = OnceCell(_read_embedded_manifest)


def load_manifest() -> Manifest:
    """
    Get the embedded shim manifest, parsing it on first use.

    Raises:
        ManifestError: If the embedded manifest is invalid (memoized)
    """
    return _embedded_manifest.get()


def reset_manifest_cache() -> None:
    """Forget the memoized manifest (for tests)."""
    _embedded_manifest.reset()


__all__ = [
    "AssetRef",
    "FlavorInfo",
    "Manifest",
    "ShimRelease",
    "OnceCell",
    "parse_manifest",
    "resolve_release",
    "load_manifest",
    "reset_manifest_cache",
]
