"""
Regenerate the sha256 digests in a shim manifest.

Release tooling runs this after publishing shim assets. Each asset is hashed
either from a local directory holding the release build output (``<dir>/<file>``)
or by streaming it from ``<base_url>/<release_tag>/<file>``. The manifest is
rewritten in place only when every asset was hashed and the result parses.

Example:
    $ nativekit manifest-digests nativekit/artifacts/shim_manifest.json --assets-dir dist/
"""

import hashlib
import json
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from nativekit.artifacts.manifest import MANIFEST_RESOURCE, parse_manifest
from nativekit.core.download import fetch_to_temp
from nativekit.core.exceptions import ManifestMalformedError

logger = logging.getLogger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class DigestUpdate:
    """One asset whose recorded digest was recomputed."""

    flavor: str
    platform_key: str
    file: str
    old_sha256: str
    new_sha256: str

    @property
    def changed(self) -> bool:
        return self.old_sha256.lower() != self.new_sha256


def embedded_manifest_path() -> Path:
    """Path of the manifest shipped inside the package."""
    return Path(__file__).parent / MANIFEST_RESOURCE


def file_sha256(path: Path) -> str:
    sha256 = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(HASH_CHUNK_SIZE):
            sha256.update(chunk)
    return sha256.hexdigest()


def url_sha256(url: str, timeout: float) -> str:
    """
    Stream a URL and return its digest. Nothing is kept on disk.

    Raises:
        NetworkError: Transport failure, non-2xx status or timeout
    """
    with tempfile.TemporaryDirectory(prefix="nativekit-digest-") as temp_dir:
        fetched = fetch_to_temp(url, Path(temp_dir), prefix="asset-", timeout=timeout)
    return fetched.sha256


def _load_document(manifest_path: Path) -> dict:
    try:
        with open(manifest_path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except OSError as e:
        raise ManifestMalformedError(f"Cannot read {manifest_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ManifestMalformedError(f"Parse shim manifest {manifest_path}: {e}") from e

    if not isinstance(document, dict) or not isinstance(document.get("flavors"), dict):
        raise ManifestMalformedError(f"{manifest_path} has no 'flavors' object")
    return document


def compute_digests(
    manifest_path: Path,
    assets_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    timeout: float = 600.0,
) -> List[DigestUpdate]:
    """
    Hash every asset listed in a manifest without modifying it.

    Args:
        manifest_path: Manifest JSON file
        assets_dir: Directory containing the asset files; when None the
            assets are downloaded
        base_url: Overrides the manifest's base_url for downloads
        timeout: Per-asset download limit in seconds

    Returns:
        One DigestUpdate per asset, in manifest order

    Raises:
        ManifestMalformedError: Manifest unreadable or an asset file missing
        NetworkError: An asset download failed
    """
    document = _load_document(manifest_path)
    base = (base_url or document.get("base_url") or "").rstrip("/")

    updates = []
    for flavor, info in document["flavors"].items():
        if not isinstance(info, dict) or not isinstance(info.get("assets", {}), dict):
            raise ManifestMalformedError(f"Shim manifest flavor {flavor!r} must be an object")
        release_tag = info.get("release_tag", "")
        for platform_key, asset in info.get("assets", {}).items():
            if not isinstance(asset, dict):
                raise ManifestMalformedError(
                    f"Shim manifest asset for {platform_key} flavor {flavor!r} must be an object"
                )
            file_name = asset.get("file", "")
            if not file_name:
                raise ManifestMalformedError(
                    f"Shim manifest missing file for {platform_key} flavor {flavor!r}"
                )

            if assets_dir is not None:
                path = Path(assets_dir) / file_name
                if not path.is_file():
                    raise ManifestMalformedError(f"Asset not found: {path}")
                digest = file_sha256(path)
            else:
                digest = url_sha256(f"{base}/{release_tag}/{file_name}", timeout)

            logger.info(f"{flavor}/{platform_key}: {file_name} sha256 {digest}")
            updates.append(
                DigestUpdate(
                    flavor=flavor,
                    platform_key=platform_key,
                    file=file_name,
                    old_sha256=str(asset.get("sha256", "")),
                    new_sha256=digest,
                )
            )
    return updates


def write_digests(manifest_path: Path, updates: List[DigestUpdate]) -> None:
    """
    Store recomputed digests in the manifest file.

    The new document is validated with ``parse_manifest`` before it replaces
    the old file.

    Raises:
        ManifestError: The updated manifest does not parse
    """
    document = _load_document(manifest_path)
    by_asset: Dict[tuple, str] = {(u.flavor, u.platform_key): u.new_sha256 for u in updates}
    for flavor, info in document["flavors"].items():
        for platform_key, asset in info.get("assets", {}).items():
            if (flavor, platform_key) in by_asset:
                asset["sha256"] = by_asset[(flavor, platform_key)]

    text = json.dumps(document, indent=2) + "\n"
    parse_manifest(text)

    temp_path = manifest_path.with_name(f".{manifest_path.name}.tmp")
    try:
        temp_path.write_text(text, encoding="utf-8")
        temp_path.replace(manifest_path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        raise ManifestMalformedError(f"Cannot write {manifest_path}: {e}") from e
    logger.info(f"Updated {len(updates)} digests in {manifest_path}")


def regenerate_digests(
    manifest_path: Path,
    assets_dir: Optional[Path] = None,
    base_url: Optional[str] = None,
    timeout: float = 600.0,
    check: bool = False,
) -> List[DigestUpdate]:
    """
    Recompute and (unless ``check``) store every asset digest.

    Raises:
        NativeKitError: See compute_digests and write_digests
    """
    updates = compute_digests(manifest_path, assets_dir, base_url, timeout)
    if not check:
        write_digests(manifest_path, updates)
    return updates


__all__ = [
    "DigestUpdate",
    "compute_digests",
    "embedded_manifest_path",
    "file_sha256",
    "regenerate_digests",
    "url_sha256",
    "write_digests",
]
