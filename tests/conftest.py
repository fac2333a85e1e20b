"""
Pytest configuration and shared fixtures for nativekit tests.
"""

import bz2
import io
import json
import os
import tarfile
from pathlib import Path
from typing import Dict, Optional

import pytest

from nativekit.artifacts.manifest import Manifest, parse_manifest, reset_manifest_cache
from nativekit.core.config import (
    DownloadOptions,
    NativeConfig,
    OpenH264Options,
    ShimOptions,
)
from nativekit.core.platform import HostPlatform, clear_host_cache

TEST_BASE_URL = "https://downloads.example.test/releases"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Isolation
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path_factory, monkeypatch):
    """
    Run every test in an empty working directory with no LIBWEBRTC_* overrides.

    The working directory matters because local lookup searches ``lib/``
    directories relative to it.
    """
    for name in list(os.environ):
        if name.startswith("LIBWEBRTC_"):
            monkeypatch.delenv(name, raising=False)

    workdir = tmp_path_factory.mktemp("workdir")
    monkeypatch.chdir(workdir)

    reset_manifest_cache()
    clear_host_cache()
    yield
    reset_manifest_cache()
    clear_host_cache()


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home


# ============================================================================
# Platforms and configuration
# ============================================================================


@pytest.fixture
def linux_host() -> HostPlatform:
    return HostPlatform("linux", "amd64")


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    return tmp_path / "cache"


@pytest.fixture
def make_config(cache_root: Path):
    """
    Factory for a NativeConfig with a temporary cache and fast lock retries.

    Example:
        config = make_config(shim={"flavor": "h264"}, openh264={"version": "2.4.0"})
    """

    def factory(
        shim: Optional[dict] = None,
        openh264: Optional[dict] = None,
        download: Optional[dict] = None,
        prefer_software_codecs: bool = False,
    ) -> NativeConfig:
        download_values = {"timeout": 30.0, "lock_retry_delay": 0.01, "lock_attempts": 500}
        download_values.update(download or {})
        return NativeConfig(
            shim=ShimOptions(**{"cache_dir": cache_root, **(shim or {})}),
            openh264=OpenH264Options(**{"cache_dir": cache_root, **(openh264 or {})}),
            download=DownloadOptions(**download_values),
            prefer_software_codecs=prefer_software_codecs,
        )

    return factory


# ============================================================================
# Archives and manifests
# ============================================================================


def build_tar_gz(
    files: Dict[str, bytes], symlinks: Optional[Dict[str, str]] = None
) -> bytes:
    """Build a gzip-compressed tarball in memory."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(content))
        for name, target in (symlinks or {}).items():
            info = tarfile.TarInfo(name)
            info.type = tarfile.SYMTYPE
            info.linkname = target
            tar.addfile(info)
    return buffer.getvalue()


@pytest.fixture
def make_tar_gz():
    return build_tar_gz


@pytest.fixture
def make_bz2():
    return bz2.compress


@pytest.fixture
def make_manifest():
    """
    Factory for a parsed manifest with one flavor.

    Example:
        manifest = make_manifest({"linux_amd64": ("asset.tar.gz", sha)})
    """

    def factory(
        assets: Dict[str, tuple],
        flavor: str = "basic",
        release_tag: str = "shim-v1.0.0",
        base_url: str = TEST_BASE_URL,
    ) -> Manifest:
        document = {
            "schema_version": 1,
            "base_url": base_url,
            "flavors": {
                flavor: {
                    "release_tag": release_tag,
                    "assets": {
                        key: {"file": file_name, "sha256": digest}
                        for key, (file_name, digest) in assets.items()
                    },
                }
            },
        }
        return parse_manifest(json.dumps(document))

    return factory


@pytest.fixture
def write_file(tmp_path: Path):
    """Write bytes to a path below tmp_path, creating parents."""

    def writer(relative: str, content: bytes = b"content") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return writer
