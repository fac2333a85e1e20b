"""
Unit tests for shim resolution.

Tests cover:
- Local overrides and conventional directories
- Disabled downloads
- Download, cache hit and concurrent first use
- Fallback on failures, with zero network calls where the failure is local
"""

import hashlib
import threading
from pathlib import Path

import pytest
import responses

from nativekit.artifacts.resolution import ResolutionSource
from nativekit.artifacts.shim import ShimResolver, resolve_shim
from nativekit.core.exceptions import (
    IntegrityMismatchError,
    InvalidDigestFormatError,
    ManifestMalformedError,
    MissingAssetError,
    NetworkError,
    PlatformUnsupportedError,
    UnknownFlavorError,
)
from nativekit.core.platform import HostPlatform

TEST_BASE_URL = "https://downloads.example.test/releases"

ASSET = "libwebrtc_shim_linux_amd64_basic.tar.gz"
ASSET_URL = f"{TEST_BASE_URL}/shim-v1.0.0/{ASSET}"


@pytest.fixture
def shim_archive(make_tar_gz):
    return make_tar_gz(
        {
            "libwebrtc_shim/lib/libwebrtc_shim.so": b"ELF shim",
            "libwebrtc_shim/LICENSE": b"BSD-3-Clause",
        }
    )


@pytest.fixture
def published(shim_archive, make_manifest):
    """Manifest publishing ``shim_archive`` for linux_amd64."""
    return make_manifest({"linux_amd64": (ASSET, hashlib.sha256(shim_archive).hexdigest())})


def expected_cache_path(cache_root: Path) -> Path:
    return cache_root / "shim" / "basic" / "shim-v1.0.0" / "linux_amd64" / "libwebrtc_shim.so"


class TestLocalResolution:
    """Tests for local overrides."""

    @responses.activate
    def test_explicit_path(self, tmp_path, make_config, linux_host):
        library = tmp_path / "custom.so"
        library.write_bytes(b"ELF")
        config = make_config(shim={"library_path": library})

        resolution = ShimResolver(config, linux_host).resolve()

        assert resolution.source is ResolutionSource.LOCAL
        assert resolution.path == str(library)
        assert len(responses.calls) == 0

    @responses.activate
    def test_conventional_directory(self, make_config, linux_host):
        bundled = Path.cwd() / "lib" / "linux_amd64" / "libwebrtc_shim.so"
        bundled.parent.mkdir(parents=True)
        bundled.write_bytes(b"ELF")

        resolution = ShimResolver(make_config(), linux_host).resolve()

        assert resolution.source is ResolutionSource.LOCAL
        assert Path(resolution.path).resolve() == bundled.resolve()
        assert len(responses.calls) == 0

    @responses.activate
    def test_local_wins_over_disabled_download(self, tmp_path, make_config, linux_host):
        library = tmp_path / "custom.so"
        library.write_bytes(b"ELF")
        config = make_config(shim={"library_path": library, "disable_download": True})

        resolution = ShimResolver(config, linux_host).resolve()

        assert resolution.source is ResolutionSource.LOCAL


class TestDisabledDownload:
    """Tests for the disable-download switch."""

    @responses.activate
    def test_bare_library_name(self, make_config, linux_host):
        config = make_config(shim={"disable_download": True})

        resolution = ShimResolver(config, linux_host).resolve()

        assert resolution.source is ResolutionSource.FALLBACK
        assert resolution.path == "libwebrtc_shim.so"
        assert resolution.error is None
        assert len(responses.calls) == 0

    def test_darwin_name(self, make_config):
        config = make_config(shim={"disable_download": True})
        resolution = ShimResolver(config, HostPlatform("darwin", "arm64")).resolve()
        assert resolution.path == "libwebrtc_shim.dylib"


class TestDownload:
    """Tests for download and cache behavior."""

    @responses.activate
    def test_download_then_cache_hit(
        self, make_config, linux_host, shim_archive, published, cache_root
    ):
        """Test resolving twice performs exactly one fetch."""
        responses.add(responses.GET, ASSET_URL, body=shim_archive, status=200)
        resolver = ShimResolver(make_config(), linux_host, manifest_loader=lambda: published)

        first = resolver.resolve()
        second = resolver.resolve()

        assert first.source is ResolutionSource.DOWNLOADED
        assert second.source is ResolutionSource.CACHED
        assert first.path == second.path == str(expected_cache_path(cache_root))
        assert Path(first.path).read_bytes() == b"ELF shim"
        assert len(responses.calls) == 1

    @responses.activate
    def test_license_copied(self, make_config, linux_host, shim_archive, published, cache_root):
        responses.add(responses.GET, ASSET_URL, body=shim_archive, status=200)

        ShimResolver(make_config(), linux_host, manifest_loader=lambda: published).resolve()

        license_path = expected_cache_path(cache_root).parent / "LICENSE"
        assert license_path.read_bytes() == b"BSD-3-Clause"
        assert not (license_path.parent / "NOTICE").exists()

    @responses.activate
    def test_base_url_override(self, make_config, linux_host, shim_archive, published):
        mirror_url = f"https://mirror.example.test/shim/shim-v1.0.0/{ASSET}"
        responses.add(responses.GET, mirror_url, body=shim_archive, status=200)
        config = make_config(shim={"base_url": "https://mirror.example.test/shim"})

        resolution = ShimResolver(config, linux_host, manifest_loader=lambda: published).resolve()

        assert resolution.source is ResolutionSource.DOWNLOADED
        assert responses.calls[0].request.url == mirror_url

    @pytest.mark.slow
    @responses.activate
    def test_concurrent_first_use(
        self, make_config, linux_host, shim_archive, published, cache_root
    ):
        """Test concurrent resolvers share one download and see a complete file."""
        responses.add(responses.GET, ASSET_URL, body=shim_archive, status=200)
        config = make_config()
        barrier = threading.Barrier(6)
        results = []

        def worker():
            resolver = ShimResolver(config, linux_host, manifest_loader=lambda: published)
            barrier.wait()
            results.append(resolver.resolve())

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(responses.calls) == 1
        assert all(result.ok for result in results)
        assert {result.path for result in results} == {str(expected_cache_path(cache_root))}
        assert sorted(r.source.value for r in results).count("downloaded") == 1
        assert expected_cache_path(cache_root).read_bytes() == b"ELF shim"

    @responses.activate
    def test_flavors_cached_separately(self, make_config, linux_host, shim_archive, make_manifest, cache_root):
        digest = hashlib.sha256(shim_archive).hexdigest()
        h264 = make_manifest(
            {"linux_amd64": ("shim_h264.tar.gz", digest)}, flavor="h264", release_tag="shim-v1.0.0-h264"
        )
        responses.add(
            responses.GET,
            f"{TEST_BASE_URL}/shim-v1.0.0-h264/shim_h264.tar.gz",
            body=shim_archive,
            status=200,
        )
        config = make_config(shim={"flavor": "h264"})

        resolution = ShimResolver(config, linux_host, manifest_loader=lambda: h264).resolve()

        assert resolution.path == str(
            cache_root / "shim" / "h264" / "shim-v1.0.0-h264" / "linux_amd64" / "libwebrtc_shim.so"
        )


class TestFallback:
    """Tests for failures degrading to the bare library name."""

    @responses.activate
    def test_unsupported_platform_no_network(self, make_config):
        resolution = ShimResolver(make_config(), HostPlatform("windows", "arm64")).resolve()

        assert resolution.source is ResolutionSource.FALLBACK
        assert resolution.path == "libwebrtc_shim.dll"
        assert isinstance(resolution.error, PlatformUnsupportedError)
        assert not resolution.ok
        assert len(responses.calls) == 0

    @responses.activate
    def test_unknown_flavor_reported_first(self, make_config):
        config = make_config(shim={"flavor": "gpu"})

        resolution = ShimResolver(config, HostPlatform("windows", "arm64")).resolve()

        assert isinstance(resolution.error, UnknownFlavorError)
        assert len(responses.calls) == 0

    @responses.activate
    def test_missing_asset(self, make_config, make_manifest):
        manifest = make_manifest({"darwin_arm64": ("a.tar.gz", "ab" * 32)})

        resolution = ShimResolver(
            make_config(), HostPlatform("linux", "amd64"), manifest_loader=lambda: manifest
        ).resolve()

        assert isinstance(resolution.error, MissingAssetError)
        assert len(responses.calls) == 0

    @responses.activate
    def test_integrity_mismatch_leaves_no_file(
        self, make_config, linux_host, shim_archive, make_manifest, cache_root
    ):
        manifest = make_manifest({"linux_amd64": (ASSET, "0" * 64)})
        responses.add(responses.GET, ASSET_URL, body=shim_archive, status=200)

        resolution = ShimResolver(make_config(), linux_host, manifest_loader=lambda: manifest).resolve()

        assert resolution.source is ResolutionSource.FALLBACK
        assert resolution.path == "libwebrtc_shim.so"
        assert isinstance(resolution.error, IntegrityMismatchError)
        assert not expected_cache_path(cache_root).exists()
        assert list(expected_cache_path(cache_root).parent.iterdir()) == []

    @responses.activate
    def test_network_error(self, make_config, linux_host, published):
        responses.add(responses.GET, ASSET_URL, status=503)

        resolution = ShimResolver(make_config(), linux_host, manifest_loader=lambda: published).resolve()

        assert isinstance(resolution.error, NetworkError)
        assert "download failed" in str(resolution)

    @responses.activate
    def test_invalid_manifest_digest(self, make_config, linux_host):
        def broken_manifest():
            raise InvalidDigestFormatError("bad digest")

        resolution = ShimResolver(make_config(), linux_host, manifest_loader=broken_manifest).resolve()

        assert isinstance(resolution.error, InvalidDigestFormatError)
        assert len(responses.calls) == 0

    @responses.activate
    def test_unreadable_embedded_manifest(self, make_config, linux_host, monkeypatch):
        monkeypatch.setattr("nativekit.artifacts.manifest.MANIFEST_RESOURCE", "missing.json")

        resolution = ShimResolver(make_config(), linux_host).resolve()

        assert resolution.path == "libwebrtc_shim.so"
        assert isinstance(resolution.error, ManifestMalformedError)
        assert len(responses.calls) == 0


class TestResolveShim:
    """Tests for the resolve_shim wrapper."""

    def test_uses_embedded_manifest(self, make_config, cache_root):
        """Test the embedded manifest drives URL selection."""
        resolver = ShimResolver(make_config(), HostPlatform("linux", "arm64"))
        release = resolver.release()

        assert release.flavor == "basic"
        assert release.url.endswith(f"/{release.release_tag}/{release.file}")
        assert resolver.cache_entry(release).path.parent.parent.parent.parent == cache_root / "shim"

    def test_wrapper(self, make_config):
        config = make_config(shim={"disable_download": True})
        resolution = resolve_shim(config, HostPlatform("linux", "amd64"))
        assert resolution.path == "libwebrtc_shim.so"
