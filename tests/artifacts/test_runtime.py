"""
Unit tests for startup resolution and loader search path handling.
"""

import os
from pathlib import Path

import pytest
import responses

import nativekit
from nativekit.artifacts.openh264 import DEFAULT_BASE_URL
from nativekit.artifacts.resolution import ResolutionSource
from nativekit.artifacts.runtime import (
    add_library_dir_to_env,
    library_path_variable,
    requires_openh264,
    resolve_openh264,
    resolve_runtime,
)
from nativekit.core.platform import HostPlatform

LINUX_URL = f"{DEFAULT_BASE_URL}/libopenh264-2.5.1-linux64.7.so.bz2"


class TestLibraryPathVariable:
    """Tests for library_path_variable function."""

    @pytest.mark.parametrize(
        "os_name,expected",
        [("linux", "LD_LIBRARY_PATH"), ("darwin", "DYLD_LIBRARY_PATH"), ("windows", "PATH")],
    )
    def test_variables(self, os_name, expected):
        assert library_path_variable(os_name) == expected


class TestAddLibraryDirToEnv:
    """Tests for add_library_dir_to_env function."""

    def test_sets_empty_variable(self, tmp_path):
        environ = {}

        assert add_library_dir_to_env(tmp_path, "linux", environ) is True
        assert environ == {"LD_LIBRARY_PATH": str(tmp_path)}

    def test_prepends(self, tmp_path):
        environ = {"LD_LIBRARY_PATH": "/usr/local/lib"}

        add_library_dir_to_env(tmp_path, "linux", environ)

        assert environ["LD_LIBRARY_PATH"] == f"{tmp_path}:/usr/local/lib"

    def test_windows_separator(self):
        environ = {"PATH": "C:\\Windows"}

        add_library_dir_to_env("C:\\codecs", "windows", environ)

        assert environ["PATH"] == "C:\\codecs;C:\\Windows"

    def test_already_present(self, tmp_path):
        environ = {"DYLD_LIBRARY_PATH": f"/opt/lib:{tmp_path}"}

        assert add_library_dir_to_env(tmp_path, "darwin", environ) is False
        assert environ["DYLD_LIBRARY_PATH"] == f"/opt/lib:{tmp_path}"


class TestRequiresOpenH264:
    """Tests for requires_openh264 function."""

    def test_hardware_preferred(self, make_config):
        assert requires_openh264(True, make_config()) is False

    def test_hardware_not_requested(self, make_config):
        assert requires_openh264(False, make_config()) is True

    def test_software_preferred_overrides(self, make_config):
        config = make_config(prefer_software_codecs=True)
        assert requires_openh264(True, config) is True


class TestResolveOpenH264:
    """Tests for resolve_openh264 function."""

    @responses.activate
    def test_adds_directory_to_search_path(self, make_config, make_bz2, monkeypatch):
        monkeypatch.setenv("LD_LIBRARY_PATH", "/usr/lib")
        responses.add(responses.GET, LINUX_URL, body=make_bz2(b"ELF"), status=200)

        resolution = resolve_openh264(make_config(), HostPlatform("linux", "amd64"))

        directory = Path(resolution.path).parent
        assert resolution.source is ResolutionSource.DOWNLOADED
        assert os.environ["LD_LIBRARY_PATH"] == f"{directory}:/usr/lib"

    def test_fallback_leaves_search_path(self, make_config, monkeypatch):
        monkeypatch.setenv("LD_LIBRARY_PATH", "/usr/lib")
        config = make_config(openh264={"disable_download": True})

        resolution = resolve_openh264(config, HostPlatform("linux", "amd64"))

        assert resolution.source is ResolutionSource.FALLBACK
        assert os.environ["LD_LIBRARY_PATH"] == "/usr/lib"


class TestResolveRuntime:
    """Tests for resolve_runtime function."""

    def test_shim_only_by_default(self, make_config):
        config = make_config(shim={"disable_download": True})

        runtime = resolve_runtime(config, HostPlatform("linux", "amd64"))

        assert runtime.shim.path == "libwebrtc_shim.so"
        assert runtime.openh264 is None
        assert runtime.ok

    @responses.activate
    def test_software_codecs_resolve_openh264_first(self, make_config, make_bz2, monkeypatch):
        monkeypatch.setenv("LD_LIBRARY_PATH", "")
        responses.add(responses.GET, LINUX_URL, body=make_bz2(b"ELF"), status=200)
        config = make_config(shim={"disable_download": True}, prefer_software_codecs=True)

        runtime = resolve_runtime(config, HostPlatform("linux", "amd64"))

        assert runtime.openh264.source is ResolutionSource.DOWNLOADED
        assert runtime.shim.source is ResolutionSource.FALLBACK
        assert runtime.ok

    @responses.activate
    def test_failure_reported_not_raised(self, make_config):
        config = make_config(prefer_software_codecs=True)

        runtime = resolve_runtime(config, HostPlatform("windows", "arm64"))

        assert runtime.shim.source is ResolutionSource.FALLBACK
        assert runtime.shim.error is not None
        assert not runtime.ok

    def test_loads_config_from_environment(self, monkeypatch):
        monkeypatch.setenv("LIBWEBRTC_SHIM_DISABLE_DOWNLOAD", "1")

        runtime = resolve_runtime(host=HostPlatform("darwin", "arm64"))

        assert runtime.shim.path == "libwebrtc_shim.dylib"


class TestPackageResolve:
    """Tests for the top-level nativekit.resolve() helper."""

    def test_resolve_with_config(self, make_config, monkeypatch):
        monkeypatch.setattr(
            "nativekit.artifacts.shim.detect_host", lambda: HostPlatform("linux", "arm64")
        )
        config = make_config(shim={"disable_download": True})

        resolution = nativekit.resolve(config)

        assert resolution.component == "shim"
        assert resolution.path == "libwebrtc_shim.so"

    def test_malformed_openh264_sha256_does_not_affect_shim(self, monkeypatch):
        monkeypatch.setenv("LIBWEBRTC_SHIM_DISABLE_DOWNLOAD", "1")
        monkeypatch.setenv("LIBWEBRTC_OPENH264_SHA256", "nothex")
        monkeypatch.setattr(
            "nativekit.artifacts.shim.detect_host", lambda: HostPlatform("linux", "amd64")
        )

        resolution = nativekit.resolve()

        assert resolution.path == "libwebrtc_shim.so"
        assert resolution.source is ResolutionSource.FALLBACK
        assert resolution.error is None

    def test_malformed_openh264_sha256_reported_by_runtime(self, make_config):
        config = make_config(
            shim={"disable_download": True},
            openh264={"sha256": "nothex"},
            prefer_software_codecs=True,
        )

        runtime = resolve_runtime(config, HostPlatform("linux", "amd64"))

        assert runtime.shim.path == "libwebrtc_shim.so"
        assert runtime.openh264.source is ResolutionSource.FALLBACK
        assert not runtime.ok
