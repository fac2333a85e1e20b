"""
Unit tests for local library lookup.
"""

from pathlib import Path

from nativekit.artifacts.local import INSTALL_ROOT, candidate_paths, find_local_library
from nativekit.core.platform import HostPlatform

HOST = HostPlatform("linux", "amd64")
LIB = "libwebrtc_shim.so"


class TestCandidatePaths:
    """Tests for the conventional search order."""

    def test_order(self, tmp_path):
        cwd = tmp_path / "app" / "bin"
        relative = Path("lib") / "linux_amd64" / LIB

        paths = candidate_paths(LIB, HOST, cwd=cwd)

        assert paths[1:] == [
            cwd / relative,
            cwd.parent / relative,
            cwd.parent.parent / relative,
            INSTALL_ROOT / relative,
            Path(".") / relative,
            Path("..") / relative,
        ]

    def test_interpreter_directory_first(self, tmp_path):
        paths = candidate_paths(LIB, HOST, cwd=tmp_path)
        assert paths[0].parts[-3:] == ("lib", "linux_amd64", LIB)


class TestFindLocalLibrary:
    """Tests for find_local_library function."""

    def test_explicit_path(self, tmp_path):
        library = tmp_path / "custom" / "libwebrtc_shim.so"
        library.parent.mkdir()
        library.write_bytes(b"ELF")

        assert find_local_library(library, LIB, HOST, cwd=tmp_path) == library

    def test_missing_explicit_path_falls_through(self, tmp_path):
        bundled = tmp_path / "lib" / "linux_amd64" / LIB
        bundled.parent.mkdir(parents=True)
        bundled.write_bytes(b"ELF")

        found = find_local_library(tmp_path / "missing.so", LIB, HOST, cwd=tmp_path)

        assert found == bundled

    def test_parent_directory(self, tmp_path):
        bundled = tmp_path / "lib" / "linux_amd64" / LIB
        bundled.parent.mkdir(parents=True)
        bundled.write_bytes(b"ELF")

        found = find_local_library(None, LIB, HOST, cwd=tmp_path / "a" / "b")

        assert found == bundled

    def test_result_is_absolute(self, tmp_path, monkeypatch):
        bundled = tmp_path / "lib" / "linux_amd64" / LIB
        bundled.parent.mkdir(parents=True)
        bundled.write_bytes(b"ELF")
        monkeypatch.chdir(tmp_path)

        found = find_local_library(None, LIB, HOST)

        assert found.is_absolute()
        assert found.resolve() == bundled.resolve()

    def test_other_platform_directory_ignored(self, tmp_path):
        other = tmp_path / "lib" / "darwin_arm64" / LIB
        other.parent.mkdir(parents=True)
        other.write_bytes(b"ELF")

        assert find_local_library(None, LIB, HOST, cwd=tmp_path) is None

    def test_nothing_found(self, tmp_path):
        assert find_local_library(None, LIB, HOST, cwd=tmp_path) is None
