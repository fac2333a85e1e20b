"""
On-disk artifact cache layout.

The cache is a deterministic, versioned, platform-partitioned directory tree:

    <root>/<component>/<flavor-or-version>/<release-tag-or-version>/<platform>/<library>

There is no metadata ledger. An artifact is cached if and only if its final
path exists, and the install pipeline only ever creates that path with a
last-step atomic move.
"""

from dataclasses import dataclass
from pathlib import Path

from nativekit.core.directory import ensure_directory
from nativekit.core.locking import lock_path_for


@dataclass(frozen=True)
class CacheEntry:
    """
    Location of one installed library in the cache.

    Attributes:
        directory: Leaf directory holding the library (and its lock file)
        library_name: File name of the installed library
    """

    directory: Path
    library_name: str

    @property
    def path(self) -> Path:
        return self.directory / self.library_name

    @property
    def lock_path(self) -> Path:
        return lock_path_for(self.directory)

    def exists(self) -> bool:
        return self.path.exists()

    def prepare(self) -> Path:
        """Create the leaf directory and return it."""
        return ensure_directory(self.directory)


class CacheStore:
    """
    Computes cache locations under one cache root.

    Example:
        >>> store = CacheStore(Path('/home/user/.libgowebrtc'))
        >>> store.shim_entry('basic', 'shim-v0.4.0', 'linux_amd64', 'libwebrtc_shim.so').path
        PosixPath('/home/user/.libgowebrtc/shim/basic/shim-v0.4.0/linux_amd64/libwebrtc_shim.so')
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def entry(self, component: str, *parts: str, library_name: str) -> CacheEntry:
        directory = self.root.joinpath(component, *parts)
        return CacheEntry(directory=directory, library_name=library_name)

    def shim_entry(
        self, flavor: str, release_tag: str, platform_key: str, library_name: str
    ) -> CacheEntry:
        return self.entry(
            "shim", flavor, release_tag, platform_key, library_name=library_name
        )

    def openh264_entry(
        self, version: str, platform_key: str, library_name: str
    ) -> CacheEntry:
        return self.entry("openh264", version, platform_key, library_name=library_name)


__all__ = ["CacheEntry", "CacheStore"]
