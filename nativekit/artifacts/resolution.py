"""Resolution results returned to the host process."""

import enum
from dataclasses import dataclass
from typing import Optional

from nativekit.core.exceptions import NativeKitError


class ResolutionSource(enum.Enum):
    """Where a resolved library path came from."""

    LOCAL = "local"  # explicit path or conventional directory, unverified
    CACHED = "cached"  # already present in the artifact cache
    DOWNLOADED = "downloaded"  # fetched, verified and installed by this call
    FALLBACK = "fallback"  # bare library name for the system loader search path


@dataclass(frozen=True)
class Resolution:
    """
    Outcome of resolving one component.

    Attributes:
        component: 'shim' or 'openh264'
        path: Filesystem path, or the bare library name for FALLBACK
        source: Where the path came from
        error: The download error behind a FALLBACK, kept for diagnostics
    """

    component: str
    path: str
    source: ResolutionSource
    error: Optional[NativeKitError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        text = f"{self.component}: {self.path} ({self.source.value})"
        if self.error is not None:
            text += f" [download failed: {self.error}]"
        return text


__all__ = ["Resolution", "ResolutionSource"]
