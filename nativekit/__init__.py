"""
nativekit - acquire, verify, cache and install prebuilt native libraries.

Usage:
    import nativekit

    runtime = nativekit.resolve_runtime()
    load_library(runtime.shim.path)
"""

from typing import Optional

__version__ = "0.4.0"

from nativekit.core.config import NativeConfig, load_config  # noqa: E402
from nativekit.core.exceptions import NativeKitError  # noqa: E402
from nativekit.artifacts import (  # noqa: E402
    Resolution,
    ResolutionSource,
    RuntimeLibraries,
    resolve_runtime,
    resolve_shim,
)


def resolve(config: Optional[NativeConfig] = None) -> Resolution:
    """
    Resolve the shim library path (the usual single startup call).

    Returns:
        Resolution whose ``path`` is ready for the host's loader
    """
    return resolve_shim(config if config is not None else load_config())


__all__ = [
    "__version__",
    "NativeConfig",
    "NativeKitError",
    "Resolution",
    "ResolutionSource",
    "RuntimeLibraries",
    "load_config",
    "resolve",
    "resolve_runtime",
]
