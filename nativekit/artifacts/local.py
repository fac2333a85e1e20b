"""
Local override locator.

Before anything touches the network, a library already present on disk is
looked up: first an operator-supplied explicit path, then a fixed ordered
list of conventional ``lib/<os>_<arch>/`` directories. Matches are returned
as-is and are NOT integrity checked: an operator who pins a path takes
responsibility for what is in it.
"""

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from nativekit.core.platform import HostPlatform

logger = logging.getLogger(__name__)

# Directory that contains the nativekit package (the install or checkout root)
INSTALL_ROOT = Path(__file__).resolve().parent.parent.parent


def candidate_paths(
    library_name: str, host: HostPlatform, cwd: Optional[Path] = None
) -> List[Path]:
    """
    Conventional locations for a bundled library, in priority order.

    1. ``<dir of the running interpreter>/lib/<os>_<arch>/<library>``
    2. ``<cwd>/lib/...``, ``<cwd>/../lib/...``, ``<cwd>/../../lib/...``
    3. ``<install root>/lib/...``
    4. ``./lib/...`` and ``../lib/...`` relative to the process
    """
    platform_dir = host.directory_name()
    relative = Path("lib") / platform_dir / library_name

    paths: List[Path] = []

    if sys.executable:
        paths.append(Path(sys.executable).resolve().parent / relative)

    if cwd is None:
        try:
            cwd = Path.cwd()
        except OSError:
            cwd = None
    if cwd is not None:
        paths.extend([cwd / relative, cwd.parent / relative, cwd.parent.parent / relative])

    paths.append(INSTALL_ROOT / relative)
    paths.extend([Path(".") / relative, Path("..") / relative])
    return paths


def find_local_library(
    explicit_path: Optional[Path],
    library_name: str,
    host: HostPlatform,
    cwd: Optional[Path] = None,
) -> Optional[Path]:
    """
    Find a pre-existing library without verification.

    Args:
        explicit_path: Operator-configured path, returned if it exists
        library_name: Platform-specific library file name
        host: Host platform (selects the ``lib/<os>_<arch>`` directory)
        cwd: Working directory override (default: process cwd)

    Returns:
        Absolute path of the first existing match, or None
    """
    if explicit_path is not None:
        if explicit_path.exists():
            logger.info(f"Using library from configured path: {explicit_path}")
            return explicit_path
        logger.debug(f"Configured library path does not exist: {explicit_path}")

    for path in candidate_paths(library_name, host, cwd):
        logger.debug(f"Checking for local library: {path}")
        if path.exists():
            found = Path(os.path.abspath(path))
            logger.info(f"Using local library: {found}")
            return found

    return None


__all__ = ["INSTALL_ROOT", "candidate_paths", "find_local_library"]
