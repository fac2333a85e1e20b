"""
Resolve command implementation.

Resolves library paths ahead of time (for example in a container build
step) so the first application start does not block on a download.
"""

import logging

from nativekit.artifacts.openh264 import OpenH264Resolver, is_not_published
from nativekit.artifacts.shim import ShimResolver
from nativekit.cli.utils import load_cli_config

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the resolve command.

    Prints one ``component: path (source)`` line per resolved library.

    Args:
        args: Parsed arguments with ``component`` ('shim', 'openh264' or 'all')

    Returns:
        0 if every requested library resolved, 1 if any fell back after an error
    """
    config = load_cli_config(args)

    resolutions = []
    if args.component in ("openh264", "all"):
        resolutions.append(OpenH264Resolver(config).resolve())
    if args.component in ("shim", "all"):
        resolutions.append(ShimResolver(config).resolve())

    exit_code = 0
    for resolution in resolutions:
        print(resolution)
        if resolution.ok:
            continue
        if is_not_published(resolution):
            logger.warning(
                "No OpenH264 binary is published for this platform; "
                "install it with the system package manager"
            )
        exit_code = 1

    return exit_code
