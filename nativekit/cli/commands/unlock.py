"""
Unlock command implementation.

A process killed while holding a download lock leaves ``.download.lock``
behind, and later installs into that cache directory time out. This
command removes it for the configured flavor/version on this host.
"""

from nativekit.artifacts.openh264 import OpenH264Resolver
from nativekit.artifacts.shim import ShimResolver
from nativekit.cli.utils import load_cli_config
from nativekit.core.locking import remove_lock


def run(args) -> int:
    """
    Run the unlock command.

    Args:
        args: Parsed arguments with ``component`` ('shim' or 'openh264')

    Returns:
        Exit code (0 whether or not a lock existed)

    Raises:
        NativeKitError: If the cache location cannot be determined
    """
    config = load_cli_config(args)

    if args.component == "shim":
        resolver = ShimResolver(config)
        entry = resolver.cache_entry(resolver.release())
    else:
        resolver = OpenH264Resolver(config)
        entry = resolver.cache_entry(resolver.spec())

    if remove_lock(entry.directory):
        print(f"Removed {entry.lock_path}")
    else:
        print(f"No lock held at {entry.lock_path}")
    return 0
