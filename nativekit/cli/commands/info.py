"""
Info command implementation.

Shows what resolution would use on this host. Reads only the embedded
manifest and configuration; never touches the network or the cache.
"""

from nativekit import __version__
from nativekit.artifacts.openh264 import OpenH264Resolver
from nativekit.artifacts.runtime import library_path_variable
from nativekit.artifacts.shim import ShimResolver
from nativekit.cli.utils import load_cli_config
from nativekit.core.exceptions import NativeKitError


def run(args) -> int:
    """
    Run the info command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code (always 0; unresolvable fields are reported inline)
    """
    config = load_cli_config(args)
    shim = ShimResolver(config)
    openh264 = OpenH264Resolver(config, shim.host)

    print(f"nativekit {__version__}")
    print(f"Host:                {shim.host}")
    print(f"Loader search path:  {library_path_variable(shim.host.os)}")
    print(f"Prefer software:     {config.prefer_software_codecs}")
    print()

    print("Shim")
    print(f"  Flavor:            {config.shim.flavor}")
    print(f"  Library:           {shim.library_name}")
    print(f"  Download enabled:  {not config.shim.disable_download}")
    try:
        release = shim.release()
        print(f"  Platform key:      {release.platform_key}")
        print(f"  URL:               {release.url}")
        print(f"  Cache path:        {shim.cache_entry(release).path}")
    except NativeKitError as e:
        print(f"  Unavailable:       {e}")
    print()

    print("OpenH264")
    print(f"  Library:           {openh264.fallback_name}")
    print(f"  Download enabled:  {not config.openh264.disable_download}")
    try:
        spec = openh264.spec()
        print(f"  Version:           {spec.version}")
        print(f"  Platform key:      {spec.platform_key}")
        print(f"  URL:               {spec.url}")
        print(f"  SHA256:            {spec.sha256 or '(not verified)'}")
        print(f"  Cache path:        {openh264.cache_entry(spec).path}")
    except NativeKitError as e:
        print(f"  Unavailable:       {e}")

    return 0
