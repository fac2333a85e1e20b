"""
Manifest-digests command implementation.

Run by release tooling once the shim assets for a release tag are built or
published, so the shipped manifest records their real digests.
"""

import logging

from nativekit.artifacts.digests import embedded_manifest_path, regenerate_digests
from nativekit.cli.utils import load_cli_config

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run the manifest-digests command.

    Args:
        args: Parsed arguments with ``manifest``, ``assets_dir``, ``base_url``
            and ``check``

    Returns:
        0 on success; with ``--check``, 1 if any recorded digest is stale
    """
    config = load_cli_config(args)
    manifest_path = args.manifest or embedded_manifest_path()

    updates = regenerate_digests(
        manifest_path,
        assets_dir=args.assets_dir,
        base_url=args.base_url,
        timeout=config.download.timeout,
        check=args.check,
    )

    stale = [update for update in updates if update.changed]
    for update in updates:
        marker = "changed" if update.changed else "ok"
        print(f"{update.flavor}/{update.platform_key}: {update.new_sha256} ({marker})")

    if args.check:
        if stale:
            logger.error(f"{len(stale)} of {len(updates)} digests in {manifest_path} are stale")
            return 1
        print(f"All {len(updates)} digests in {manifest_path} are current")
        return 0

    print(f"Wrote {len(updates)} digests to {manifest_path} ({len(stale)} changed)")
    return 0
