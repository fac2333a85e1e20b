"""
nativekit CLI argument parser.

This module implements the command-line interface using argparse.
"""

import argparse
import importlib
import logging
import sys
from pathlib import Path
from typing import List, Optional

from nativekit import __version__
from nativekit.core.exceptions import NativeKitError

logger = logging.getLogger(__name__)

COMPONENT_CHOICES = ["shim", "openh264"]


class CLI:
    """nativekit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="nativekit",
            description="nativekit - fetch, verify and cache prebuilt native libraries",
            epilog='Use "nativekit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"nativekit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./nativekit.yaml if present)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_resolve_command(subparsers)
        self._add_info_command(subparsers)
        self._add_unlock_command(subparsers)
        self._add_manifest_digests_command(subparsers)

        return parser

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Resolve (and download if needed) native libraries",
            description="Resolve library paths, downloading and verifying missing ones",
        )
        parser.add_argument(
            "component",
            nargs="?",
            choices=COMPONENT_CHOICES + ["all"],
            default="shim",
            help="Component to resolve (default: shim)",
        )

    def _add_info_command(self, subparsers):
        """Add 'info' subcommand."""
        subparsers.add_parser(
            "info",
            help="Show platform, cache locations and download URLs",
            description="Show what would be resolved, without network access",
        )

    def _add_unlock_command(self, subparsers):
        """Add 'unlock' subcommand."""
        parser = subparsers.add_parser(
            "unlock",
            help="Remove an abandoned download lock",
            description=(
                "Remove a .download.lock left behind by a crashed process. "
                "Only run this when no other process is downloading."
            ),
        )
        parser.add_argument(
            "component",
            choices=COMPONENT_CHOICES,
            help="Component whose cache directory should be unlocked",
        )

    def _add_manifest_digests_command(self, subparsers):
        """Add 'manifest-digests' subcommand."""
        parser = subparsers.add_parser(
            "manifest-digests",
            help="Recompute the sha256 digests recorded in a shim manifest",
            description=(
                "Hash every asset listed in a shim manifest, from a local release "
                "directory or by downloading it, and write the digests back."
            ),
        )
        parser.add_argument(
            "manifest",
            nargs="?",
            type=Path,
            help="Manifest file to update (default: the manifest shipped in the package)",
        )
        parser.add_argument(
            "--assets-dir",
            type=Path,
            metavar="DIR",
            help="Directory holding the release assets (default: download them)",
        )
        parser.add_argument(
            "--base-url",
            metavar="URL",
            help="Download assets from URL instead of the manifest's base_url",
        )
        parser.add_argument(
            "--check",
            action="store_true",
            help="Only report digests that differ; exit 1 if any do",
        )

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except Exception as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose and not isinstance(e, NativeKitError):
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(level=level, format=format_str, force=True)

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        command_map = {
            "resolve": "nativekit.cli.commands.resolve",
            "info": "nativekit.cli.commands.info",
            "unlock": "nativekit.cli.commands.unlock",
            "manifest-digests": "nativekit.cli.commands.manifest_digests",
        }

        module_name = command_map.get(args.command)
        if not module_name:
            logger.error(f"Unknown command: {args.command}")
            return 1

        module = importlib.import_module(module_name)
        return module.run(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
