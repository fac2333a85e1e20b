"""
Shared utilities for CLI commands.
"""

import logging
from pathlib import Path

from nativekit.core.config import NativeConfig, load_config

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "nativekit.yaml"


def load_cli_config(args) -> NativeConfig:
    """
    Load configuration for a CLI invocation.

    Uses ``--config`` when given, else ``./nativekit.yaml`` if it exists,
    else environment variables and defaults only.
    """
    config_file = getattr(args, "config", None)
    if config_file is None:
        default = Path.cwd() / DEFAULT_CONFIG_FILE
        if default.exists():
            config_file = default

    if config_file is not None:
        logger.debug(f"Loading configuration from {config_file}")
    return load_config(config_file)
