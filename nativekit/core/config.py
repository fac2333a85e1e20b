"""
Configuration for nativekit.

All options live in a single immutable ``NativeConfig`` built once at
startup and passed down to the resolvers. Values come from three layers,
later layers overriding earlier ones:

1. Built-in defaults
2. An optional YAML file (``nativekit.yaml``)
3. ``LIBWEBRTC_*`` environment variables

Example nativekit.yaml:

    shim:
      flavor: basic
      cache_dir: /var/cache/libgowebrtc
    openh264:
      version: 2.5.1
      soversion: "7"
    download:
      timeout: 600
    prefer_software_codecs: false
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from nativekit.core.exceptions import ConfigurationError, InvalidDigestFormatError
from nativekit.core.verification import is_valid_sha256

logger = logging.getLogger(__name__)

DEFAULT_SHIM_FLAVOR = "basic"
DEFAULT_OPENH264_SOVERSION = "7"

DEFAULT_DOWNLOAD_TIMEOUT = 600.0
DEFAULT_LOCK_RETRY_DELAY = 0.2
DEFAULT_LOCK_ATTEMPTS = 50

ENV_SHIM_PATH = "LIBWEBRTC_SHIM_PATH"
ENV_SHIM_FLAVOR = "LIBWEBRTC_SHIM_FLAVOR"
ENV_SHIM_CACHE_DIR = "LIBWEBRTC_SHIM_CACHE_DIR"
ENV_SHIM_BASE_URL = "LIBWEBRTC_SHIM_BASE_URL"
ENV_SHIM_DISABLE_DOWNLOAD = "LIBWEBRTC_SHIM_DISABLE_DOWNLOAD"

ENV_OPENH264_PATH = "LIBWEBRTC_OPENH264_PATH"
ENV_OPENH264_URL = "LIBWEBRTC_OPENH264_URL"
ENV_OPENH264_VERSION = "LIBWEBRTC_OPENH264_VERSION"
ENV_OPENH264_BASE_URL = "LIBWEBRTC_OPENH264_BASE_URL"
ENV_OPENH264_SOVERSION = "LIBWEBRTC_OPENH264_SOVERSION"
ENV_OPENH264_CACHE_DIR = "LIBWEBRTC_OPENH264_CACHE_DIR"
ENV_OPENH264_DISABLE_DOWNLOAD = "LIBWEBRTC_OPENH264_DISABLE_DOWNLOAD"
ENV_OPENH264_SHA256 = "LIBWEBRTC_OPENH264_SHA256"

ENV_PREFER_SOFTWARE_CODECS = "LIBWEBRTC_PREFER_SOFTWARE_CODECS"


@dataclass(frozen=True)
class DownloadOptions:
    """Network and lock limits shared by both components."""

    timeout: float = DEFAULT_DOWNLOAD_TIMEOUT  # wall-clock seconds per download
    lock_retry_delay: float = DEFAULT_LOCK_RETRY_DELAY
    lock_attempts: int = DEFAULT_LOCK_ATTEMPTS

    def __post_init__(self):
        if self.timeout <= 0:
            raise ConfigurationError("download.timeout must be positive")
        if self.lock_retry_delay < 0:
            raise ConfigurationError("download.lock_retry_delay must not be negative")
        if self.lock_attempts < 1:
            raise ConfigurationError("download.lock_attempts must be at least 1")


@dataclass(frozen=True)
class ShimOptions:
    """Options for the primary shim component."""

    library_path: Optional[Path] = None  # explicit, unverified
    cache_dir: Optional[Path] = None
    base_url: Optional[str] = None  # overrides manifest base_url
    disable_download: bool = False
    flavor: str = DEFAULT_SHIM_FLAVOR


@dataclass(frozen=True)
class OpenH264Options:
    """
    Options for the secondary OpenH264 component.

    A malformed ``sha256`` is detected here but only reported when an
    OpenH264 download is prepared (``checked_sha256``), so it never affects
    shim resolution.
    """

    library_path: Optional[Path] = None
    cache_dir: Optional[Path] = None
    base_url: Optional[str] = None
    disable_download: bool = False
    version: Optional[str] = None
    url: Optional[str] = None
    soversion: str = DEFAULT_OPENH264_SOVERSION
    sha256: Optional[str] = None
    sha256_error: Optional[InvalidDigestFormatError] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self):
        if self.sha256 is not None and not is_valid_sha256(self.sha256):
            error = InvalidDigestFormatError(f"Invalid openh264 sha256: {self.sha256!r}")
            object.__setattr__(self, "sha256_error", error)

    def checked_sha256(self) -> Optional[str]:
        """
        Return the configured digest.

        Raises:
            InvalidDigestFormatError: The configured digest is not 64 hex characters
        """
        if self.sha256_error is not None:
            raise self.sha256_error
        return self.sha256


@dataclass(frozen=True)
class NativeConfig:
    """Complete nativekit configuration."""

    shim: ShimOptions = field(default_factory=ShimOptions)
    openh264: OpenH264Options = field(default_factory=OpenH264Options)
    download: DownloadOptions = field(default_factory=DownloadOptions)
    prefer_software_codecs: bool = False


def parse_bool(value) -> bool:
    """
    Interpret a flag value.

    Empty, ``0`` and ``false`` (any case) are false; everything else is true.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text == "":
        return False
    return text not in ("0", "false")


def _flavor(value) -> str:
    return str(value).strip().lower()


def _text(value) -> str:
    return str(value).strip()


def _path(value) -> Path:
    return Path(str(value).strip()).expanduser()


def _number(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected a number, got {value!r}")


def _count(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Expected an integer, got {value!r}")


# section -> option -> (file key, environment variable, converter)
_SCHEMA: Dict[str, Dict[str, tuple]] = {
    "shim": {
        "library_path": ("path", ENV_SHIM_PATH, _path),
        "cache_dir": ("cache_dir", ENV_SHIM_CACHE_DIR, _path),
        "base_url": ("base_url", ENV_SHIM_BASE_URL, _text),
        "disable_download": ("disable_download", ENV_SHIM_DISABLE_DOWNLOAD, parse_bool),
        "flavor": ("flavor", ENV_SHIM_FLAVOR, _flavor),
    },
    "openh264": {
        "library_path": ("path", ENV_OPENH264_PATH, _path),
        "cache_dir": ("cache_dir", ENV_OPENH264_CACHE_DIR, _path),
        "base_url": ("base_url", ENV_OPENH264_BASE_URL, _text),
        "disable_download": (
            "disable_download",
            ENV_OPENH264_DISABLE_DOWNLOAD,
            parse_bool,
        ),
        "version": ("version", ENV_OPENH264_VERSION, _text),
        "url": ("url", ENV_OPENH264_URL, _text),
        "soversion": ("soversion", ENV_OPENH264_SOVERSION, _text),
        "sha256": ("sha256", ENV_OPENH264_SHA256, _text),
    },
    "download": {
        "timeout": ("timeout", None, _number),
        "lock_retry_delay": ("lock_retry_delay", None, _number),
        "lock_attempts": ("lock_attempts", None, _count),
    },
}

_SECTION_TYPES = {
    "shim": ShimOptions,
    "openh264": OpenH264Options,
    "download": DownloadOptions,
}


def load_config_file(config_path: Path) -> dict:
    """
    Read a nativekit.yaml file.

    Returns:
        The raw mapping (empty for an empty file)

    Raises:
        ConfigurationError: If the file is missing, not YAML, or not a mapping
    """
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML syntax in {config_path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{config_path} must contain a mapping")
    return data


def _section_values(
    name: str, file_section, environ: Mapping[str, str]
) -> Dict[str, object]:
    schema = _SCHEMA[name]
    file_section = file_section or {}
    if not isinstance(file_section, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping")

    known_keys = {file_key for file_key, _, _ in schema.values()}
    unknown = sorted(set(file_section) - known_keys)
    if unknown:
        raise ConfigurationError(
            f"Unknown option(s) in section '{name}': {', '.join(unknown)}"
        )

    values: Dict[str, object] = {}
    for option, (file_key, env_var, convert) in schema.items():
        raw = file_section.get(file_key)
        if env_var:
            env_value = environ.get(env_var, "").strip()
            if env_value:
                logger.debug(f"Option {name}.{option} set from {env_var}")
                raw = env_value
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            continue
        values[option] = convert(raw)
    return values


def load_config(
    config_path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None
) -> NativeConfig:
    """
    Build the configuration from defaults, an optional file and the environment.

    Args:
        config_path: Optional path to a nativekit.yaml file
        environ: Environment mapping (default: os.environ)

    Returns:
        Immutable NativeConfig

    Raises:
        ConfigurationError: If the file or an option value is invalid

    Example:
        >>> config = load_config(environ={"LIBWEBRTC_SHIM_FLAVOR": "H264"})
        >>> config.shim.flavor
        'h264'
    """
    if environ is None:
        environ = os.environ

    data = load_config_file(Path(config_path)) if config_path else {}

    unknown = sorted(set(data) - set(_SCHEMA) - {"prefer_software_codecs"})
    if unknown:
        raise ConfigurationError(f"Unknown configuration section(s): {', '.join(unknown)}")

    sections = {
        name: section_type(**_section_values(name, data.get(name), environ))
        for name, section_type in _SECTION_TYPES.items()
    }

    prefer_software = parse_bool(data.get("prefer_software_codecs", False))
    if environ.get(ENV_PREFER_SOFTWARE_CODECS, "").strip():
        prefer_software = parse_bool(environ[ENV_PREFER_SOFTWARE_CODECS])

    return NativeConfig(
        shim=sections["shim"],
        openh264=sections["openh264"],
        download=sections["download"],
        prefer_software_codecs=prefer_software,
    )


__all__ = [
    "NativeConfig",
    "ShimOptions",
    "OpenH264Options",
    "DownloadOptions",
    "load_config",
    "load_config_file",
    "parse_bool",
    "DEFAULT_SHIM_FLAVOR",
    "DEFAULT_OPENH264_SOVERSION",
]
