"""
Centralized exception hierarchy for nativekit.

Every failure of the acquisition pipeline maps to exactly one of these
exception types so callers can tell a missing platform build apart from a
network outage, a corrupted download or a stuck lock file.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class NativeKitError(Exception):
    """Base exception for all nativekit errors."""

    pass


class ConfigurationError(NativeKitError):
    """Invalid configuration file or option value."""

    pass


# ============================================================================
# Platform Exceptions
# ============================================================================


class PlatformUnsupportedError(NativeKitError):
    """Raised when a resolver has no entry for the (os, arch) pair."""

    def __init__(self, component: str, os_name: str, arch: str):
        self.component = component
        self.os_name = os_name
        self.arch = arch
        super().__init__(
            f"Unsupported platform for {component} auto-download: {os_name}/{arch}"
        )


class BinaryNotPublishedError(NativeKitError):
    """
    Raised when upstream publishes no prebuilt binary for the platform.

    Deliberately not a PlatformUnsupportedError: callers may treat this as
    non-fatal and fall back to a code path that does not need the library.
    """

    def __init__(self, component: str, os_name: str, arch: str):
        self.component = component
        self.os_name = os_name
        self.arch = arch
        super().__init__(
            f"{component} binary not published for this platform: {os_name}/{arch}"
        )


# ============================================================================
# Manifest Exceptions
# ============================================================================


class ManifestError(NativeKitError):
    """Base exception for manifest-related errors."""

    pass


class ManifestMalformedError(ManifestError):
    """Manifest cannot be parsed or violates the schema."""

    pass


class UnknownFlavorError(ManifestError):
    """Raised when the selected flavor is not listed in the manifest."""

    def __init__(self, flavor: str):
        self.flavor = flavor
        super().__init__(f"Shim manifest missing flavor {flavor!r}")


class MissingAssetError(ManifestError):
    """Raised when a flavor has no asset for the platform key."""

    def __init__(self, flavor: str, platform_key: str):
        self.flavor = flavor
        self.platform_key = platform_key
        super().__init__(
            f"Shim manifest missing asset for {platform_key} flavor {flavor!r}"
        )


class InvalidDigestFormatError(ManifestError):
    """A SHA-256 value is not exactly 64 hexadecimal characters."""

    pass


# ============================================================================
# Pipeline Exceptions
# ============================================================================


class NetworkError(NativeKitError):
    """Transport failure or non-success HTTP status."""

    pass


class IntegrityMismatchError(NativeKitError):
    """Downloaded bytes do not match the expected SHA-256 digest."""

    def __init__(self, name: str, expected: str, actual: str):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{name} sha256 mismatch: expected {expected}, got {actual}"
        )


class ArchiveError(NativeKitError):
    """Archive is unreadable, contains unsupported entries or is missing the library."""

    pass


class InsecureArchiveError(ArchiveError):
    """Archive entry escapes the extraction root."""

    pass


class LockTimeoutError(NativeKitError):
    """Raised when the download lock cannot be acquired within the retry budget."""

    def __init__(self, lock_path, attempts: int):
        self.lock_path = lock_path
        self.attempts = attempts
        super().__init__(
            f"Timeout waiting for download lock {lock_path} after {attempts} attempts. "
            "If no other process is downloading, remove the lock file manually "
            "(or run 'nativekit unlock')."
        )


class InstallError(NativeKitError):
    """Filesystem failure while preparing or installing the artifact."""

    pass


class LocalOverrideMissingError(NativeKitError):
    """An explicitly configured library path does not exist."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Configured library path not found: {path}")
