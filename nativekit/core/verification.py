"""
SHA-256 digest validation and streaming verification.

This module provides:
- Format validation for expected digests (exactly 64 hex characters)
- A write-through hashing writer so fetch and verification share one pass
- Case-insensitive, constant-time digest comparison
"""

import hashlib
import hmac
import logging
import re
from typing import BinaryIO, Optional

from nativekit.core.exceptions import IntegrityMismatchError

logger = logging.getLogger(__name__)

_SHA256_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


def is_valid_sha256(value: Optional[str]) -> bool:
    """
    Check that a value is a hex-encoded SHA-256 digest.

    Example:
        >>> is_valid_sha256("a" * 64)
        True
        >>> is_valid_sha256("xyz")
        False
    """
    if not isinstance(value, str):
        return False
    return _SHA256_PATTERN.match(value) is not None


def digests_match(actual: str, expected: str) -> bool:
    """Compare two hex digests ignoring case, in constant time."""
    return hmac.compare_digest(actual.lower(), expected.lower())


class HashingWriter:
    """
    File-like writer that forwards bytes to a sink while hashing them.

    Fetch and verification share a single pass over the data: every chunk
    written to the destination is also fed to the digest accumulator.

    Example:
        >>> with open(tmp, "wb") as f:
        ...     writer = HashingWriter(f)
        ...     writer.write(b"payload")
        >>> writer.hexdigest()
    """

    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self.hasher = hashlib.sha256()
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        self.sink.write(data)
        self.hasher.update(data)
        self.bytes_written += len(data)
        return len(data)

    def hexdigest(self) -> str:
        return self.hasher.hexdigest()

    def verify(self, expected_sha256: str, name: str) -> str:
        """
        Check the accumulated digest against the expected value.

        Args:
            expected_sha256: Expected digest (hex, any case)
            name: Artifact name used in the error message

        Returns:
            The computed digest

        Raises:
            IntegrityMismatchError: If the digests differ
        """
        actual = self.hexdigest()
        if not digests_match(actual, expected_sha256):
            raise IntegrityMismatchError(name, expected_sha256, actual)
        logger.info(f"Checksum verified for {name}")
        return actual


__all__ = ["is_valid_sha256", "digests_match", "HashingWriter"]
