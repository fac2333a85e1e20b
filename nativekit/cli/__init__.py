"""
Command-line interface for nativekit.

Provides the ``nativekit`` command for resolving libraries ahead of time,
inspecting cache locations and recovering from abandoned lock files.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
