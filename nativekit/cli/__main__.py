"""
Entry point for running the nativekit CLI as a module.

Usage: python -m nativekit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
