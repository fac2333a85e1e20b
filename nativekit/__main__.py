"""
Entry point for running nativekit as a module.

Usage: python -m nativekit [command] [options]
"""

from nativekit.cli.parser import main

if __name__ == "__main__":
    main()
