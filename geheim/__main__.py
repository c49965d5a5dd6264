"""
Main entry point for running geheim as a module.

Usage:
    python -m geheim <command> [options]
"""

from .cli import main
import sys

if __name__ == "__main__":
    sys.exit(main())
