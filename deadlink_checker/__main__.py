#!/usr/bin/env python3
"""
Package entry point for the Dead Link Checker.

This allows the package to be executed with: python -m deadlink_checker
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
