"""
Main entry point for running the package as a module.

Usage:
    python -m worklog_bot fill --week 2024-06-03
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
