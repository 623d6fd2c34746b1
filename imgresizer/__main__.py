"""
Main entry point for running the package as a module.

Usage:
    python -m imgresizer process photo.jpg --local-root ./out
    python -m imgresizer clear-cache
    python -m imgresizer sizes
"""

import sys
from .cli import main

if __name__ == '__main__':
    sys.exit(main())
