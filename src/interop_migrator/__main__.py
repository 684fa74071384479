"""
Entry point for module execution (``python -m interop_migrator``).

This module delegates execution to the CLI handler in ``interop_migrator.cli.__main__``.
"""

import sys
from interop_migrator.cli.__main__ import main

if __name__ == "__main__":
  sys.exit(main())
