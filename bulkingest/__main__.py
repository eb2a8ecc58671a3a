"""CLI entry point for bulkingest.

Enables invocation via `python -m bulkingest`.
"""

import sys

from bulkingest.cli.app import app

if __name__ == "__main__":
    exit_code = app()
    sys.exit(exit_code if exit_code is not None else 0)
