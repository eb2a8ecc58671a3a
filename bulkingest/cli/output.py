"""Output formatting, progress indicators and logging setup for the CLI.

This module provides:
- ProgressIndicator: TTY-aware progress indicators for long operations
- handle_error: Formatted error messages with context and optional stack traces
- configure_logging: Root logger setup from --log-level / --log-file
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

LOG_LEVELS = ("debug", "info", "warning", "error")


class ProgressIndicator:
    """Simple progress indicator for CLI operations.

    Automatically detects TTY to disable progress indicators when output
    is redirected to a file or pipe. Progress messages are written to
    stderr to keep stdout clean for actual output.

    Example:
        progress = ProgressIndicator(enabled=not quiet)
        progress.start("Importing employees.xlsx")
        # ... do work ...
        progress.success("Imported 25000 rows")
    """

    def __init__(self, enabled: bool = True, stream: TextIO = sys.stderr):
        # Disable if explicitly disabled or if output is redirected (not a TTY)
        self.enabled = enabled and stream.isatty()
        self.stream = stream

    def start(self, message: str) -> None:
        if self.enabled:
            self.stream.write(f"{message}... ")
            self.stream.flush()

    def success(self, message: str) -> None:
        if self.enabled:
            self.stream.write("✓\n")
        print(message)

    def error(self, message: str) -> None:
        if self.enabled:
            self.stream.write("✗\n")
        print(f"Error: {message}", file=sys.stderr)


def handle_error(error: BaseException, verbose: bool = False) -> None:
    """Format and display an error message with context.

    Displays the message on stderr together with the context fields of
    IngestError exceptions. When verbose mode is enabled, also displays
    the full stack trace.

    Args:
        error: Exception to display
        verbose: Whether to show stack trace (default False)
    """
    print(f"Error: {error}", file=sys.stderr)

    context = getattr(error, "context", None)
    if context:
        print("Context:", file=sys.stderr)
        for key, value in context.items():
            print(f"  {key}: {value}", file=sys.stderr)

    if verbose:
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exception(error, file=sys.stderr)


def configure_logging(level: str = "info", log_file: Path | None = None) -> None:
    """Configure the root logger for a CLI run.

    Log records go to stderr, and additionally to ``log_file`` when given.
    Calling this again replaces the handlers of the previous call.

    Raises:
        ValueError: If level is not one of LOG_LEVELS
    """
    if level.lower() not in LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level}'. Must be one of: {', '.join(LOG_LEVELS)}"
        )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
