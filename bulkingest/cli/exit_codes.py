"""Exit code constants for CLI commands.

Exit codes:
    0: SUCCESS - Operation completed successfully
    1: UNEXPECTED_ERROR - Unexpected/unhandled exception
    2: VALIDATION_FAILED - One or more rows violated a rule
    3: SOURCE_ERROR - Source file missing, unreadable or malformed
    4: TRANSFER_ERROR - Bulk load into the destination failed
    5: RESOURCE_ERROR - Intermediate file could not be created or written
    6: CONFIG_ERROR - Configuration file or argument error
"""

from bulkingest.core.result import ImportStatus


class ExitCode:
    """Standard exit codes for CLI commands.

    Example:
        >>> from bulkingest.cli.exit_codes import ExitCode
        >>> import sys
        >>>
        >>> try:
        ...     # ... operation ...
        ...     sys.exit(ExitCode.SUCCESS)
        ... except SourceError:
        ...     sys.exit(ExitCode.SOURCE_ERROR)
    """

    SUCCESS = 0
    """Operation completed successfully."""

    UNEXPECTED_ERROR = 1
    """Unexpected or unhandled exception occurred."""

    VALIDATION_FAILED = 2
    """The source contains rule violations; nothing was loaded."""

    SOURCE_ERROR = 3
    """Source file reading or header check failed."""

    TRANSFER_ERROR = 4
    """Bulk transfer into the destination failed and was rolled back."""

    RESOURCE_ERROR = 5
    """Intermediate file could not be created or written."""

    CONFIG_ERROR = 6
    """Configuration file or argument error."""


STATUS_EXIT_CODES: dict[ImportStatus, int] = {
    ImportStatus.SUCCESS: ExitCode.SUCCESS,
    ImportStatus.VALIDATION_FAILED: ExitCode.VALIDATION_FAILED,
    ImportStatus.SOURCE_ERROR: ExitCode.SOURCE_ERROR,
    ImportStatus.TRANSFER_ERROR: ExitCode.TRANSFER_ERROR,
    ImportStatus.RESOURCE_ERROR: ExitCode.RESOURCE_ERROR,
}
