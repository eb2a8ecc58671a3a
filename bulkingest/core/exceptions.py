"""Custom exception classes for bulkingest error handling.

This module defines the exception hierarchy for the ingestion pipeline:
- SourceError: Source file missing, unreadable, or with a malformed header
- TransferError: Bulk load into the destination store failed
- ResourceError: The intermediate representation could not be created or written
- RuleError: A rule or constraint was constructed with invalid parameters

Validation violations are not exceptions; they are returned as data by the
batch validator. All exceptions inherit from IngestError for consistent
error handling.
"""

from typing import Any


class IngestError(Exception):
    """Base exception for all bulkingest errors.

    Provides a common base class for all custom exceptions in the ingestion
    pipeline, enabling catch-all error handling when needed.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error description
            context: Optional dictionary of contextual information (file paths,
                    table names, row counts, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        if not self.context:
            return self.message

        context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} [{context_str}]"


class SourceError(IngestError):
    """Exception raised when the source file cannot be used.

    Raised before validation runs when the source is missing, unreadable,
    has an unsupported format, or lacks required columns. Also raised when
    the analytical engine fails to evaluate the source.

    Context typically includes:
        - file_path: Path to the source file
        - missing_columns: Required columns absent from the header
        - format: Source format that was attempted
        - reason: Specific reason for the failure
    """

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        missing_columns: list[str] | None = None,
        format: str | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        """Initialize source error with input file details.

        Args:
            message: Human-readable error description
            file_path: Path to the source file that failed
            missing_columns: Required column names not found in the header
            format: Source format (e.g., "csv", "excel")
            reason: Specific reason for the failure
            **extra_context: Additional context information
        """
        context: dict[str, Any] = {}
        if file_path is not None:
            context["file_path"] = file_path
        if missing_columns is not None:
            context["missing_columns"] = missing_columns
        if format is not None:
            context["format"] = format
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)


class TransferError(IngestError):
    """Exception raised when the bulk transfer into the destination fails.

    The transfer runs in a single transaction, so when this is raised the
    destination table holds the same rows it held before the attempt.

    Context typically includes:
        - table: Destination table name
        - lines_sent: Number of lines streamed before the failure
        - reason: Specific reason reported by the driver
    """

    def __init__(
        self,
        message: str,
        table: str | None = None,
        lines_sent: int | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        """Initialize transfer error with destination details.

        Args:
            message: Human-readable error description
            table: Destination table name
            lines_sent: Lines written to the transfer channel before failing
            reason: Specific reason for the failure
            **extra_context: Additional context information
        """
        context: dict[str, Any] = {}
        if table is not None:
            context["table"] = table
        if lines_sent is not None:
            context["lines_sent"] = lines_sent
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)


class ResourceError(IngestError):
    """Exception raised when the intermediate representation cannot be written.

    Context typically includes:
        - path: Path of the intermediate file
        - reason: Specific reason (disk full, permissions, ...)
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if path is not None:
            context["path"] = path
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)


class RuleError(IngestError):
    """Exception raised when a constraint is configured with invalid parameters.

    Example:
        >>> raise RuleError(
        ...     "limit must be non-negative",
        ...     constraint="MaxLength",
        ...     parameter="limit",
        ...     value=-1,
        ... )
    """

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        parameter: str | None = None,
        value: Any = None,
        **extra_context: Any,
    ) -> None:
        context: dict[str, Any] = {}
        if constraint is not None:
            context["constraint"] = constraint
        if parameter is not None:
            context["parameter"] = parameter
        if value is not None:
            context["value"] = value
        context.update(extra_context)

        super().__init__(message, context)
