"""Result types returned by the ingestion pipeline.

Violation is the unit of validation output. ImportResult is the tagged
outcome of one pipeline invocation: either a success carrying the loaded
row count, or a failure carrying its kind and either the violation list or
the error that stopped the run.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bulkingest.core.exceptions import IngestError


@dataclass(frozen=True)
class Violation:
    """A single rule failure tied to one row.

    Attributes:
        row_id: Value of the row's SN column (None when the cell was empty)
        message: Fixed, human-readable rule message
        field: Source field whose rule failed

    Example:
        >>> v = Violation(row_id="7", message="Invalid Gender.", field="gender")
        >>> str(v)
        '7 : Invalid Gender.'
    """

    row_id: str | None
    message: str
    field: str = ""

    def __str__(self) -> str:
        return f"{self.row_id if self.row_id is not None else ''} : {self.message}"

    def to_json(self) -> dict[str, Any]:
        return {"row_identifier": self.row_id, "message": self.message, "field": self.field}


class ImportStatus(Enum):
    """Outcome kind of a pipeline invocation.

    Attributes:
        SUCCESS: All rows were validated and loaded
        SOURCE_ERROR: The source could not be read or had a malformed header
        VALIDATION_FAILED: One or more rows violated a rule; nothing was loaded
        TRANSFER_ERROR: The bulk load failed and was rolled back
        RESOURCE_ERROR: The intermediate file could not be created or written
    """

    SUCCESS = "success"
    SOURCE_ERROR = "source_error"
    VALIDATION_FAILED = "validation_failed"
    TRANSFER_ERROR = "transfer_error"
    RESOURCE_ERROR = "resource_error"


@dataclass
class ImportResult:
    """Outcome of one import.

    Exactly one of the failure payloads is populated for a failed import:
    ``violations`` for VALIDATION_FAILED, ``error`` for the error kinds.

    Attributes:
        status: Outcome kind
        profile: Name of the import profile that ran
        rows_loaded: Rows written to the destination (0 unless SUCCESS)
        elapsed_ms: Wall-clock duration of the whole invocation
        violations: Every violation found, grouped by rule then row order
        error: The error that stopped the run, for error kinds

    Example:
        >>> result = ImportResult(status=ImportStatus.SUCCESS, profile="optimized",
        ...                       rows_loaded=3, elapsed_ms=12.5)
        >>> result.is_success()
        True
        >>> print(result.format())
        [optimized] Import succeeded: 3 rows loaded in 12.5 ms
    """

    status: ImportStatus
    profile: str = ""
    rows_loaded: int = 0
    elapsed_ms: float = 0.0
    violations: list[Violation] = field(default_factory=list)
    error: IngestError | None = None

    def is_success(self) -> bool:
        return self.status is ImportStatus.SUCCESS

    def format(self) -> str:
        """Format the result for console output."""
        if self.is_success():
            return (
                f"[{self.profile}] Import succeeded: {self.rows_loaded} rows loaded "
                f"in {self.elapsed_ms:.1f} ms"
            )

        lines = [
            f"[{self.profile}] Import failed ({self.status.value}) "
            f"after {self.elapsed_ms:.1f} ms"
        ]
        if self.violations:
            lines.append(f"Violations ({len(self.violations)}):")
            lines.extend(f"  - {v}" for v in self.violations)
        if self.error is not None:
            lines.append(f"Error: {self.error}")
        return "\n".join(lines)

    def to_json(self) -> dict[str, Any]:
        """Export the result as a JSON-serializable dictionary."""
        return {
            "status": self.status.value,
            "profile": self.profile,
            "rows_loaded": self.rows_loaded,
            "elapsed_ms": self.elapsed_ms,
            "violations": [v.to_json() for v in self.violations],
            "error": None
            if self.error is None
            else {
                "type": type(self.error).__name__,
                "message": self.error.message,
                "context": {k: str(v) for k, v in self.error.context.items()},
            },
        }
