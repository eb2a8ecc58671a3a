"""Import orchestration: validate → export → bulk load.

This module runs one import of a source file into a destination table and
reports the outcome as an ImportResult. The stages run strictly in order
because each consumes the full output of the previous one:

1. Open the source and check its header
2. Validate every row against the rule table (halt on any violation)
3. Export the destination projection to a temporary CSV
4. Stream the CSV into the destination with COPY in one transaction

Known failure kinds (source, transfer, resource) are turned into failure
results at the stage that raised them. Anything else, including
KeyboardInterrupt, propagates to the caller after the temporary file has
been removed and any open COPY aborted.

Two baseline profiles (naive and batched inserts) share stages 1-2 and
exist only for timing comparison.
"""

import logging
import time
from enum import Enum
from pathlib import Path
from typing import Any

from bulkingest.core.exceptions import (
    IngestError,
    ResourceError,
    SourceError,
    TransferError,
)
from bulkingest.core.result import ImportResult, ImportStatus, Violation
from bulkingest.export.exporter import export, intermediate_file
from bulkingest.io.readers import open_source
from bulkingest.load.baseline import DEFAULT_BATCH_SIZE, insert_rows_batched, insert_rows_naive
from bulkingest.load.destination import Destination
from bulkingest.load.loader import BulkLoader
from bulkingest.validation.batch import BatchValidator

logger = logging.getLogger(__name__)


class ImportProfile(Enum):
    """Loading strategy.

    Attributes:
        NAIVE: One INSERT per row (baseline)
        BATCHED: executemany per batch with a commit per batch (baseline)
        OPTIMIZED: Streamed CSV through COPY FROM STDIN
    """

    NAIVE = "naive"
    BATCHED = "batched"
    OPTIMIZED = "optimized"


_STATUS_BY_ERROR: dict[type[IngestError], ImportStatus] = {
    SourceError: ImportStatus.SOURCE_ERROR,
    TransferError: ImportStatus.TRANSFER_ERROR,
    ResourceError: ImportStatus.RESOURCE_ERROR,
}


def _status_for(error: IngestError) -> ImportStatus:
    for error_type, status in _STATUS_BY_ERROR.items():
        if isinstance(error, error_type):
            return status
    return ImportStatus.SOURCE_ERROR


def validate_source(
    source: Path,
    reader: str | None = None,
    validator: BatchValidator | None = None,
    **reader_config: Any,
) -> list[Violation]:
    """Open a source and return all of its violations.

    Raises:
        SourceError: If the source cannot be opened or evaluated
    """
    validator = validator or BatchValidator()
    return validator.validate(open_source(source, reader, **reader_config))


def export_source(
    source: Path,
    output_path: Path,
    reader: str | None = None,
    validator: BatchValidator | None = None,
    **reader_config: Any,
) -> list[Violation]:
    """Validate a source and, if it is clean, write the intermediate CSV.

    Returns:
        The violations; the file is written only when the list is empty

    Raises:
        SourceError: If the source cannot be opened or evaluated
        ResourceError: If the output cannot be written
    """
    validator = validator or BatchValidator()
    lf = open_source(source, reader, **reader_config)

    violations = validator.validate(lf)
    if not violations:
        export(lf, output_path)
    return violations


def run_import(
    source: Path,
    destination: Destination,
    profile: ImportProfile = ImportProfile.OPTIMIZED,
    reader: str | None = None,
    batch_size: int = DEFAULT_BATCH_SIZE,
    temp_dir: Path | None = None,
    validator: BatchValidator | None = None,
    loader: BulkLoader | None = None,
    **reader_config: Any,
) -> ImportResult:
    """Import a source file into the destination table.

    Args:
        source: Path to the source file
        destination: Destination handle for this invocation
        profile: Loading strategy
        reader: Reader name, inferred from the extension when None
        batch_size: Batch size for the batched profile
        temp_dir: Directory for the intermediate CSV (system temp when None)
        validator: Batch validator to use (default rules, today's date)
        loader: Bulk loader to use (destination table, default columns)
        **reader_config: Passed through to the reader

    Returns:
        ImportResult tagged with SUCCESS or the failure kind

    Raises:
        ValueError: If batch_size is not positive (checked before any work)

    Example:
        >>> dest = Destination("postgresql://app@localhost/hr")
        >>> result = run_import(Path("employees.xlsx"), dest)
        >>> if not result.is_success():
        ...     print(result.format())
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got: {batch_size}")

    started = time.perf_counter()
    validator = validator or BatchValidator()

    def finish(status: ImportStatus, **payload: Any) -> ImportResult:
        result = ImportResult(
            status=status,
            profile=profile.value,
            elapsed_ms=(time.perf_counter() - started) * 1000,
            **payload,
        )
        if result.is_success():
            logger.info(
                "%s import completed in %.1f ms (%d rows)",
                profile.value,
                result.elapsed_ms,
                result.rows_loaded,
            )
        else:
            logger.warning(
                "%s import failed (%s) in %.1f ms", profile.value, status.value, result.elapsed_ms
            )
        return result

    try:
        lf = open_source(source, reader, **reader_config)
        violations = validator.validate(lf)
    except SourceError as e:
        logger.error("Source error for %s: %s", source, e)
        return finish(ImportStatus.SOURCE_ERROR, error=e)

    if violations:
        return finish(ImportStatus.VALIDATION_FAILED, violations=violations)

    logger.info("Validation passed for %s", source)

    try:
        if profile is ImportProfile.NAIVE:
            rows = insert_rows_naive(lf, destination)
        elif profile is ImportProfile.BATCHED:
            rows = insert_rows_batched(lf, destination, batch_size=batch_size)
        else:
            loader = loader or BulkLoader(table=destination.table)
            with intermediate_file(temp_dir) as csv_path:
                export(lf, csv_path)
                with destination.connect() as conn:
                    rows = loader.load(csv_path, conn)
    except (SourceError, TransferError, ResourceError) as e:
        status = _status_for(e)
        logger.error("%s during %s import: %s", status.value, profile.value, e)
        return finish(status, error=e)

    return finish(ImportStatus.SUCCESS, rows_loaded=rows)
