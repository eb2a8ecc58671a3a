"""CLI command implementations.

This module implements the CLI commands for the bulkingest tool:
- validate: Check a source file against the rule table
- export: Validate and write the intermediate CSV
- load: Import a source file into the destination table
- rules: Print the rule table
- list_readers: List available reader types
- check_config: Validate configuration files

Each command is implemented as a function that returns an exit code,
enabling both direct invocation and subprocess-based testing.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Annotated, Any

from cyclopts import Parameter

from bulkingest.cli.config import (
    ConfigError,
    load_config,
    merge_config,
    resolve_database_url,
    validate_config,
)
from bulkingest.cli.exit_codes import STATUS_EXIT_CODES, ExitCode
from bulkingest.cli.output import ProgressIndicator, configure_logging, handle_error
from bulkingest.core.exceptions import ResourceError, SourceError, TransferError
from bulkingest.core.pipeline import ImportProfile, export_source, run_import, validate_source
from bulkingest.core.schema import DEFAULT_TABLE
from bulkingest.io.readers import list_readers as registry_list_readers
from bulkingest.load.baseline import DEFAULT_BATCH_SIZE
from bulkingest.load.destination import Destination
from bulkingest.rules.ruleset import list_rules
from bulkingest.validation.report import summarize

logger = logging.getLogger(__name__)


def validate(
    input_path: Annotated[Path, Parameter(help="Source file path")],
    reader: Annotated[str | None, Parameter(help="Reader type (csv, excel, parquet)")] = None,
    json_output: Annotated[bool, Parameter(name="--json", help="Print the report as JSON")] = False,
    limit: Annotated[int | None, Parameter(help="Show at most N violations")] = None,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
) -> int:
    """Validate a source file against the employee rules.

    Every row is checked against every rule; all violations are reported,
    grouped by rule and ordered by row within each rule.

    Args:
        input_path: Path to the source file
        reader: Reader type (inferred from extension if not specified)
        json_output: Print the violation report as JSON instead of text
        limit: Maximum number of violations to list in text output
        verbose: Show stack traces for errors

    Returns:
        Exit code (0 when valid, 2 when violations were found)

    Example:
        >>> exit_code = validate(Path("employees.xlsx"))
    """
    try:
        violations = validate_source(input_path, reader=reader)
    except SourceError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.SOURCE_ERROR
    except Exception as e:
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR

    report = summarize(violations)

    if json_output:
        print(json.dumps(report.to_json(), indent=2))
    elif report.is_valid():
        print(f"✓ Validation successful: {input_path.name} has no violations")
    else:
        print(f"✗ Validation failed for {input_path.name}:", file=sys.stderr)
        print(report.format(limit=limit))

    return ExitCode.SUCCESS if report.is_valid() else ExitCode.VALIDATION_FAILED


def export(
    input_path: Annotated[Path, Parameter(help="Source file path")],
    output_path: Annotated[Path, Parameter(help="Output CSV path")],
    reader: Annotated[str | None, Parameter(help="Reader type (csv, excel, parquet)")] = None,
    quiet: Annotated[bool, Parameter(help="Suppress progress output")] = False,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
) -> int:
    """Validate a source file and write the destination-shaped CSV.

    Nothing is written when the source has violations.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    progress = ProgressIndicator(enabled=not quiet)
    progress.start(f"Exporting {input_path.name}")

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        violations = export_source(input_path, output_path, reader=reader)
    except SourceError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.SOURCE_ERROR
    except (ResourceError, OSError) as e:
        handle_error(e, verbose=verbose)
        return ExitCode.RESOURCE_ERROR
    except Exception as e:
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR

    if violations:
        progress.error(f"{len(violations)} violations, nothing exported")
        for violation in violations:
            print(violation)
        return ExitCode.VALIDATION_FAILED

    progress.success(f"Exported {input_path.name} → {output_path}")
    return ExitCode.SUCCESS


def load(
    input_path: Annotated[Path, Parameter(help="Source file path")],
    database_url: Annotated[str | None, Parameter(help="Destination database URL")] = None,
    table: Annotated[str | None, Parameter(help="Destination table name")] = None,
    profile: Annotated[str | None, Parameter(help="Loading strategy (naive, batched, optimized)")] = None,
    batch_size: Annotated[int | None, Parameter(help="Rows per batch for the batched profile")] = None,
    reader: Annotated[str | None, Parameter(help="Reader type (csv, excel, parquet)")] = None,
    temp_dir: Annotated[Path | None, Parameter(help="Directory for the intermediate CSV")] = None,
    create_table: Annotated[bool, Parameter(help="Create the destination table if missing")] = False,
    config: Annotated[Path | None, Parameter(help="Configuration file path")] = None,
    quiet: Annotated[bool, Parameter(help="Suppress progress output")] = False,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
    log_level: Annotated[str | None, Parameter(help="Log level (debug, info, warning, error)")] = None,
    log_file: Annotated[Path | None, Parameter(help="Log file path")] = None,
) -> int:
    """Import a source file into the destination table.

    Runs validate → export → bulk load. The destination is left untouched
    unless every row passes validation and the whole transfer succeeds.

    Args:
        input_path: Path to the source file
        database_url: Destination URL (falls back to config, then BULKINGEST_DATABASE_URL)
        table: Destination table name (default "employees")
        profile: Loading strategy; naive and batched are timing baselines
        batch_size: Batch size for the batched profile
        reader: Reader type (inferred from extension if not specified)
        temp_dir: Directory for the intermediate CSV (system temp if not specified)
        create_table: Create the destination table before loading
        config: Path to configuration file (optional)
        quiet: Suppress progress indicators
        verbose: Show detailed error information including stack traces
        log_level: Logging level (debug, info, warning, error)
        log_file: Path to log file (optional)

    Returns:
        Exit code matching the import status

    Example:
        >>> exit_code = load(
        ...     Path("employees.xlsx"),
        ...     database_url="postgresql://app@localhost/hr",
        ...     profile="optimized",
        ... )
    """
    try:
        cfg: dict[str, Any] = {}
        if config:
            cfg = load_config(config)

        cfg = merge_config(
            cfg,
            database_url=database_url,
            table=table,
            profile=profile,
            batch_size=batch_size,
            reader=reader,
            temp_dir=str(temp_dir) if temp_dir else None,
            log_level=log_level,
        )

        errors = validate_config(cfg, require_database=True)
        if errors:
            print("✗ Configuration validation failed:", file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            return ExitCode.CONFIG_ERROR

        configure_logging(cfg.get("log_level", "info"), log_file)
    except ConfigError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.CONFIG_ERROR
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    destination = Destination(resolve_database_url(cfg), table=cfg.get("table", DEFAULT_TABLE))
    import_profile = ImportProfile(cfg.get("profile", ImportProfile.OPTIMIZED.value))

    progress = ProgressIndicator(enabled=not quiet)
    progress.start(f"Importing {input_path.name} ({import_profile.value})")

    try:
        if create_table:
            destination.create_table()

        result = run_import(
            input_path,
            destination,
            profile=import_profile,
            reader=cfg.get("reader"),
            batch_size=cfg.get("batch_size", DEFAULT_BATCH_SIZE),
            temp_dir=Path(cfg["temp_dir"]) if cfg.get("temp_dir") else None,
            **cfg.get("reader_config", {}),
        )
    except TransferError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.TRANSFER_ERROR
    except Exception as e:
        logger.exception("Unexpected error importing %s", input_path)
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR

    if result.is_success():
        progress.success(result.format())
    else:
        progress.error(result.format())
        if verbose and result.error is not None:
            handle_error(result.error, verbose=True)

    return STATUS_EXIT_CODES[result.status]


def rules() -> int:
    """List the validation rules in table order."""
    print("Validation rules:")
    for line in list_rules():
        print(f"  {line}")
    return ExitCode.SUCCESS


def list_readers() -> int:
    """List available reader types.

    Returns:
        Exit code (always 0)
    """
    readers = registry_list_readers()
    if not readers:
        print("No readers registered")
        return ExitCode.SUCCESS

    print("Available readers:")
    for name, description in readers.items():
        print(f"  {name:<10} {description}")
    return ExitCode.SUCCESS


def check_config(
    config_path: Annotated[Path, Parameter(help="Configuration file path")],
    require_database: Annotated[bool, Parameter(help="Require a database URL")] = False,
) -> int:
    """Validate a configuration file without running an import.

    Returns:
        Exit code (0 if valid, 6 if invalid)
    """
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        print("✗ Configuration validation failed:", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    errors = validate_config(cfg, require_database=require_database)
    if errors:
        print("✗ Configuration validation failed:", file=sys.stderr)
        for error in errors:
            print(f"  - {error}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    print("✓ Configuration is valid")
    return ExitCode.SUCCESS
