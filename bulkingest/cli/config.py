"""Configuration file loading and validation.

This module handles loading configuration from JSON and YAML files, merging
CLI arguments with file-based configuration (with CLI taking precedence), and
validating the merged result before an import runs.

Configuration files can specify:
- database_url: Destination database URL
- table: Destination table name
- profile: Loading strategy (naive, batched, optimized)
- batch_size: Batch size for the batched profile
- reader: Reader type name
- reader_config: Dictionary of reader-specific configuration
- temp_dir: Directory for the intermediate CSV
- log_level: Logging level
"""

import json
import os
from pathlib import Path
from typing import Any

import yaml

from bulkingest.cli.output import LOG_LEVELS
from bulkingest.core.pipeline import ImportProfile
from bulkingest.io.readers import get_reader
from bulkingest.load.destination import DATABASE_URL_ENV


class ConfigError(Exception):
    """Configuration file error.

    Raised when configuration files cannot be loaded or parsed, or when the
    merged configuration is not usable.
    """


def load_config(path: Path) -> dict[str, Any]:
    """Load configuration from JSON or YAML file.

    Format is determined by file extension (.json, .yaml, .yml) or
    auto-detected when the extension is something else.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigError: If file cannot be loaded, parsed, or is not a mapping

    Example:
        >>> config = load_config(Path("import.yaml"))
        >>> config["table"]
        'employees'
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        content = path.read_text()

        if path.suffix == ".json":
            data = json.loads(content)
        elif path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            try:
                data = json.loads(content)
            except json.JSONDecodeError:
                data = yaml.safe_load(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration in {path} must be a mapping, got {type(data).__name__}"
        )
    return data


def merge_config(base: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    """Merge CLI arguments into base configuration.

    Only non-None override values are applied, so file values are used when
    the corresponding argument was not given.

    Example:
        >>> merge_config({"table": "staff", "profile": "batched"}, profile="optimized")
        {'table': 'staff', 'profile': 'optimized'}
    """
    merged = base.copy()
    for key, value in overrides.items():
        if value is not None:
            merged[key] = value
    return merged


def resolve_database_url(config: dict[str, Any]) -> str | None:
    """Return the configured database URL, falling back to the environment."""
    return config.get("database_url") or os.environ.get(DATABASE_URL_ENV) or None


def validate_config(config: dict[str, Any], require_database: bool = False) -> list[str]:
    """Validate configuration values.

    Checks that:
    - The reader, when given, is registered
    - The profile, when given, is a known loading strategy
    - The batch size, when given, is a positive integer
    - The log level, when given, is known
    - A database URL is available when require_database is set

    Returns:
        List of validation error messages (empty list if valid)

    Example:
        >>> validate_config({"profile": "fast"})
        ["Unknown profile 'fast'. Available: naive, batched, optimized"]
    """
    errors = []

    if config.get("reader") is not None:
        try:
            get_reader(config["reader"])
        except KeyError as e:
            errors.append(e.args[0])

    if config.get("profile") is not None:
        try:
            ImportProfile(config["profile"])
        except ValueError:
            available = ", ".join(p.value for p in ImportProfile)
            errors.append(f"Unknown profile '{config['profile']}'. Available: {available}")

    if config.get("batch_size") is not None:
        size = config["batch_size"]
        if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
            errors.append(f"batch_size must be a positive integer, got: {size!r}")

    if config.get("log_level") is not None and str(config["log_level"]).lower() not in LOG_LEVELS:
        errors.append(
            f"Invalid log level '{config['log_level']}'. Must be one of: {', '.join(LOG_LEVELS)}"
        )

    if config.get("reader_config") is not None and not isinstance(config["reader_config"], dict):
        errors.append("reader_config must be a mapping")

    if require_database and not resolve_database_url(config):
        errors.append(
            f"No database URL configured. Pass --database-url, set 'database_url' "
            f"in the config file, or set {DATABASE_URL_ENV}"
        )

    return errors
