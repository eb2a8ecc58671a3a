"""Validated bulk import of employee records into PostgreSQL."""

__version__ = "0.1.0"
