"""Projection of validated sources into the intermediate CSV."""

from bulkingest.export.exporter import build_export_query, export, intermediate_file

__all__ = ["build_export_query", "export", "intermediate_file"]
