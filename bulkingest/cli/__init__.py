"""CLI interface for the bulkingest import tool.

This package provides command-line access to validation, export and the
full import pipeline.
"""
