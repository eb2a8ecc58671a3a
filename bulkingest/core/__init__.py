"""Core types: schema, exceptions, results and the import pipeline."""
