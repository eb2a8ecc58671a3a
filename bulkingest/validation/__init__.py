"""Batch validation and violation reporting."""

from bulkingest.validation.batch import BatchValidator
from bulkingest.validation.report import ViolationReport, summarize

__all__ = ["BatchValidator", "ViolationReport", "summarize"]
