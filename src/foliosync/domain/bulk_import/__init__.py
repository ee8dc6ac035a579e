"""Spreadsheet import of staff users into the document store and identity provider."""

from __future__ import annotations

from .parse import HEADER_ALIASES, parse_sheet
from .pipeline import BulkImportPipeline, PlannedRow
from .report import ImportPreview, PreviewRow, ReconciliationResult, RowOutcome
from .rows import ImportRow, validate_row, validate_rows

__all__ = [
    "HEADER_ALIASES",
    "BulkImportPipeline",
    "ImportPreview",
    "ImportRow",
    "PlannedRow",
    "PreviewRow",
    "ReconciliationResult",
    "RowOutcome",
    "parse_sheet",
    "validate_row",
    "validate_rows",
]
