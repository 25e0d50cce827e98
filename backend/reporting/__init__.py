"""Reporting utilities for backend-generated documents."""

from backend.reporting.csv_export import (
    CSV_HEADERS,
    CSV_MEDIA_TYPE,
    export_filename,
    export_transactions_csv,
)

__all__ = ["CSV_HEADERS", "CSV_MEDIA_TYPE", "export_filename", "export_transactions_csv"]
