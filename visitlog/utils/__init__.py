"""
Utility modules for common functionality
"""

from visitlog.utils.csv_exporter import (
    CSVExport,
    EmptyExportSet,
    VisitCSVExporter,
    derive_status,
)
from visitlog.utils.timeutils import Clock, SystemClock, end_of_day, start_of_day

__all__ = [
    "CSVExport",
    "EmptyExportSet",
    "VisitCSVExporter",
    "derive_status",
    "Clock",
    "SystemClock",
    "start_of_day",
    "end_of_day",
]
