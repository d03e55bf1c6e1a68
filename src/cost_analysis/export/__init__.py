"""Cost report export."""

from .report import generate_report, report_filename, write_report

__all__ = ["generate_report", "report_filename", "write_report"]
