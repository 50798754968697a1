"""Reporting — console summaries and standalone HTML pages."""

from evalset.report.html import default_html_path, render_report
from evalset.report.summary import (
    failed_case_ids,
    format_currency,
    format_latency,
    format_pass_rate,
    format_percent,
)

__all__ = [
    "default_html_path",
    "failed_case_ids",
    "format_currency",
    "format_latency",
    "format_pass_rate",
    "format_percent",
    "render_report",
]
