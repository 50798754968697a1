"""Small formatting helpers shared by the CLI panels and the HTML export."""

from __future__ import annotations

from evalset.eval.models import RunReport


def format_percent(value: float | None) -> str:
    if value is None:
        return "n/a"
    return f"{value * 100:.1f}%"


def format_currency(value: float | None) -> str:
    return f"${(value or 0.0):.4f}"


def format_latency(value: float | None) -> str:
    return f"{(value or 0.0):.0f} ms"


def format_pass_rate(report: RunReport) -> str:
    """``66.7% (2/3)`` style pass rate over scored cases."""
    totals = report.totals
    return f"{format_percent(totals.pass_rate)} ({totals.passed_cases}/{totals.scored_cases})"


def failed_case_ids(report: RunReport) -> list[str]:
    """Ids of scored cases that failed, in report order."""
    return [case.id for case in report.cases if case.scored and not case.passed]
