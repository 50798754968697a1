"""Evaluation — scoring, variant execution and comparison.

Exported here: the report models (RunReport, CompareReport and their parts).

The entry points live in their own modules, imported directly:
    evalset.eval.evaluator.evaluate_case    scores one output against one case
    evalset.eval.executor.VariantExecutor   runs a case subset under one variant
    evalset.eval.compare.ComparisonEngine   baseline vs candidate with deltas
"""

from evalset.eval.models import (
    CaseOutcome,
    CaseResult,
    CheckResult,
    CompareReport,
    RunReport,
    RunTotals,
    Usage,
    Variant,
)

__all__ = [
    "CaseOutcome",
    "CaseResult",
    "CheckResult",
    "CompareReport",
    "RunReport",
    "RunTotals",
    "Usage",
    "Variant",
]
