"""Case Evaluator — scores one output against one case's checks.

Pure: no I/O, no backend. Every declared check runs, in declaration
order. A case with no checks is unscored and passes vacuously.

Check semantics:
    expectContains     — term appears in output, case-insensitive
    expectNotContains  — term does not appear, case-insensitive
    expectRegex        — pattern matches anywhere, re.MULTILINE;
                         an invalid pattern is a failed check
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field

from evalset.dataset.models import (
    CaseDefinition,
    Check,
    ContainsCheck,
    NotContainsCheck,
    RegexCheck,
)
from evalset.errors import PatternError
from evalset.eval.models import CheckResult


@dataclass
class CaseEvaluation:
    scored: bool
    passed: bool
    checks: list[CheckResult] = field(default_factory=list)

    @property
    def failed_checks(self) -> list[str]:
        return [c.details for c in self.checks if not c.passed]


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile an expectation pattern with multi-line semantics.

    Raises:
        PatternError: If the pattern is not a valid regular expression.
    """
    try:
        return re.compile(pattern, re.MULTILINE)
    except re.error as e:
        raise PatternError(str(e)) from e


def run_check(check: Check, output: str) -> CheckResult:
    """Apply a single check to ``output``."""
    if isinstance(check, ContainsCheck):
        return CheckResult(
            check=check.kind,
            passed=check.term.lower() in output.lower(),
            details=f"contains {_quote(check.term)}",
        )

    if isinstance(check, NotContainsCheck):
        return CheckResult(
            check=check.kind,
            passed=check.term.lower() not in output.lower(),
            details=f"does not contain {_quote(check.term)}",
        )

    if isinstance(check, RegexCheck):
        try:
            regex = compile_pattern(check.pattern)
        except PatternError as e:
            return CheckResult(
                check=check.kind,
                passed=False,
                details=f"invalid regex {_quote(check.pattern)}: {e}",
            )
        return CheckResult(
            check=check.kind,
            passed=regex.search(output) is not None,
            details=f"matches /{check.pattern}/m",
        )

    raise TypeError(f"Unsupported check kind: {type(check).__name__}")


def evaluate_case(case: CaseDefinition, output: str) -> CaseEvaluation:
    """Score ``output`` against every check of ``case``."""
    checks = [run_check(check, output) for check in case.checks]
    scored = bool(checks)
    passed = all(c.passed for c in checks) if scored else True
    return CaseEvaluation(scored=scored, passed=passed, checks=checks)
