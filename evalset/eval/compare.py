"""Comparison Engine — baseline vs candidate over one case snapshot.

Both arms share a single dataset hash and a single case-subset hash,
computed once here, which proves they evaluated identical inputs. The
baseline run completes before the candidate run starts.
"""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from evalset.dataset.models import CaseDefinition
from evalset.eval.executor import VariantExecutor, hash_cases, utc_now
from evalset.eval.models import (
    CaseOutcome,
    CaseResult,
    CompareDelta,
    CompareIdentity,
    CompareReport,
    DatasetDescriptor,
    Outcome,
    RunReport,
    Variant,
)

logger = logging.getLogger(__name__)


def classify_outcome(baseline: CaseResult, candidate: CaseResult | None) -> Outcome:
    """improved / regressed / no change for one case.

    Unscored cases pass vacuously, so two unscored results are no change.
    """
    if candidate is None:
        return "no change"

    baseline_failed = baseline.scored and not baseline.passed
    candidate_failed = candidate.scored and not candidate.passed

    if baseline_failed and candidate.passed:
        return "improved"
    if baseline.passed and candidate_failed:
        return "regressed"
    return "no change"


def join_outcomes(baseline: RunReport, candidate: RunReport) -> list[CaseOutcome]:
    """Pair cases by display id, in baseline order."""
    by_id: dict[str, CaseResult] = {}
    for entry in candidate.cases:
        by_id.setdefault(entry.id, entry)

    outcomes = []
    for entry in baseline.cases:
        other = by_id.get(entry.id)
        outcomes.append(CaseOutcome(
            id=entry.id,
            baseline_pass=entry.passed,
            candidate_pass=other.passed if other else None,
            outcome=classify_outcome(entry, other),
        ))
    return outcomes


def compute_delta(baseline: RunReport, candidate: RunReport) -> CompareDelta:
    base_rate = baseline.totals.pass_rate
    cand_rate = candidate.totals.pass_rate
    return CompareDelta(
        pass_rate=(
            cand_rate - base_rate
            if base_rate is not None and cand_rate is not None
            else None
        ),
        avg_latency_ms=candidate.totals.avg_latency_ms - baseline.totals.avg_latency_ms,
        total_cost=candidate.totals.usage.cost.total - baseline.totals.usage.cost.total,
    )


class ComparisonEngine:
    """Runs two variants through the same executor and diffs them.

    Usage:
        engine = ComparisonEngine(executor)
        report = engine.compare(cases, baseline, candidate,
                                dataset=descriptor, dataset_hash=loaded.hash)
    """

    def __init__(self, executor: VariantExecutor) -> None:
        self.executor = executor

    def compare(
        self,
        cases: Sequence[CaseDefinition],
        baseline: Variant,
        candidate: Variant,
        *,
        dataset: DatasetDescriptor,
        dataset_hash: str,
    ) -> CompareReport:
        cases = list(cases)
        run_id = str(uuid.uuid4())
        started_at = utc_now()
        cases_hash = hash_cases(cases)

        baseline_report = self.executor.run(
            cases, baseline,
            dataset=dataset, dataset_hash=dataset_hash, cases_hash=cases_hash,
        )
        candidate_report = self.executor.run(
            cases, candidate,
            dataset=dataset, dataset_hash=dataset_hash, cases_hash=cases_hash,
        )

        outcomes = join_outcomes(baseline_report, candidate_report)
        finished_at = utc_now()

        logger.info(
            "Compare %s: %d improved, %d regressed",
            run_id,
            sum(1 for o in outcomes if o.outcome == "improved"),
            sum(1 for o in outcomes if o.outcome == "regressed"),
        )

        model = self.executor.model
        return CompareReport(
            created_at=finished_at,
            run=CompareIdentity(
                run_id=run_id,
                started_at=started_at,
                finished_at=finished_at,
                model_key=model.key,
                temperature=self.executor.temperature,
                dataset_hash=dataset_hash,
                cases_hash=cases_hash,
                baseline_run_id=baseline_report.run.run_id,
                candidate_run_id=candidate_report.run.run_id,
                baseline_variant_hash=baseline_report.run.variant_hash,
                candidate_variant_hash=candidate_report.run.variant_hash,
            ),
            dataset=dataset,
            model=model,
            baseline=baseline_report,
            candidate=candidate_report,
            delta=compute_delta(baseline_report, candidate_report),
            outcomes=outcomes,
        )
