"""Variant Executor — runs a case subset through one variant.

Flow:
    1. Stamp a fresh run id and start time
    2. For each case, in declared order:
       - Resolve its display id
       - Send one single-turn completion (variant prompt + case input)
       - Score the reply with the Case Evaluator
       - A backend failure becomes a scored, failed case; the run goes on
    3. Aggregate totals over all cases and build the RunReport

Cases run one at a time by default. With ``concurrency > 1`` they are
dispatched to a bounded thread pool; results are still stored at their
input index and aggregated once every case has finished.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from evalset.dataset.models import CaseDefinition
from evalset.eval.evaluator import evaluate_case
from evalset.eval.models import (
    CaseResult,
    CheckResult,
    DatasetDescriptor,
    ModelDescriptor,
    RunIdentity,
    RunReport,
    RunTotals,
    Usage,
    Variant,
)
from evalset.hashing import content_hash
from evalset.providers.base import (
    CompletionClient,
    CompletionContext,
    CompletionOptions,
    UserMessage,
)

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 280


def utc_now() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def hash_cases(cases: Sequence[CaseDefinition]) -> str:
    """Content hash of an ordered case subset."""
    return content_hash(list(cases))


def clip(text: str, max_chars: int = PREVIEW_CHARS) -> str:
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}..."


def aggregate(results: Sequence[CaseResult]) -> RunTotals:
    """Totals over all cases. Pass rate is None when nothing is scored."""
    scored = [r for r in results if r.scored]
    passed = [r for r in scored if r.passed]

    total_latency = sum(r.latency_ms for r in results)
    usage = Usage()
    for r in results:
        usage = usage + r.usage

    return RunTotals(
        cases=len(results),
        scored_cases=len(scored),
        passed_cases=len(passed),
        failed_cases=len(scored) - len(passed),
        pass_rate=len(passed) / len(scored) if scored else None,
        total_latency_ms=total_latency,
        avg_latency_ms=total_latency / len(results) if results else 0.0,
        usage=usage,
    )


class VariantExecutor:
    """Evaluates cases under one variant against a completion backend.

    Usage:
        executor = VariantExecutor(client, model, api_key=key, temperature=0.2)
        report = executor.run(cases, variant, dataset=descriptor,
                              dataset_hash=loaded.hash)
        print(report.model_dump_json(by_alias=True, indent=2))
    """

    def __init__(
        self,
        client: CompletionClient,
        model: ModelDescriptor,
        *,
        api_key: str | None = None,
        temperature: float | None = None,
        concurrency: int = 1,
        print_fn: Callable[[str], Any] | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.client = client
        self.model = model
        self.api_key = api_key
        self.temperature = temperature
        self.concurrency = concurrency
        self.print_fn = print_fn
        self._progress_lock = threading.Lock()
        self._done = 0

    def run(
        self,
        cases: Sequence[CaseDefinition],
        variant: Variant,
        *,
        dataset: DatasetDescriptor,
        dataset_hash: str,
        cases_hash: str | None = None,
    ) -> RunReport:
        """Evaluate ``cases`` under ``variant``.

        Args:
            cases: Ordered case subset.
            variant: Resolved system prompt to evaluate.
            dataset: Name and path recorded in the report.
            dataset_hash: Byte-level hash of the dataset source.
            cases_hash: Hash of ``cases``; computed when not given. The
                comparison engine passes one shared value to both arms.

        Returns:
            RunReport with one CaseResult per case, in input order.
        """
        cases = list(cases)
        run_id = str(uuid.uuid4())
        started_at = utc_now()
        variant_hash = content_hash(variant)
        if cases_hash is None:
            cases_hash = hash_cases(cases)

        logger.info(
            "Run %s: variant=%s model=%s cases=%d",
            run_id, variant.name, self.model.key, len(cases),
        )
        results = self._execute(cases, variant)
        finished_at = utc_now()
        totals = aggregate(results)

        logger.info(
            "Run %s finished: %d/%d scored cases passed",
            run_id, totals.passed_cases, totals.scored_cases,
        )

        return RunReport(
            created_at=finished_at,
            run=RunIdentity(
                run_id=run_id,
                started_at=started_at,
                finished_at=finished_at,
                model_key=self.model.key,
                temperature=self.temperature,
                dataset_hash=dataset_hash,
                cases_hash=cases_hash,
                variant_hash=variant_hash,
            ),
            dataset=dataset,
            model=self.model,
            variant=variant,
            totals=totals,
            cases=results,
        )

    # ------------------------------------------------------------------
    # Internal: dispatch
    # ------------------------------------------------------------------

    def _execute(self, cases: list[CaseDefinition], variant: Variant) -> list[CaseResult]:
        self._done = 0
        if self.concurrency == 1 or len(cases) <= 1:
            return [self._run_case(i, case, variant, len(cases)) for i, case in enumerate(cases)]

        results: list[CaseResult | None] = [None] * len(cases)
        workers = min(self.concurrency, len(cases))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="evalset") as pool:
            futures = {
                pool.submit(self._run_case, i, case, variant, len(cases)): i
                for i, case in enumerate(cases)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()

        return [r for r in results if r is not None]

    def _progress(self, variant: Variant, total: int) -> None:
        with self._progress_lock:
            self._done += 1
            done = self._done
        if self.print_fn:
            self.print_fn(f"{variant.name} {done}/{total}")

    # ------------------------------------------------------------------
    # Internal: one case
    # ------------------------------------------------------------------

    def _run_case(
        self,
        index: int,
        case: CaseDefinition,
        variant: Variant,
        total: int,
    ) -> CaseResult:
        """Run and score one case. Never raises for backend failures."""
        case_id = case.display_id(index)
        context = CompletionContext(
            system_prompt=variant.system_prompt,
            messages=[UserMessage(content=case.input)],
        )
        options = CompletionOptions(api_key=self.api_key, temperature=self.temperature)

        started = time.perf_counter()
        try:
            response = self.client.complete(self.model, context, options)
            output = response.text()
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.warning("Case %s failed under %s: %s", case_id, variant.name, message)
            result = CaseResult(
                id=case_id,
                input=case.input,
                scored=True,
                passed=False,
                checks=[CheckResult(check="request", passed=False, details=message)],
                failed_checks=[message],
                output_preview="",
                latency_ms=_elapsed_ms(started),
                stop_reason="error",
                usage=Usage(),
                error=message,
            )
        else:
            evaluation = evaluate_case(case, output)
            result = CaseResult(
                id=case_id,
                input=case.input,
                scored=evaluation.scored,
                passed=evaluation.passed,
                checks=evaluation.checks,
                failed_checks=evaluation.failed_checks,
                output_preview=clip(output),
                latency_ms=_elapsed_ms(started),
                stop_reason=response.stop_reason,
                usage=response.usage,
            )

        self._progress(variant, total)
        return result


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))
