"""Evaluation data models — Pydantic models for run and compare reports.

Field names are snake_case in Python and camelCase in the persisted
documents (``report.model_dump(by_alias=True)``). Reports are frozen:
they are built once by the executor and never mutated afterwards.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    """Base for every persisted model: camelCase on disk, immutable."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
        "protected_namespaces": (),
    }

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Usage / cost telemetry
# ---------------------------------------------------------------------------


class UsageCost(ReportModel):
    """Cost in USD, split the same way as token counts."""

    input: float = 0.0
    output: float = 0.0
    cache_read: float = 0.0
    cache_write: float = 0.0
    total: float = 0.0

    def __add__(self, other: UsageCost) -> UsageCost:
        return UsageCost(
            input=self.input + other.input,
            output=self.output + other.output,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            total=self.total + other.total,
        )


class Usage(ReportModel):
    """Token usage of one or more completions. ``Usage()`` is all zero."""

    input: int = 0
    output: int = 0
    cache_read: int = 0
    cache_write: int = 0
    total_tokens: int = 0
    cost: UsageCost = Field(default_factory=UsageCost)

    def __add__(self, other: Usage) -> Usage:
        return Usage(
            input=self.input + other.input,
            output=self.output + other.output,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            total_tokens=self.total_tokens + other.total_tokens,
            cost=self.cost + other.cost,
        )


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


class ModelDescriptor(ReportModel):
    """Which model answered: provider, model id, and wire API."""

    provider: str
    id: str
    api: str = "openai-completions"

    @property
    def key(self) -> str:
        return f"{self.provider}/{self.id}"


class DatasetDescriptor(ReportModel):
    name: str
    path: str


class Variant(ReportModel):
    """A named, fully resolved system prompt and how it was assembled."""

    name: str
    system_prompt: str
    source: str


# ---------------------------------------------------------------------------
# Case results
# ---------------------------------------------------------------------------


class CheckResult(ReportModel):
    """Outcome of one expectation check."""

    check: str
    passed: bool = Field(alias="pass")
    details: str


class CaseResult(ReportModel):
    """Everything recorded for one case under one variant."""

    id: str
    input: str
    scored: bool
    passed: bool = Field(alias="pass")
    checks: list[CheckResult] = Field(default_factory=list)
    failed_checks: list[str] = Field(default_factory=list)
    output_preview: str = ""
    latency_ms: int = 0
    stop_reason: str = ""
    usage: Usage = Field(default_factory=Usage)
    error: str | None = None


# ---------------------------------------------------------------------------
# Run report
# ---------------------------------------------------------------------------


class RunIdentity(ReportModel):
    """Who/what/when of one run. Hashes prove which inputs were used."""

    run_id: str
    started_at: str
    finished_at: str
    model_key: str
    temperature: float | None = None
    dataset_hash: str
    cases_hash: str
    variant_hash: str


class RunTotals(ReportModel):
    cases: int = 0
    scored_cases: int = 0
    passed_cases: int = 0
    failed_cases: int = 0
    pass_rate: float | None = None  # None when nothing is scored
    total_latency_ms: int = 0
    avg_latency_ms: float = 0.0
    usage: Usage = Field(default_factory=Usage)


class RunReport(ReportModel):
    """The complete record of one variant over one case subset."""

    kind: Literal["evalset-run"] = "evalset-run"
    created_at: str
    run: RunIdentity
    dataset: DatasetDescriptor
    model: ModelDescriptor
    variant: Variant
    totals: RunTotals
    cases: list[CaseResult] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Compare report
# ---------------------------------------------------------------------------


Outcome = Literal["improved", "regressed", "no change"]


class CompareIdentity(ReportModel):
    run_id: str
    started_at: str
    finished_at: str
    model_key: str
    temperature: float | None = None
    dataset_hash: str
    cases_hash: str
    baseline_run_id: str
    candidate_run_id: str
    baseline_variant_hash: str
    candidate_variant_hash: str


class CompareDelta(ReportModel):
    """Candidate minus baseline."""

    pass_rate: float | None = None
    avg_latency_ms: float = 0.0
    total_cost: float = 0.0


class CaseOutcome(ReportModel):
    id: str
    baseline_pass: bool
    candidate_pass: bool | None = None
    outcome: Outcome = "no change"


class CompareReport(ReportModel):
    """Baseline and candidate run reports, embedded by value, plus deltas."""

    kind: Literal["evalset-compare"] = "evalset-compare"
    created_at: str
    run: CompareIdentity
    dataset: DatasetDescriptor
    model: ModelDescriptor
    baseline: RunReport
    candidate: RunReport
    delta: CompareDelta
    outcomes: list[CaseOutcome] = Field(default_factory=list)
