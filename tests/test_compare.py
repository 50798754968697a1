"""Unit tests for the comparison engine."""

import pytest

from evalset.dataset.models import CaseDefinition, ContainsCheck
from evalset.eval.compare import ComparisonEngine, classify_outcome
from evalset.eval.models import CaseResult, Variant

from conftest import ScriptedClient

BASELINE = Variant(name="baseline", system_prompt="old", source="dataset.systemPrompt + file:a.md")
CANDIDATE = Variant(name="candidate", system_prompt="new", source="dataset.systemPrompt + file:b.md")


def _result(scored=True, passed=True):
    return CaseResult(id="x", input="q", scored=scored, passed=passed)


@pytest.mark.parametrize("baseline, candidate, expected", [
    (_result(passed=False), _result(passed=True), "improved"),
    (_result(passed=True), _result(passed=False), "regressed"),
    (_result(passed=True), _result(passed=True), "no change"),
    (_result(passed=False), _result(passed=False), "no change"),
    (_result(scored=False), _result(scored=False), "no change"),
    (_result(passed=True), None, "no change"),
])
def test_classify_outcome(baseline, candidate, expected):
    assert classify_outcome(baseline, candidate) == expected


def test_compare_improvement(make_executor, descriptor):
    client = ScriptedClient({("old", "greet"): "go away", ("new", "greet"): "hi friend"})
    case = CaseDefinition(id="greet", input="greet", checks=(ContainsCheck(term="hi"),))

    report = ComparisonEngine(make_executor(client)).compare(
        [case], BASELINE, CANDIDATE, dataset=descriptor, dataset_hash="d",
    )

    assert report.kind == "evalset-compare"
    assert report.baseline.totals.pass_rate == 0
    assert report.candidate.totals.pass_rate == 1
    assert report.delta.pass_rate == 1
    assert report.outcomes[0].outcome == "improved"
    assert report.outcomes[0].baseline_pass is False
    assert report.outcomes[0].candidate_pass is True


def test_both_arms_share_hashes(make_executor, descriptor, three_cases):
    report = ComparisonEngine(make_executor(ScriptedClient())).compare(
        three_cases, BASELINE, CANDIDATE, dataset=descriptor, dataset_hash="d",
    )

    assert report.baseline.run.cases_hash == report.candidate.run.cases_hash == report.run.cases_hash
    assert report.baseline.run.dataset_hash == report.candidate.run.dataset_hash == "d"
    assert report.run.baseline_variant_hash != report.run.candidate_variant_hash
    assert report.run.baseline_run_id == report.baseline.run.run_id
    assert report.baseline.run.run_id != report.candidate.run.run_id


def test_baseline_runs_before_candidate(make_executor, descriptor, three_cases):
    client = ScriptedClient()
    ComparisonEngine(make_executor(client)).compare(
        three_cases, BASELINE, CANDIDATE, dataset=descriptor, dataset_hash="d",
    )
    assert [system for system, _, _ in client.calls] == ["old"] * 3 + ["new"] * 3


def test_delta_undefined_when_unscored(make_executor, descriptor):
    cases = [CaseDefinition(input="a")]
    report = ComparisonEngine(make_executor(ScriptedClient(cost=0.25))).compare(
        cases, BASELINE, CANDIDATE, dataset=descriptor, dataset_hash="d",
    )
    assert report.delta.pass_rate is None
    assert report.delta.total_cost == 0
    assert report.to_document()["delta"]["passRate"] is None
