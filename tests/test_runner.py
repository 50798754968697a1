"""Unit tests for the run and compare command orchestration."""

import json

import pytest

from evalset.config import EvalConfig
from evalset.errors import PersistenceError
from evalset.eval.runner import CompareOptions, RunOptions, compare_command, run_command
from evalset.providers import EnvCredentialResolver

from conftest import ScriptedClient

CREDENTIALS = EnvCredentialResolver({"EVALSET_API_KEY": "test-key"})

DOCUMENT = {
    "name": "smoke",
    "systemPrompt": "Be brief.",
    "cases": [{"id": "greet", "input": "say hi", "expectContains": ["hi"]}],
}


@pytest.fixture
def blocker(tmp_path):
    """A regular file, so nothing can be written beneath it."""
    path = tmp_path / "blocker"
    path.write_text("not a directory")
    return path


def test_run_writes_report(tmp_path, dataset_file):
    dataset_file(DOCUMENT)
    client = ScriptedClient({"say hi": "hi"})

    report, path = run_command(
        RunOptions(dataset_path="dataset.json", out="out/r.json"),
        EvalConfig(), client=client, credentials=CREDENTIALS, cwd=tmp_path,
    )

    assert path == (tmp_path / "out" / "r.json").resolve()
    assert json.loads(path.read_text())["run"]["runId"] == report.run.run_id
    assert client.calls[0][2].api_key == "test-key"


def test_run_write_failure_carries_report(tmp_path, dataset_file, blocker):
    dataset_file(DOCUMENT)

    with pytest.raises(PersistenceError) as excinfo:
        run_command(
            RunOptions(dataset_path="dataset.json", out=str(blocker / "r.json")),
            EvalConfig(), client=ScriptedClient({"say hi": "hi"}),
            credentials=CREDENTIALS, cwd=tmp_path,
        )

    report = excinfo.value.report
    assert report is not None
    assert report.kind == "evalset-run"
    assert report.totals.passed_cases == 1


def test_compare_write_failure_carries_report(tmp_path, dataset_file, blocker):
    dataset_file(DOCUMENT)
    (tmp_path / "base.md").write_text("Base.")
    (tmp_path / "cand.md").write_text("Cand.")

    with pytest.raises(PersistenceError) as excinfo:
        compare_command(
            CompareOptions(
                dataset_path="dataset.json",
                baseline_system="base.md",
                candidate_system="cand.md",
                out=str(blocker / "c.json"),
            ),
            EvalConfig(), client=ScriptedClient(), credentials=CREDENTIALS, cwd=tmp_path,
        )

    report = excinfo.value.report
    assert report is not None
    assert report.kind == "evalset-compare"
    assert len(report.outcomes) == 1
