"""Unit tests for the HTML report export."""

from pathlib import Path

from evalset.dataset.models import CaseDefinition, ContainsCheck
from evalset.eval.compare import ComparisonEngine
from evalset.eval.models import Variant
from evalset.report.html import default_html_path, render_report

from conftest import ScriptedClient


def _run_document(make_executor, descriptor, reply):
    case = CaseDefinition(id="xss", input="q", checks=(ContainsCheck(term="<b>"),))
    variant = Variant(name="candidate", system_prompt="", source="dataset.systemPrompt")
    report = make_executor(ScriptedClient(default=reply)).run(
        [case], variant, dataset=descriptor, dataset_hash="h",
    )
    return report.to_document()


def test_run_page_escapes_values(make_executor, descriptor):
    page = render_report(_run_document(make_executor, descriptor, "<script>alert(1)</script> <b>"))

    assert page.startswith("<!doctype html>")
    assert "<script>alert(1)</script>" not in page
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in page
    assert "Evalset run report: smoke" in page
    assert '<span class="pill ok">PASS</span>' in page
    assert "100.0% (1/1)" in page


def test_custom_title_is_escaped(make_executor, descriptor):
    page = render_report(_run_document(make_executor, descriptor, "no"), title='A & "B"')
    assert "<title>A &amp; &quot;B&quot;</title>" in page
    assert '<span class="pill bad">FAIL</span>' in page


def test_compare_page_shows_outcome_pills(make_executor, descriptor):
    client = ScriptedClient({("old", "up"): "nope", ("new", "up"): "yes", ("old", "down"): "yes", ("new", "down"): "nope"})
    cases = [
        CaseDefinition(id="up", input="up", checks=(ContainsCheck(term="yes"),)),
        CaseDefinition(id="down", input="down", checks=(ContainsCheck(term="yes"),)),
    ]
    report = ComparisonEngine(make_executor(client)).compare(
        cases,
        Variant(name="baseline", system_prompt="old", source="a"),
        Variant(name="candidate", system_prompt="new", source="b"),
        dataset=descriptor,
        dataset_hash="0123456789abcdef",
    )

    page = render_report(report.to_document())

    assert "Evalset compare report: smoke" in page
    assert '<span class="pill imp">Improved</span>' in page
    assert '<span class="pill reg">Regressed</span>' in page
    assert "0123456789ab" in page
    assert "0123456789abcdef" not in page


def test_unknown_kind_renders_raw_json():
    page = render_report({"kind": "other", "value": "<x>"})
    assert "Unsupported report kind: other" in page
    assert "&lt;x&gt;" in page


def test_partial_documents_do_not_fail():
    page = render_report({"kind": "evalset-compare", "baseline": {"cases": [{"id": "a", "pass": True}]}})
    assert '<span class="pill na">N/A</span>' in page
    assert "n/a (0/0)" in page


def test_default_html_path():
    assert default_html_path("out/report.json") == Path("out/report.html")
    assert default_html_path("out/REPORT.JSON") == Path("out/REPORT.html")
    assert default_html_path("out/report.txt") == Path("out/report.txt.html")


def test_compare_without_outcomes_derives_them_from_pass_flags():
    document = {
        "kind": "evalset-compare",
        "baseline": {"cases": [
            {"id": "c1", "scored": True, "pass": False},
            {"id": "c2", "scored": True, "pass": True},
            {"id": "c3", "scored": False, "pass": True},
        ]},
        "candidate": {"cases": [
            {"id": "c1", "scored": True, "pass": True},
            {"id": "c2", "scored": True, "pass": False},
            {"id": "c3", "scored": False, "pass": True},
        ]},
    }

    page = render_report(document)

    assert page.count('<span class="pill imp">Improved</span>') == 1
    assert page.count('<span class="pill reg">Regressed</span>') == 1
    assert page.count('<span class="pill same">No change</span>') == 1


def test_compare_tolerates_scalar_case_lists():
    page = render_report({
        "kind": "evalset-compare",
        "candidate": {"cases": 5},
        "outcomes": "broken",
        "baseline": {"cases": [{"id": "a", "pass": True}, "junk"]},
    })
    assert "<code>a</code>" in page
    assert "<code>case-2</code>" in page


def test_compare_duplicate_ids_use_first_entry():
    document = {
        "kind": "evalset-compare",
        "baseline": {"cases": [{"id": "dup", "pass": False}]},
        "candidate": {"cases": [{"id": "dup", "pass": True}, {"id": "dup", "pass": False}]},
        "outcomes": [
            {"id": "dup", "outcome": "improved"},
            {"id": "dup", "outcome": "regressed"},
        ],
    }
    page = render_report(document)
    assert '<span class="pill imp">Improved</span>' in page
    assert '<span class="pill reg">Regressed</span>' not in page
