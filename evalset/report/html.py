"""Standalone HTML rendering of persisted report documents.

Works on the raw JSON document (camelCase keys) rather than the report
models, so reports written by older versions, or edited by hand, still
render. Unknown kinds fall back to a page holding the raw JSON.
"""

from __future__ import annotations

import html
import json
from pathlib import Path
from typing import Any

from evalset.report.summary import format_latency, format_percent

_STYLE = """
    :root {
      --bg: #0b1020;
      --panel: #111a33;
      --line: #24335f;
      --txt: #e8eeff;
      --muted: #9fb0d8;
    }
    * { box-sizing: border-box; }
    body { margin: 0; padding: 24px; font-family: ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto, Ubuntu; background: var(--bg); color: var(--txt); }
    .wrap { max-width: 1240px; margin: 0 auto; }
    .panel { background: var(--panel); border: 1px solid var(--line); border-radius: 12px; padding: 14px; margin-bottom: 14px; }
    .muted { color: var(--muted); font-size: 0.92rem; }
    .grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(180px, 1fr)); gap: 10px; }
    .card { background: #0e1630; border: 1px solid #2a3a66; border-radius: 10px; padding: 10px; }
    .label { color: var(--muted); text-transform: uppercase; letter-spacing: .04em; font-size: .75rem; }
    .val { margin-top: 4px; font-size: 1.06rem; font-weight: 600; }
    table { width: 100%; border-collapse: collapse; font-size: .91rem; }
    th, td { text-align: left; padding: 10px 8px; border-bottom: 1px solid var(--line); vertical-align: top; }
    th { color: var(--muted); }
    .pill { display: inline-block; border-radius: 999px; padding: 2px 10px; font-size: .74rem; font-weight: 700; border: 1px solid transparent; }
    .ok { background: rgba(46, 204, 113, .14); color: #9df7c5; border-color: rgba(46, 204, 113, .45); }
    .bad { background: rgba(255, 107, 107, .14); color: #ffc2c2; border-color: rgba(255, 107, 107, .45); }
    .na { background: rgba(127, 142, 163, .14); color: #d4dcf2; border-color: rgba(127, 142, 163, .45); }
    .same { background: rgba(127, 142, 163, .14); color: #d4dcf2; border-color: rgba(127, 142, 163, .45); }
    .imp { background: rgba(73, 220, 177, .14); color: #abf6df; border-color: rgba(73, 220, 177, .45); }
    .reg { background: rgba(255, 143, 112, .14); color: #ffd0c2; border-color: rgba(255, 143, 112, .45); }
    .meta { color: var(--muted); font-size: .8rem; margin-top: 6px; }
    pre { white-space: pre-wrap; background: #0d152b; border: 1px solid #2a3a66; border-radius: 8px; padding: 8px; max-height: 220px; overflow: auto; }
    details summary { cursor: pointer; color: #9dc2ff; }
    .split { display: grid; grid-template-columns: 1fr 1fr; gap: 10px; }
    @media (max-width: 980px) { .split { grid-template-columns: 1fr; } }
"""

_OUTCOME_PILLS = {
    "improved": '<span class="pill imp">Improved</span>',
    "regressed": '<span class="pill reg">Regressed</span>',
    "no change": '<span class="pill same">No change</span>',
}


# ---------------------------------------------------------------------------
# Fragments
# ---------------------------------------------------------------------------


def esc(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _get(document: Any, *keys: str, default: Any = None) -> Any:
    """Nested lookup that tolerates missing or non-dict levels."""
    current = document
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key)
    return default if current is None else current


def _list(value: Any) -> list:
    return value if isinstance(value, list) else []


def _outcome(baseline: Any, candidate: Any) -> str:
    """Outcome from pass flags, for reports that carry no outcomes list.

    Same rule as ``evalset.eval.compare.classify_outcome``.
    """
    if not isinstance(baseline, dict) or not isinstance(candidate, dict):
        return "no change"
    base_pass = bool(baseline.get("pass"))
    cand_pass = bool(candidate.get("pass"))
    base_failed = baseline.get("scored", True) and not base_pass
    cand_failed = candidate.get("scored", True) and not cand_pass
    if base_failed and cand_pass:
        return "improved"
    if base_pass and cand_failed:
        return "regressed"
    return "no change"


def _money(value: Any) -> str:
    try:
        return f"${float(value or 0):.6f}"
    except (TypeError, ValueError):
        return "$0.000000"


def _latency(value: Any) -> str:
    try:
        return format_latency(float(value or 0))
    except (TypeError, ValueError):
        return format_latency(0)


def _percent(value: Any) -> str:
    return format_percent(value if isinstance(value, (int, float)) else None)


def pass_pill(entry: Any) -> str:
    if not isinstance(entry, dict) or not entry:
        return '<span class="pill na">N/A</span>'
    if not entry.get("scored", True):
        return '<span class="pill na">UNSCORED</span>'
    if entry.get("pass"):
        return '<span class="pill ok">PASS</span>'
    return '<span class="pill bad">FAIL</span>'


def outcome_pill(outcome: str | None) -> str:
    return _OUTCOME_PILLS.get(outcome or "", _OUTCOME_PILLS["no change"])


def _checks_text(entry: dict | None) -> str:
    checks = _get(entry, "checks", default=[])
    if not isinstance(checks, list) or not checks:
        return "None"
    lines = []
    for check in checks:
        marker = "✅" if _get(check, "pass") else "❌"
        lines.append(f"{marker} {_get(check, 'details', default='')}")
    return "\n".join(lines)


def _card(label: str, value: Any) -> str:
    return (
        f'<div class="card"><div class="label">{esc(label)}</div>'
        f'<div class="val">{esc(value)}</div></div>'
    )


def _totals_text(totals: Any) -> str:
    return (
        f"{_percent(_get(totals, 'passRate'))} "
        f"({_get(totals, 'passedCases', default=0)}/{_get(totals, 'scoredCases', default=0)})"
    )


def _subtitle(document: dict) -> str:
    parts = [
        _get(document, "dataset", "path"),
        "model {}/{}".format(
            _get(document, "model", "provider", default="unknown"),
            _get(document, "model", "id", default="unknown"),
        ),
        f"run {_get(document, 'run', 'runId', default='n/a')}",
    ]
    return " · ".join(str(p) for p in parts if p)


def _page(title: str, subtitle: str, cards: list[str], header: str, rows: list[str]) -> str:
    card_html = "\n      ".join(cards)
    row_html = "\n".join(rows)
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <title>{esc(title)}</title>
  <style>{_STYLE}  </style>
</head>
<body>
  <div class="wrap">
    <div class="panel">
      <h1 style="margin:0 0 8px; font-size:1.32rem;">{esc(title)}</h1>
      <div class="muted">{esc(subtitle)}</div>
    </div>

    <div class="panel grid">
      {card_html}
    </div>

    <div class="panel">
      <table>
        <thead>{header}</thead>
        <tbody>{row_html}</tbody>
      </table>
    </div>
  </div>
</body>
</html>
"""


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def render_run(document: dict, title: str | None = None) -> str:
    cards = [
        _card("Pass rate", _totals_text(_get(document, "totals"))),
        _card("Avg latency", _latency(_get(document, "totals", "avgLatencyMs"))),
        _card("Total cost", _money(_get(document, "totals", "usage", "cost", "total"))),
        _card("Dataset", _get(document, "dataset", "name", default="n/a")),
        _card("Variant", _get(document, "variant", "name", default="n/a")),
        _card("Run ID", _get(document, "run", "runId", default="n/a")),
    ]

    rows = []
    for index, entry in enumerate(_list(_get(document, "cases")), start=1):
        rows.append(f"""<tr>
  <td>{index}</td>
  <td><code>{esc(_get(entry, "id", default=f"case-{index}"))}</code></td>
  <td>{pass_pill(entry)}<div class="meta">{_latency(_get(entry, "latencyMs"))}</div></td>
  <td><details><summary>checks + output</summary>
    <h4 style="margin:8px 0 6px;">Checks</h4><pre>{esc(_checks_text(entry))}</pre>
    <h4 style="margin:8px 0 6px;">Output preview</h4><pre>{esc(_get(entry, "outputPreview", default=""))}</pre>
  </details></td>
</tr>""")

    dataset_name = _get(document, "dataset", "name", default="dataset")
    return _page(
        title or f"Evalset run report: {dataset_name}",
        _subtitle(document),
        cards,
        "<tr><th>#</th><th>Case</th><th>Result</th><th>Details</th></tr>",
        rows,
    )


def render_compare(document: dict, title: str | None = None) -> str:
    cards = [
        _card("Baseline pass", _totals_text(_get(document, "baseline", "totals"))),
        _card("Candidate pass", _totals_text(_get(document, "candidate", "totals"))),
        _card("Δ pass rate", _percent(_get(document, "delta", "passRate"))),
        _card("Δ avg latency", _latency(_get(document, "delta", "avgLatencyMs"))),
        _card("Δ total cost", _money(_get(document, "delta", "totalCost"))),
        _card("Dataset hash", str(_get(document, "run", "datasetHash", default="n/a"))[:12]),
    ]

    candidates: dict[str, dict] = {}
    for entry in _list(_get(document, "candidate", "cases")):
        if isinstance(entry, dict):
            candidates.setdefault(str(entry.get("id", "")), entry)
    outcomes: dict[str, Any] = {}
    for entry in _list(_get(document, "outcomes")):
        if isinstance(entry, dict):
            outcomes.setdefault(str(entry.get("id", "")), entry.get("outcome"))

    rows = []
    for index, base in enumerate(_list(_get(document, "baseline", "cases")), start=1):
        case_id = str(_get(base, "id", default=f"case-{index}"))
        cand = candidates.get(case_id)
        rows.append(f"""<tr>
  <td>{index}</td>
  <td><code>{esc(case_id)}</code></td>
  <td>{pass_pill(base)}<div class="meta">{_latency(_get(base, "latencyMs"))}</div></td>
  <td>{pass_pill(cand)}<div class="meta">{_latency(_get(cand, "latencyMs"))}</div></td>
  <td>{outcome_pill(outcomes.get(case_id) or _outcome(base, cand))}</td>
  <td><details><summary>checks + output</summary>
    <div class="split">
      <div>
        <h4 style="margin:8px 0 6px;">Baseline checks</h4><pre>{esc(_checks_text(base))}</pre>
        <h4 style="margin:8px 0 6px;">Baseline output</h4><pre>{esc(_get(base, "outputPreview", default=""))}</pre>
      </div>
      <div>
        <h4 style="margin:8px 0 6px;">Candidate checks</h4><pre>{esc(_checks_text(cand))}</pre>
        <h4 style="margin:8px 0 6px;">Candidate output</h4><pre>{esc(_get(cand, "outputPreview", default=""))}</pre>
      </div>
    </div>
  </details></td>
</tr>""")

    dataset_name = _get(document, "dataset", "name", default="dataset")
    return _page(
        title or f"Evalset compare report: {dataset_name}",
        _subtitle(document),
        cards,
        "<tr><th>#</th><th>Case</th><th>Baseline</th><th>Candidate</th>"
        "<th>Outcome</th><th>Details</th></tr>",
        rows,
    )


def render_unknown(document: Any, title: str | None = None) -> str:
    kind = _get(document, "kind", default="unknown")
    raw = json.dumps(document, indent=2, ensure_ascii=False)
    return _page(
        title or "Evalset report (raw JSON)",
        f"Unsupported report kind: {kind}",
        [_card("Kind", kind)],
        "<tr><th>Report JSON</th></tr>",
        [f"<tr><td><pre>{esc(raw)}</pre></td></tr>"],
    )


def render_report(document: Any, title: str | None = None) -> str:
    """Render a report document as a self-contained HTML page.

    Args:
        document: Parsed report JSON. ``kind`` selects the page layout.
        title: Page heading; defaults to one derived from the dataset name.

    Returns:
        The complete HTML document as a string.
    """
    kind = _get(document, "kind")
    if kind == "evalset-run":
        return render_run(document, title)
    if kind == "evalset-compare":
        return render_compare(document, title)
    return render_unknown(document, title)


def default_html_path(json_path: str | Path) -> Path:
    """``report.json`` becomes ``report.html``; other names get ``.html`` appended."""
    path = Path(json_path)
    if path.suffix.lower() == ".json":
        return path.with_suffix(".html")
    return path.with_name(path.name + ".html")
