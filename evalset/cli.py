"""Evalset CLI — fixed-task-set evaluation from the command line.

Commands:
    evalset run             Evaluate one system prompt variant
    evalset compare         Evaluate baseline vs candidate prompts
    evalset init            Write a sample dataset
    evalset export-html     Render a JSON report as standalone HTML
    evalset intake propose  Turn a first message into a setup command
    evalset intake status   Show intake router state
    evalset intake reset    Reset intake router state
    evalset version         Show the version
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from evalset import __version__
from evalset.errors import EvalsetError, PersistenceError, ValidationError

if TYPE_CHECKING:
    from evalset.eval.models import CompareReport, RunReport

app = typer.Typer(
    name="evalset",
    help="📏 Evalset — fixed-task-set evaluation of system prompts",
    add_completion=False,
)

intake_app = typer.Typer(help="First-message intake routing")
app.add_typer(intake_app, name="intake")

console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Load .env and configure logging before any command runs."""
    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=False)],
        force=True,
    )


def _fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error:[/] {escape(str(error))}")
    raise typer.Exit(1)


def _load_config(
    config_path: Optional[Path],
    *,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    temperature: Optional[float] = None,
    max_cases: Optional[int] = None,
    concurrency: Optional[int] = None,
):
    from evalset.config import EvalConfig

    return EvalConfig.load(
        config_path,
        cwd=Path.cwd(),
        overrides={
            "provider": provider,
            "model": model,
            "base_url": base_url,
            "temperature": temperature,
            "max_cases": max_cases,
            "concurrency": concurrency,
        },
    )


# ---------------------------------------------------------------------------
# Evaluation commands
# ---------------------------------------------------------------------------


@app.command("run")
def run(
    dataset: str = typer.Argument(..., help="Path to the dataset JSON"),
    system_file: Optional[str] = typer.Option(
        None, "--system-file", help="File whose text is appended to the dataset system prompt",
    ),
    system_text: Optional[str] = typer.Option(
        None, "--system-text", help="Text appended to the dataset system prompt",
    ),
    variant: str = typer.Option("candidate", "--variant", help="Variant name for the report"),
    max_cases: Optional[int] = typer.Option(None, "--max-cases", "-n", help="Evaluate only the first N cases"),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature (0–2)"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Report path (default: .evalset/reports/...)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to evalset.yaml"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Provider name ('mock' = offline echo)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="OpenAI-compatible API base URL"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Cases in flight at once"),
) -> None:
    """Evaluate one system prompt variant over a dataset."""
    from evalset.eval.runner import RunOptions, build_options, run_command
    from evalset.providers import EnvCredentialResolver, build_client

    try:
        options = build_options(
            RunOptions,
            dataset_path=dataset,
            system_file=system_file,
            system_text=system_text,
            variant_name=variant,
            out=out,
        )
        config = _load_config(
            config_path,
            provider=provider, model=model, base_url=base_url,
            temperature=temperature, max_cases=max_cases, concurrency=concurrency,
        )
        report, path = run_command(
            options, config,
            client=build_client(config),
            credentials=EnvCredentialResolver(),
            cwd=Path.cwd(),
            print_fn=lambda line: console.print(f"  [dim]{escape(line)}[/]"),
        )
    except PersistenceError as e:
        if e.report is not None:
            _display_run_summary(e.report, None)
        _fail(e)
    except EvalsetError as e:
        _fail(e)

    _display_run_summary(report, path)


@app.command("compare")
def compare(
    dataset: str = typer.Argument(..., help="Path to the dataset JSON"),
    baseline_system: str = typer.Argument(..., help="Baseline system prompt file"),
    candidate_system: str = typer.Argument(..., help="Candidate system prompt file"),
    baseline_name: str = typer.Option("baseline", "--baseline-name", help="Baseline variant name"),
    candidate_name: str = typer.Option("candidate", "--candidate-name", help="Candidate variant name"),
    max_cases: Optional[int] = typer.Option(None, "--max-cases", "-n", help="Evaluate only the first N cases"),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature (0–2)"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Report path (default: .evalset/reports/...)"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to evalset.yaml"),
    provider: Optional[str] = typer.Option(None, "--provider", help="Provider name ('mock' = offline echo)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model id"),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="OpenAI-compatible API base URL"),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", help="Cases in flight at once"),
) -> None:
    """Evaluate baseline and candidate prompts on the same cases."""
    from evalset.eval.runner import CompareOptions, build_options, compare_command
    from evalset.providers import EnvCredentialResolver, build_client

    try:
        options = build_options(
            CompareOptions,
            dataset_path=dataset,
            baseline_system=baseline_system,
            candidate_system=candidate_system,
            baseline_name=baseline_name,
            candidate_name=candidate_name,
            out=out,
        )
        config = _load_config(
            config_path,
            provider=provider, model=model, base_url=base_url,
            temperature=temperature, max_cases=max_cases, concurrency=concurrency,
        )
        report, path = compare_command(
            options, config,
            client=build_client(config),
            credentials=EnvCredentialResolver(),
            cwd=Path.cwd(),
            print_fn=lambda line: console.print(f"  [dim]{escape(line)}[/]"),
        )
    except PersistenceError as e:
        if e.report is not None:
            _display_compare_summary(e.report, None)
        _fail(e)
    except EvalsetError as e:
        _fail(e)

    _display_compare_summary(report, path)


@app.command("init")
def init(
    path: str = typer.Argument(
        "examples/fixed-task-set.json", help="Where to write the sample dataset",
    ),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing file"),
) -> None:
    """Write a sample dataset to start from."""
    from evalset.eval.runner import init_command

    try:
        written = init_command(path, force=force, cwd=Path.cwd())
    except EvalsetError as e:
        _fail(e)

    console.print(f"✅ Wrote sample dataset: [bold]{written}[/]")
    console.print(f"Next: [bold]evalset run {path}[/]")


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


@app.command("export-html")
def export_html(
    report_path: str = typer.Argument(..., help="Run or compare report JSON"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output path (default: .json → .html)"),
    title: Optional[str] = typer.Option(None, "--title", help="Custom page title"),
) -> None:
    """Render a JSON report as a standalone HTML page."""
    from evalset import storage
    from evalset.report.html import default_html_path, render_report

    try:
        source = storage.resolve_path(Path.cwd(), report_path)
        raw = storage.read_text(source)
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid report JSON in {source}: {e}") from e
        if not isinstance(document, dict):
            raise ValidationError("Report JSON must be an object.")

        target = storage.resolve_path(Path.cwd(), out) if out else default_html_path(source)
        storage.write_new_text(target, render_report(document, title), force=True)
    except EvalsetError as e:
        _fail(e)

    console.print(f"📄 Exported HTML report: [bold]{target}[/]")


# ---------------------------------------------------------------------------
# Intake commands
# ---------------------------------------------------------------------------

_LOG_OPTION_HELP = "Intake event log (JSONL)"


@intake_app.command("propose")
def intake_propose(
    text: str = typer.Argument(..., help="First message of the session"),
    log_path: Path = typer.Option(Path(".evalset/intake.jsonl"), "--log", help=_LOG_OPTION_HELP),
) -> None:
    """Start a session and propose a setup command for TEXT."""
    from evalset.intake import IntakeEventLog, IntakeRouter

    try:
        router = IntakeRouter.restore(IntakeEventLog(log_path))
        command = router.handle_input(text)
    except EvalsetError as e:
        _fail(e)

    if command is None:
        console.print("[yellow]Ignored:[/] input is empty or a /command.")
        return
    console.print(Panel(command, title="Proposed command", border_style="cyan"))


@intake_app.command("status")
def intake_status(
    log_path: Path = typer.Option(Path(".evalset/intake.jsonl"), "--log", help=_LOG_OPTION_HELP),
) -> None:
    """Show the last recorded intake state."""
    from evalset.intake import IntakeEventLog, IntakeRouter

    try:
        summary = IntakeRouter.load(IntakeEventLog(log_path)).status()
    except EvalsetError as e:
        _fail(e)

    table = Table(title="Intake Router")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, val in summary.items():
        table.add_row(key, val)
    console.print(table)


@intake_app.command("reset")
def intake_reset(
    log_path: Path = typer.Option(Path(".evalset/intake.jsonl"), "--log", help=_LOG_OPTION_HELP),
) -> None:
    """Reset intake state; the next message will propose a command again."""
    from evalset.intake import IntakeEventLog, IntakeRouter

    try:
        IntakeRouter.load(IntakeEventLog(log_path)).reset()
    except EvalsetError as e:
        _fail(e)

    console.print("🔄 Intake router reset.")


@app.command("version")
def version() -> None:
    """Show the Evalset version."""
    console.print(f"Evalset v{__version__}")


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def _display_run_summary(report: RunReport, path: Optional[Path]) -> None:
    """Display a rich summary of a run report."""
    from evalset.report.summary import (
        failed_case_ids,
        format_currency,
        format_latency,
        format_pass_rate,
    )

    t = report.totals
    panel_text = (
        f"[bold]Dataset:[/] {escape(report.dataset.name)}\n"
        f"[bold]Model:[/] {escape(report.model.key)} | [bold]Variant:[/] {escape(report.variant.name)}\n"
        f"[bold]Pass rate:[/] {format_pass_rate(report)}\n"
        f"[bold]Avg latency:[/] {format_latency(t.avg_latency_ms)} | "
        f"[bold]Tokens:[/] {t.usage.total_tokens} | "
        f"[bold]Cost:[/] {format_currency(t.usage.cost.total)}\n"
        f"[bold]Saved to:[/] {path if path else '[red]not saved[/]'}"
    )
    console.print(Panel(panel_text, title="📏 Evalset Run", border_style="green"))

    failed = failed_case_ids(report)
    if failed:
        table = Table(title="Failed Cases")
        table.add_column("Case", style="bold")
        table.add_column("Failed checks")
        by_id = {c.id: c for c in report.cases}
        for case_id in failed:
            table.add_row(escape(case_id), escape("\n".join(by_id[case_id].failed_checks)))
        console.print(table)


def _display_compare_summary(report: CompareReport, path: Optional[Path]) -> None:
    """Display a rich summary of a compare report."""
    from evalset.report.summary import (
        format_currency,
        format_latency,
        format_pass_rate,
        format_percent,
    )

    panel_text = (
        f"[bold]Dataset:[/] {escape(report.dataset.name)} | [bold]Model:[/] {escape(report.model.key)}\n"
        f"[bold]{escape(report.baseline.variant.name)}:[/] {format_pass_rate(report.baseline)}\n"
        f"[bold]{escape(report.candidate.variant.name)}:[/] {format_pass_rate(report.candidate)}\n"
        f"[bold]Δ pass rate:[/] {format_percent(report.delta.pass_rate)} | "
        f"[bold]Δ latency:[/] {format_latency(report.delta.avg_latency_ms)} | "
        f"[bold]Δ cost:[/] {format_currency(report.delta.total_cost)}\n"
        f"[bold]Saved to:[/] {path if path else '[red]not saved[/]'}"
    )
    console.print(Panel(panel_text, title="📏 Evalset Compare", border_style="green"))

    changed = [o for o in report.outcomes if o.outcome != "no change"]
    if changed:
        table = Table(title="Changed Cases")
        table.add_column("Case", style="bold")
        table.add_column("Outcome")
        for o in changed:
            style = "green" if o.outcome == "improved" else "red"
            table.add_row(escape(o.id), f"[{style}]{o.outcome}[/]")
        console.print(table)


if __name__ == "__main__":
    app()
