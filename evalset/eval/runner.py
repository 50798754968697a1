"""Command orchestration for ``run``, ``compare`` and ``init``.

Every fatal check (options, model, credential, dataset, prompt files)
happens before the first completion call. The report is written last;
if that write fails the finished report rides along on the
PersistenceError so the caller can still show it.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

from pydantic import BaseModel, model_validator
from pydantic import ValidationError as PydanticValidationError

from evalset import storage
from evalset.config import EvalConfig
from evalset.dataset.loader import LoadedDataset, load_dataset
from evalset.dataset.models import CaseDefinition, Dataset
from evalset.errors import PersistenceError, ValidationError
from evalset.eval.compare import ComparisonEngine
from evalset.eval.executor import VariantExecutor
from evalset.eval.models import CompareReport, DatasetDescriptor, RunReport
from evalset.eval.variants import dataset_variant, file_variant, text_variant
from evalset.providers.base import CompletionClient, CredentialResolver

DEFAULT_INIT_PATH = "examples/fixed-task-set.json"

SAMPLE_DATASET: dict[str, Any] = {
    "name": "maintainer-clarity-smoke",
    "systemPrompt": "Answer concisely and explicitly.",
    "cases": [
        {
            "id": "fixed-task-set-definition",
            "input": "In one sentence: what does fixed task set mean for evals?",
            "expectContains": ["same tasks"],
        },
        {
            "id": "extension-gaps",
            "input": "List two things an extension may still need for reproducible eval workflows.",
            "expectContains": ["trace", "reproducibility"],
        },
    ],
}


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


class RunOptions(BaseModel):
    dataset_path: str
    system_file: str | None = None
    system_text: str | None = None
    variant_name: str = "candidate"
    out: str | None = None

    @model_validator(mode="after")
    def _one_prompt_source(self) -> RunOptions:
        if self.system_file and self.system_text:
            raise ValueError("Use either --system-file or --system-text, not both.")
        return self


class CompareOptions(BaseModel):
    dataset_path: str
    baseline_system: str
    candidate_system: str
    baseline_name: str = "baseline"
    candidate_name: str = "candidate"
    out: str | None = None


def build_options(cls: type[BaseModel], **values: Any) -> Any:
    """Validate command options, raising evalset's ValidationError."""
    try:
        return cls(**values)
    except PydanticValidationError as e:
        messages = "; ".join(str(err["msg"]).removeprefix("Value error, ") for err in e.errors())
        raise ValidationError(messages) from e


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def select_cases(dataset: Dataset, max_cases: int | None) -> list[CaseDefinition]:
    """The first ``max_cases`` cases, or all of them."""
    if max_cases and max_cases < len(dataset.cases):
        return list(dataset.cases[:max_cases])
    return list(dataset.cases)


def dataset_display_name(dataset: Dataset, dataset_path: str) -> str:
    if dataset.name and dataset.name.strip():
        return dataset.name.strip()
    return storage.sanitize_slug(dataset_path)


def _descriptor(loaded: LoadedDataset, name: str) -> DatasetDescriptor:
    return DatasetDescriptor(name=name, path=str(loaded.absolute_path))


def _persist(path: Path, report: RunReport | CompareReport) -> Path:
    try:
        return storage.write_json(path, report.to_document())
    except PersistenceError as e:
        e.report = report
        raise


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def run_command(
    options: RunOptions,
    config: EvalConfig,
    *,
    client: CompletionClient,
    credentials: CredentialResolver,
    cwd: str | Path | None = None,
    print_fn: Callable[[str], Any] | None = None,
) -> tuple[RunReport, Path]:
    """Evaluate one variant and write its run report."""
    model = config.model_descriptor()
    api_key = credentials.get_api_key(model)

    loaded = load_dataset(options.dataset_path, cwd)
    name = dataset_display_name(loaded.dataset, options.dataset_path)
    cases = select_cases(loaded.dataset, config.max_cases)

    if options.system_file:
        path = storage.resolve_path(cwd, options.system_file)
        variant = file_variant(loaded.dataset, options.variant_name, path, storage.read_text(path))
    elif options.system_text:
        variant = text_variant(loaded.dataset, options.variant_name, options.system_text)
    else:
        variant = dataset_variant(loaded.dataset, options.variant_name)

    executor = VariantExecutor(
        client, model,
        api_key=api_key,
        temperature=config.temperature,
        concurrency=config.concurrency,
        print_fn=print_fn,
    )
    report = executor.run(
        cases, variant,
        dataset=_descriptor(loaded, name),
        dataset_hash=loaded.hash,
    )

    out = (
        storage.resolve_path(cwd, options.out)
        if options.out
        else storage.default_run_report_path(cwd, name, options.variant_name, config.reports_dir)
    )
    return report, _persist(out, report)


def compare_command(
    options: CompareOptions,
    config: EvalConfig,
    *,
    client: CompletionClient,
    credentials: CredentialResolver,
    cwd: str | Path | None = None,
    print_fn: Callable[[str], Any] | None = None,
) -> tuple[CompareReport, Path]:
    """Evaluate baseline then candidate and write the compare report."""
    model = config.model_descriptor()
    api_key = credentials.get_api_key(model)

    loaded = load_dataset(options.dataset_path, cwd)
    name = dataset_display_name(loaded.dataset, options.dataset_path)
    cases = select_cases(loaded.dataset, config.max_cases)

    baseline_path = storage.resolve_path(cwd, options.baseline_system)
    candidate_path = storage.resolve_path(cwd, options.candidate_system)
    baseline = file_variant(
        loaded.dataset, options.baseline_name, baseline_path, storage.read_text(baseline_path),
    )
    candidate = file_variant(
        loaded.dataset, options.candidate_name, candidate_path, storage.read_text(candidate_path),
    )

    executor = VariantExecutor(
        client, model,
        api_key=api_key,
        temperature=config.temperature,
        concurrency=config.concurrency,
        print_fn=print_fn,
    )
    report = ComparisonEngine(executor).compare(
        cases, baseline, candidate,
        dataset=_descriptor(loaded, name),
        dataset_hash=loaded.hash,
    )

    out = (
        storage.resolve_path(cwd, options.out)
        if options.out
        else storage.default_compare_report_path(cwd, name, config.reports_dir)
    )
    return report, _persist(out, report)


def init_command(
    path: str = DEFAULT_INIT_PATH,
    *,
    force: bool = False,
    cwd: str | Path | None = None,
) -> Path:
    """Write the sample dataset template."""
    target = storage.resolve_path(cwd, path)
    text = json.dumps(SAMPLE_DATASET, indent=2, ensure_ascii=False) + "\n"
    return storage.write_new_text(target, text, force=force)
