"""Variant construction — merging the dataset prompt with an override.

The ``source`` string records how the prompt was assembled, so the
variant hash changes when either the text or its origin changes.
"""

from __future__ import annotations

from pathlib import Path

from evalset.dataset.models import Dataset
from evalset.eval.models import Variant


def merge_system_prompt(base: str | None, override: str | None) -> str:
    """Trim both parts, drop empty ones, join with a blank line."""
    parts = [p.strip() for p in (base, override) if p and p.strip()]
    return "\n\n".join(parts)


def dataset_variant(dataset: Dataset, name: str) -> Variant:
    return Variant(
        name=name,
        system_prompt=dataset.system_prompt or "",
        source="dataset.systemPrompt",
    )


def file_variant(dataset: Dataset, name: str, path: Path, text: str) -> Variant:
    return Variant(
        name=name,
        system_prompt=merge_system_prompt(dataset.system_prompt, text),
        source=f"dataset.systemPrompt + file:{path}",
    )


def text_variant(dataset: Dataset, name: str, text: str) -> Variant:
    return Variant(
        name=name,
        system_prompt=merge_system_prompt(dataset.system_prompt, text),
        source="dataset.systemPrompt + --system-text",
    )
