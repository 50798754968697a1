"""Dataset loader — parses raw dataset text into a validated Dataset.

Validation is a separate, total step: ``validate_dataset`` never raises
and returns either the dataset or every issue it found. ``parse_dataset``
and ``load_dataset`` turn an invalid result into a ValidationError so
that nothing reaches the model backend with a malformed dataset.

Regular expressions are only type-checked here. Their syntax is checked
when the case is evaluated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel, Field, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from evalset import storage
from evalset.dataset.models import (
    CaseDefinition,
    Check,
    ContainsCheck,
    Dataset,
    NotContainsCheck,
    RegexCheck,
)
from evalset.errors import ValidationError
from evalset.hashing import hash_text


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ValidationIssue:
    """One problem found in a dataset document."""

    location: str
    message: str

    def __str__(self) -> str:
        if not self.location:
            return self.message
        return f"{self.location}: {self.message}"


@dataclass(frozen=True)
class ValidDataset:
    dataset: Dataset
    ok: bool = True


@dataclass(frozen=True)
class InvalidDataset:
    issues: tuple[ValidationIssue, ...]
    ok: bool = False


DatasetValidation = Union[ValidDataset, InvalidDataset]


@dataclass(frozen=True)
class LoadedDataset:
    """A dataset together with its byte-level provenance."""

    absolute_path: Path
    raw: str
    hash: str
    dataset: Dataset


# ---------------------------------------------------------------------------
# Document schema (the on-disk shape)
# ---------------------------------------------------------------------------


class _CaseDocument(BaseModel):
    model_config = {"extra": "ignore"}

    id: StrictStr | None = None
    input: StrictStr
    expect_contains: list[StrictStr] | None = Field(default=None, alias="expectContains")
    expect_not_contains: list[StrictStr] | None = Field(default=None, alias="expectNotContains")
    expect_regex: StrictStr | None = Field(default=None, alias="expectRegex")

    @field_validator("id", "expect_regex", mode="before")
    @classmethod
    def _string_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must be a string")
        return value

    @field_validator("expect_contains", "expect_not_contains", mode="before")
    @classmethod
    def _array_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must be an array")
        return value

    @field_validator("input")
    @classmethod
    def _input_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must be a non-empty string")
        return value

    def to_case(self) -> CaseDefinition:
        checks: list[Check] = []
        checks.extend(ContainsCheck(term=t) for t in self.expect_contains or [])
        checks.extend(NotContainsCheck(term=t) for t in self.expect_not_contains or [])
        # An empty pattern declares no check.
        if self.expect_regex:
            checks.append(RegexCheck(pattern=self.expect_regex))
        return CaseDefinition(id=self.id, input=self.input, checks=tuple(checks))


class _DatasetDocument(BaseModel):
    model_config = {"extra": "ignore"}

    name: StrictStr | None = None
    system_prompt: StrictStr | None = Field(default=None, alias="systemPrompt")
    cases: list[_CaseDocument]

    @field_validator("name", "system_prompt", mode="before")
    @classmethod
    def _string_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("must be a string")
        return value

    def to_dataset(self) -> Dataset:
        return Dataset(
            name=self.name,
            system_prompt=self.system_prompt,
            cases=tuple(c.to_case() for c in self.cases),
        )


def _format_location(loc: tuple[Any, ...]) -> str:
    """('cases', 2, 'expectContains', 0) -> 'cases[2].expectContains[0]'."""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out


_TYPE_MESSAGES = {
    "model_type": "must be an object",
    "dict_type": "must be an object",
    "string_type": "must be a string",
    "list_type": "must be an array",
    "missing": "is required",
}


def _issues_from(error: PydanticValidationError) -> list[ValidationIssue]:
    issues = []
    for err in error.errors():
        message = _TYPE_MESSAGES.get(err["type"])
        if message is None:
            message = str(err["msg"]).removeprefix("Value error, ")
        issues.append(ValidationIssue(_format_location(err["loc"]), message))
    return issues


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_dataset(data: Any) -> DatasetValidation:
    """Validate a decoded dataset document. Never raises."""
    if not isinstance(data, dict):
        return InvalidDataset((ValidationIssue("", "Dataset must be an object."),))

    cases = data.get("cases")
    if not isinstance(cases, list) or not cases:
        return InvalidDataset((
            ValidationIssue("cases", "Dataset must include a non-empty 'cases' array."),
        ))

    try:
        document = _DatasetDocument.model_validate(data)
    except PydanticValidationError as e:
        return InvalidDataset(tuple(_issues_from(e)))

    return ValidDataset(document.to_dataset())


def parse_dataset(raw: str) -> Dataset:
    """Parse and validate dataset JSON text.

    Raises:
        ValidationError: If the text is not JSON or the document is invalid.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON dataset: {e}") from e

    result = validate_dataset(data)
    if isinstance(result, InvalidDataset):
        details = "; ".join(str(issue) for issue in result.issues)
        raise ValidationError(f"Invalid dataset: {details}", issues=result.issues)
    return result.dataset


def load_dataset(path: str | Path, cwd: str | Path | None = None) -> LoadedDataset:
    """Read, fingerprint and validate a dataset file.

    The hash covers the raw text, so whitespace-only edits change it.
    """
    absolute = storage.resolve_path(cwd, path)
    raw = storage.read_text(absolute)
    return LoadedDataset(
        absolute_path=absolute,
        raw=raw,
        hash=hash_text(raw),
        dataset=parse_dataset(raw),
    )
