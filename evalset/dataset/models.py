"""Dataset data models — cases and their expectation checks.

A check is a tagged variant: the ``kind`` field selects the payload.
New kinds are new members of the ``Check`` union, the case itself
never grows another optional field.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


class ContainsCheck(BaseModel):
    """Output must contain ``term`` (case-insensitive)."""

    model_config = {"frozen": True}

    kind: Literal["expectContains"] = "expectContains"
    term: str


class NotContainsCheck(BaseModel):
    """Output must not contain ``term`` (case-insensitive)."""

    model_config = {"frozen": True}

    kind: Literal["expectNotContains"] = "expectNotContains"
    term: str


class RegexCheck(BaseModel):
    """Output must match ``pattern`` with multi-line semantics."""

    model_config = {"frozen": True}

    kind: Literal["expectRegex"] = "expectRegex"
    pattern: str


Check = Annotated[
    Union[ContainsCheck, NotContainsCheck, RegexCheck],
    Field(discriminator="kind"),
]


# ---------------------------------------------------------------------------
# Cases and datasets
# ---------------------------------------------------------------------------


class CaseDefinition(BaseModel):
    """One (input, expectations) pair."""

    model_config = {"frozen": True}

    id: str | None = None
    input: str
    checks: tuple[Check, ...] = ()

    def display_id(self, index: int) -> str:
        """Explicit id when non-blank, else ``case-<index + 1>``."""
        if self.id and self.id.strip():
            return self.id.strip()
        return f"case-{index + 1}"


class Dataset(BaseModel):
    """A validated, immutable dataset."""

    model_config = {"frozen": True}

    name: str | None = None
    system_prompt: str | None = None
    cases: tuple[CaseDefinition, ...] = Field(min_length=1)
