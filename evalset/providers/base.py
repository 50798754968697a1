"""Completion collaborator interfaces.

The executor only talks to a ``CompletionClient``: one single-turn
conversation in, content blocks + stop reason + usage out, or an
exception. Transports live next to this module.
"""

from __future__ import annotations

from typing import Annotated, Literal, Protocol, Union

from pydantic import BaseModel, Field

from evalset.eval.models import ModelDescriptor, Usage


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str


class CompletionContext(BaseModel):
    """System prompt plus the conversation to complete."""

    system_prompt: str = ""
    messages: list[UserMessage] = Field(default_factory=list)


class CompletionOptions(BaseModel):
    api_key: str | None = None
    temperature: float | None = None


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ThinkingBlock(BaseModel):
    type: Literal["thinking"] = "thinking"
    thinking: str


ContentBlock = Annotated[Union[TextBlock, ThinkingBlock], Field(discriminator="type")]


class CompletionResponse(BaseModel):
    """Assistant reply as reported by the backend."""

    content: list[ContentBlock] = Field(default_factory=list)
    stop_reason: str = "stop"
    usage: Usage = Field(default_factory=Usage)

    def text(self) -> str:
        """All text blocks joined by newlines, trimmed."""
        return "\n".join(
            block.text for block in self.content if isinstance(block, TextBlock)
        ).strip()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


class CompletionClient(Protocol):
    """Runs one completion. Raises on any failure."""

    def complete(
        self,
        model: ModelDescriptor,
        context: CompletionContext,
        options: CompletionOptions,
    ) -> CompletionResponse:
        ...


class CredentialResolver(Protocol):
    """Maps a model to its credential. Raises CredentialError when missing."""

    def get_api_key(self, model: ModelDescriptor) -> str | None:
        ...
