"""Deterministic transport for harness validation — no network.

Echoes the last user message back, with rough token estimates, so a
dataset can be dry-run end to end before spending money on a model.
"""

from __future__ import annotations

from evalset.eval.models import ModelDescriptor, Usage
from evalset.providers.base import (
    CompletionContext,
    CompletionOptions,
    CompletionResponse,
    TextBlock,
)


def _estimate_tokens(text: str) -> int:
    # ~1 token per 4 chars
    return max(1, len(text) // 4)


class EchoCompletionClient:
    """Replies with ``prefix`` + the last user message."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix

    def complete(
        self,
        model: ModelDescriptor,
        context: CompletionContext,
        options: CompletionOptions,
    ) -> CompletionResponse:
        last = context.messages[-1].content if context.messages else ""
        text = f"{self.prefix}{last}"
        tokens_in = _estimate_tokens(context.system_prompt + last)
        tokens_out = _estimate_tokens(text)
        return CompletionResponse(
            content=[TextBlock(text=text)],
            stop_reason="stop",
            usage=Usage(input=tokens_in, output=tokens_out, total_tokens=tokens_in + tokens_out),
        )
