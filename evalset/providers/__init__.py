"""Completion transports and credential resolution."""

from __future__ import annotations

from typing import TYPE_CHECKING

from evalset.providers.base import (
    CompletionClient,
    CompletionContext,
    CompletionOptions,
    CompletionResponse,
    CredentialResolver,
    TextBlock,
    ThinkingBlock,
    UserMessage,
)
from evalset.providers.credentials import EnvCredentialResolver
from evalset.providers.mock import EchoCompletionClient
from evalset.providers.openai_compat import OpenAICompletionClient, Pricing

if TYPE_CHECKING:
    from evalset.config import EvalConfig


def build_client(config: EvalConfig) -> CompletionClient:
    """Pick the transport for ``config.provider``."""
    if config.provider.lower() == "mock":
        return EchoCompletionClient()
    return OpenAICompletionClient(
        base_url=config.base_url,
        timeout=config.request_timeout,
        pricing=config.pricing,
    )


__all__ = [
    "CompletionClient",
    "CompletionContext",
    "CompletionOptions",
    "CompletionResponse",
    "CredentialResolver",
    "EchoCompletionClient",
    "EnvCredentialResolver",
    "OpenAICompletionClient",
    "Pricing",
    "TextBlock",
    "ThinkingBlock",
    "UserMessage",
    "build_client",
]
