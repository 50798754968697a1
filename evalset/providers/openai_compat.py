"""OpenAI-compatible transport (OpenAI, Ollama, vLLM, OpenRouter, ...).

Talks to any ``/v1/chat/completions`` endpoint through the ``openai``
client library, then maps the reply onto CompletionResponse: content
blocks, a normalized stop reason, and priced token usage.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field

from evalset.errors import BackendError
from evalset.eval.models import ModelDescriptor, Usage, UsageCost
from evalset.providers.base import (
    CompletionContext,
    CompletionOptions,
    CompletionResponse,
    TextBlock,
    ThinkingBlock,
)

logger = logging.getLogger(__name__)

# finish_reason → stop reason recorded in reports
STOP_REASONS = {
    "stop": "stop",
    "length": "length",
    "tool_calls": "toolUse",
    "function_call": "toolUse",
    "content_filter": "error",
}


class Pricing(BaseModel):
    """USD per million tokens."""

    input: float = Field(default=0.0, ge=0.0)
    output: float = Field(default=0.0, ge=0.0)
    cache_read: float = Field(default=0.0, ge=0.0)
    cache_write: float = Field(default=0.0, ge=0.0)

    def price(self, usage: Usage) -> UsageCost:
        cost = UsageCost(
            input=usage.input * self.input / 1_000_000,
            output=usage.output * self.output / 1_000_000,
            cache_read=usage.cache_read * self.cache_read / 1_000_000,
            cache_write=usage.cache_write * self.cache_write / 1_000_000,
        )
        return cost.model_copy(update={
            "total": cost.input + cost.output + cost.cache_read + cost.cache_write,
        })


class OpenAICompletionClient:
    """CompletionClient backed by ``openai.OpenAI``.

    Usage:
        client = OpenAICompletionClient(base_url="http://localhost:11434/v1")
        response = client.complete(model, context, CompletionOptions(api_key="..."))
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float = 60.0,
        max_retries: int = 0,
        pricing: Pricing | None = None,
        client_factory: Callable[..., Any] = OpenAI,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.pricing = pricing or Pricing()
        self._client_factory = client_factory
        self._clients: dict[str | None, Any] = {}

    def complete(
        self,
        model: ModelDescriptor,
        context: CompletionContext,
        options: CompletionOptions,
    ) -> CompletionResponse:
        messages: list[dict[str, str]] = []
        if context.system_prompt:
            messages.append({"role": "system", "content": context.system_prompt})
        messages.extend({"role": m.role, "content": m.content} for m in context.messages)

        kwargs: dict[str, Any] = {"model": model.id, "messages": messages}
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature

        try:
            response = self._client(options.api_key).chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise BackendError(f"{type(e).__name__}: {e}") from e

        return self._to_response(response)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _client(self, api_key: str | None) -> Any:
        if api_key not in self._clients:
            self._clients[api_key] = self._client_factory(
                base_url=self.base_url,
                # Local servers (Ollama, vLLM) accept any key.
                api_key=api_key or "unused",
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._clients[api_key]

    def _to_response(self, response: Any) -> CompletionResponse:
        try:
            choice = response.choices[0]
            message = choice.message
        except (AttributeError, IndexError, TypeError) as e:
            raise BackendError(f"Malformed completion response: {e}") from e

        content: list[TextBlock | ThinkingBlock] = []
        reasoning = getattr(message, "reasoning_content", None)
        if isinstance(reasoning, str) and reasoning:
            content.append(ThinkingBlock(thinking=reasoning))
        if isinstance(message.content, str):
            content.append(TextBlock(text=message.content))

        finish_reason = choice.finish_reason or "stop"
        stop_reason = STOP_REASONS.get(finish_reason, "stop")
        if finish_reason not in STOP_REASONS:
            logger.debug("Unknown finish_reason %r mapped to 'stop'", finish_reason)

        return CompletionResponse(
            content=content,
            stop_reason=stop_reason,
            usage=self._usage(getattr(response, "usage", None)),
        )

    def _usage(self, raw: Any) -> Usage:
        if raw is None:
            return Usage()

        prompt = raw.prompt_tokens or 0
        completion = raw.completion_tokens or 0
        details = getattr(raw, "prompt_tokens_details", None)
        cached = (getattr(details, "cached_tokens", None) or 0) if details else 0

        usage = Usage(
            input=prompt - cached,
            output=completion,
            cache_read=cached,
            total_tokens=raw.total_tokens or prompt + completion,
        )
        return usage.model_copy(update={"cost": self.pricing.price(usage)})
