"""Unit tests for transports and credential resolution."""

from types import SimpleNamespace

import pytest
from openai import OpenAIError

from evalset.config import EvalConfig
from evalset.errors import BackendError, CredentialError
from evalset.eval.models import ModelDescriptor
from evalset.providers import (
    CompletionContext,
    CompletionOptions,
    EchoCompletionClient,
    EnvCredentialResolver,
    OpenAICompletionClient,
    Pricing,
    UserMessage,
    build_client,
)

MODEL = ModelDescriptor(provider="openai", id="gpt-4o-mini")
CONTEXT = CompletionContext(system_prompt="Be brief.", messages=[UserMessage(content="hello")])


def _fake_factory(response=None, error=None):
    """Stands in for ``openai.OpenAI``; records constructor and create kwargs."""
    created = []

    def create(**kwargs):
        created.append(kwargs)
        if error is not None:
            raise error
        return response

    def factory(**client_kwargs):
        client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=create)),
            kwargs=client_kwargs,
        )
        created.append(client)
        return client

    return factory, created


def _response(content="hi there", finish_reason="stop", usage=None, reasoning=None):
    message = SimpleNamespace(content=content, reasoning_content=reasoning)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=usage,
    )


def test_openai_client_maps_response():
    usage = SimpleNamespace(
        prompt_tokens=100,
        completion_tokens=20,
        total_tokens=120,
        prompt_tokens_details=SimpleNamespace(cached_tokens=40),
    )
    factory, created = _fake_factory(_response(usage=usage, reasoning="thinking..."))
    client = OpenAICompletionClient(
        client_factory=factory, pricing=Pricing(input=1.0, output=2.0, cache_read=0.5),
    )

    response = client.complete(MODEL, CONTEXT, CompletionOptions(api_key="sk", temperature=0.2))

    request = created[1]
    assert request["model"] == "gpt-4o-mini"
    assert request["temperature"] == 0.2
    assert request["messages"] == [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "hello"},
    ]
    assert created[0].kwargs["api_key"] == "sk"
    assert response.text() == "hi there"
    assert response.content[0].type == "thinking"
    assert response.stop_reason == "stop"
    assert response.usage.input == 60
    assert response.usage.cache_read == 40
    assert response.usage.total_tokens == 120
    expected = (60 * 1.0 + 20 * 2.0 + 40 * 0.5) / 1_000_000
    assert response.usage.cost.total == pytest.approx(expected)


def test_openai_client_omits_unset_temperature_and_empty_system():
    factory, created = _fake_factory(_response())
    client = OpenAICompletionClient(client_factory=factory)
    client.complete(MODEL, CompletionContext(messages=[UserMessage(content="x")]), CompletionOptions())

    request = created[1]
    assert "temperature" not in request
    assert request["messages"] == [{"role": "user", "content": "x"}]
    assert created[0].kwargs["api_key"] == "unused"


def test_openai_client_reuses_client_per_key():
    factory, created = _fake_factory(_response())
    client = OpenAICompletionClient(client_factory=factory)
    client.complete(MODEL, CONTEXT, CompletionOptions(api_key="a"))
    client.complete(MODEL, CONTEXT, CompletionOptions(api_key="a"))
    assert sum(1 for c in created if isinstance(c, SimpleNamespace)) == 1


def test_length_finish_reason():
    factory, _ = _fake_factory(_response(finish_reason="length"))
    response = OpenAICompletionClient(client_factory=factory).complete(MODEL, CONTEXT, CompletionOptions())
    assert response.stop_reason == "length"


def test_openai_error_becomes_backend_error():
    factory, _ = _fake_factory(error=OpenAIError("boom"))
    with pytest.raises(BackendError, match="OpenAIError: boom"):
        OpenAICompletionClient(client_factory=factory).complete(MODEL, CONTEXT, CompletionOptions())


def test_malformed_response():
    factory, _ = _fake_factory(SimpleNamespace(choices=[]))
    with pytest.raises(BackendError, match="Malformed"):
        OpenAICompletionClient(client_factory=factory).complete(MODEL, CONTEXT, CompletionOptions())


def test_echo_client():
    response = EchoCompletionClient(prefix="> ").complete(MODEL, CONTEXT, CompletionOptions())
    assert response.text() == "> hello"
    assert response.usage.total_tokens > 0


def test_build_client():
    assert isinstance(build_client(EvalConfig(provider="mock")), EchoCompletionClient)
    client = build_client(EvalConfig(base_url="http://localhost:11434/v1", request_timeout=5))
    assert isinstance(client, OpenAICompletionClient)
    assert client.base_url == "http://localhost:11434/v1"
    assert client.timeout == 5


def test_credentials_lookup_order():
    resolver = EnvCredentialResolver({"OPENAI_API_KEY": "provider-key"})
    assert resolver.get_api_key(MODEL) == "provider-key"

    resolver = EnvCredentialResolver({"OPENAI_API_KEY": "provider-key", "EVALSET_API_KEY": "global"})
    assert resolver.get_api_key(MODEL) == "global"


def test_missing_credential():
    with pytest.raises(CredentialError, match="OPENAI_API_KEY"):
        EnvCredentialResolver({}).get_api_key(MODEL)


def test_no_active_model():
    with pytest.raises(CredentialError, match="No active model"):
        EnvCredentialResolver({}).get_api_key(None)


def test_keyless_providers():
    resolver = EnvCredentialResolver({})
    assert resolver.get_api_key(ModelDescriptor(provider="mock", id="echo")) is None
    assert resolver.get_api_key(ModelDescriptor(provider="ollama", id="llama3")) is None


def test_candidate_vars_normalize_provider():
    names = EnvCredentialResolver.candidate_vars(ModelDescriptor(provider="open-router", id="x"))
    assert names == ["EVALSET_API_KEY", "OPEN_ROUTER_API_KEY"]
