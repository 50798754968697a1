"""Shared fixtures: stub completion clients and small datasets."""

from __future__ import annotations

import json

import pytest

from evalset.dataset.models import CaseDefinition, ContainsCheck, Dataset, RegexCheck
from evalset.eval.executor import VariantExecutor
from evalset.eval.models import DatasetDescriptor, ModelDescriptor, Usage, UsageCost
from evalset.providers.base import CompletionResponse, TextBlock


class ScriptedClient:
    """Replies from a table keyed by (system prompt, user input)."""

    def __init__(self, replies=None, default="", cost=0.0):
        self.replies = replies or {}
        self.default = default
        self.cost = cost
        self.calls = []

    def complete(self, model, context, options):
        user = context.messages[-1].content
        self.calls.append((context.system_prompt, user, options))
        text = self.replies.get((context.system_prompt, user), self.replies.get(user, self.default))
        return CompletionResponse(
            content=[TextBlock(text=text)],
            stop_reason="stop",
            usage=Usage(input=10, output=5, total_tokens=15, cost=UsageCost(total=self.cost)),
        )


class FailingClient(ScriptedClient):
    """Raises for the inputs listed in ``fail_on``."""

    def __init__(self, fail_on, message="backend timeout", **kwargs):
        super().__init__(**kwargs)
        self.fail_on = set(fail_on)
        self.message = message

    def complete(self, model, context, options):
        if context.messages[-1].content in self.fail_on:
            self.calls.append((context.system_prompt, context.messages[-1].content, options))
            raise TimeoutError(self.message)
        return super().complete(model, context, options)


@pytest.fixture
def model():
    return ModelDescriptor(provider="test", id="stub-1")


@pytest.fixture
def descriptor():
    return DatasetDescriptor(name="smoke", path="/tmp/smoke.json")


@pytest.fixture
def three_cases():
    return [
        CaseDefinition(id="a", input="one", checks=(ContainsCheck(term="yes"),)),
        CaseDefinition(id="b", input="two", checks=(ContainsCheck(term="yes"),)),
        CaseDefinition(id="c", input="three", checks=(RegexCheck(pattern=r"^ok$"),)),
    ]


@pytest.fixture
def make_executor(model):
    def _make(client, **kwargs):
        return VariantExecutor(client, model, **kwargs)
    return _make


@pytest.fixture
def dataset_file(tmp_path):
    """Writes a dataset document and returns its path."""
    def _write(document, name="dataset.json"):
        path = tmp_path / name
        text = document if isinstance(document, str) else json.dumps(document, indent=2)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


@pytest.fixture
def sample_dataset():
    return Dataset(
        name="smoke",
        system_prompt="Be brief.",
        cases=(CaseDefinition(id="greet", input="say hi", checks=(ContainsCheck(term="hi"),)),),
    )
