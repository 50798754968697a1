"""Unit tests for configuration loading and precedence."""

import pytest

from evalset.config import EvalConfig
from evalset.errors import SourceReadError, ValidationError


def test_defaults(tmp_path):
    config = EvalConfig.load(cwd=tmp_path, environ={})
    assert config.provider == "openai"
    assert config.concurrency == 1
    assert config.temperature is None
    assert config.model_descriptor().key == "openai/gpt-4o-mini"


def test_file_then_env_then_overrides(tmp_path):
    (tmp_path / "evalset.yaml").write_text(
        "provider: ollama\nmodel: llama3\ntemperature: 0.1\nmax_cases: 5\n"
        "pricing:\n  input: 0.5\n  output: 1.5\n",
    )

    config = EvalConfig.load(
        cwd=tmp_path,
        environ={"EVALSET_MODEL": "qwen2", "EVALSET_TEMPERATURE": "0.4"},
        overrides={"temperature": 0.9, "max_cases": None},
    )

    assert config.provider == "ollama"  # file
    assert config.model == "qwen2"  # env beats file
    assert config.temperature == 0.9  # flag beats env
    assert config.max_cases == 5  # None override is ignored
    assert config.pricing.output == 1.5


def test_explicit_config_path(tmp_path):
    path = tmp_path / "custom.yaml"
    path.write_text("concurrency: 4\n")
    assert EvalConfig.load(path, cwd=tmp_path, environ={}).concurrency == 4


def test_missing_explicit_config(tmp_path):
    with pytest.raises(SourceReadError):
        EvalConfig.load("missing.yaml", cwd=tmp_path, environ={})


def test_out_of_range_temperature(tmp_path):
    with pytest.raises(ValidationError, match="temperature"):
        EvalConfig.load(cwd=tmp_path, environ={}, overrides={"temperature": 3.0})


def test_unknown_key_is_rejected(tmp_path):
    (tmp_path / "evalset.yaml").write_text("modle: typo\n")
    with pytest.raises(ValidationError, match="modle"):
        EvalConfig.load(cwd=tmp_path, environ={})


def test_non_mapping_yaml(tmp_path):
    (tmp_path / "evalset.yaml").write_text("- a\n- b\n")
    with pytest.raises(ValidationError, match="mapping"):
        EvalConfig.load(cwd=tmp_path, environ={})
