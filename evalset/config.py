"""Evalset configuration — model, transport and run settings in one place.

Sources, lowest precedence first:
    1. defaults below
    2. YAML file (``evalset.yaml`` in the working directory, or --config)
    3. ``EVALSET_*`` environment variables
    4. command-line flags
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from evalset import storage
from evalset.errors import ValidationError
from evalset.eval.models import ModelDescriptor
from evalset.providers.openai_compat import Pricing

DEFAULT_CONFIG_FILE = "evalset.yaml"

# EVALSET_<NAME> → config field
ENV_FIELDS = {
    "EVALSET_PROVIDER": "provider",
    "EVALSET_MODEL": "model",
    "EVALSET_API": "api",
    "EVALSET_BASE_URL": "base_url",
    "EVALSET_TIMEOUT": "request_timeout",
    "EVALSET_TEMPERATURE": "temperature",
    "EVALSET_MAX_CASES": "max_cases",
    "EVALSET_CONCURRENCY": "concurrency",
    "EVALSET_REPORTS_DIR": "reports_dir",
}


class EvalConfig(BaseModel):
    """Configuration for run and compare commands.

    Usage:
        config = EvalConfig.load(cwd=Path.cwd(), overrides={"temperature": 0.2})
        model = config.model_descriptor()
    """

    model_config = {"protected_namespaces": (), "extra": "forbid"}

    # Model
    provider: str = Field(
        default="openai",
        description="Provider name; 'mock' selects the offline echo transport",
    )
    model: str = Field(default="gpt-4o-mini", description="Model id sent to the backend")
    api: str = Field(default="openai-completions", description="Wire API label for reports")
    base_url: str | None = Field(
        default=None,
        description="OpenAI-compatible API base URL (Ollama, vLLM, OpenRouter)",
    )
    request_timeout: float = Field(default=60.0, gt=0, description="Per-call timeout (s)")

    # Run
    temperature: float | None = Field(
        default=None, ge=0.0, le=2.0, description="Sampling temperature (0–2)",
    )
    max_cases: int | None = Field(
        default=None, gt=0, description="Evaluate only the first N cases",
    )
    concurrency: int = Field(
        default=1, ge=1, le=32, description="Cases in flight at once (1 = sequential)",
    )

    # Output
    reports_dir: str = Field(
        default=str(storage.DEFAULT_REPORTS_DIR),
        description="Directory for reports when --out is not given",
    )

    # Cost
    pricing: Pricing = Field(default_factory=Pricing, description="USD per 1M tokens")

    def model_descriptor(self) -> ModelDescriptor:
        return ModelDescriptor(provider=self.provider, id=self.model, api=self.api)

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        *,
        cwd: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
    ) -> EvalConfig:
        """Merge file, environment and overrides into a validated config.

        Raises:
            ValidationError: If the file is not YAML or a value is out of range.
            SourceReadError: If an explicitly given file cannot be read.
        """
        data: dict[str, Any] = {}

        if path is not None:
            data.update(_read_yaml(storage.resolve_path(cwd, path)))
        else:
            default = storage.resolve_path(cwd, DEFAULT_CONFIG_FILE)
            if default.exists():
                data.update(_read_yaml(default))

        env = os.environ if environ is None else environ
        for var, field in ENV_FIELDS.items():
            if env.get(var):
                data[field] = env[var]

        data.update({k: v for k, v in (overrides or {}).items() if v is not None})

        try:
            return cls.model_validate(data)
        except PydanticValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise ValidationError(f"Invalid configuration: {problems}") from e


def _read_yaml(path: Path) -> dict[str, Any]:
    text = storage.read_text(path)
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValidationError(f"Invalid YAML in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"{path} must contain a mapping of settings.")
    return data
