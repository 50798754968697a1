"""Credential resolution from the environment."""

from __future__ import annotations

import os
import re
from typing import Mapping

from evalset.errors import CredentialError
from evalset.eval.models import ModelDescriptor

# Providers that never need a key.
KEYLESS_PROVIDERS = frozenset({"mock", "ollama", "vllm", "local"})


class EnvCredentialResolver:
    """Looks up ``EVALSET_API_KEY``, then ``<PROVIDER>_API_KEY``.

    Usage:
        key = EnvCredentialResolver().get_api_key(model)
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ

    def get_api_key(self, model: ModelDescriptor | None) -> str | None:
        if model is None:
            raise CredentialError("No active model. Select one with --model or evalset.yaml.")

        for name in self.candidate_vars(model):
            value = self.environ.get(name, "").strip()
            if value:
                return value

        if model.provider.lower() in KEYLESS_PROVIDERS:
            return None

        names = " or ".join(self.candidate_vars(model))
        raise CredentialError(f"No credential for {model.key}. Set {names}.")

    @staticmethod
    def candidate_vars(model: ModelDescriptor) -> list[str]:
        provider = re.sub(r"[^A-Z0-9]+", "_", model.provider.upper()).strip("_")
        return ["EVALSET_API_KEY", f"{provider}_API_KEY"]
