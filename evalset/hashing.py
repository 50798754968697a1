"""Content hashing — canonical form and stable digests for provenance.

Mapping keys are sorted, sequence order is kept. Two values hash equal
iff their canonical forms are equal, so reordering the keys of a case
leaves its hash alone while reordering the cases does not.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel


def canonicalize(value: Any) -> Any:
    """Return the canonical form of a JSON-like value."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", by_alias=True, exclude_none=True)

    if isinstance(value, dict):
        return {key: canonicalize(value[key]) for key in sorted(value)}

    if isinstance(value, (list, tuple)):
        return [canonicalize(entry) for entry in value]

    return value


def hash_text(text: str) -> str:
    """SHA-256 hex digest of the UTF-8 bytes of a string."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def content_hash(value: Any) -> str:
    """SHA-256 hex digest of the compact JSON of ``canonicalize(value)``."""
    serialized = json.dumps(
        canonicalize(value), separators=(",", ":"), ensure_ascii=False,
    )
    return hash_text(serialized)


def short_hash(digest: str, length: int = 12) -> str:
    return digest[:length]
