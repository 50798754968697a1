"""Datasets — case definitions, checks, loading and validation."""

from evalset.dataset.loader import (
    InvalidDataset,
    LoadedDataset,
    ValidationIssue,
    ValidDataset,
    load_dataset,
    parse_dataset,
    validate_dataset,
)
from evalset.dataset.models import (
    CaseDefinition,
    Check,
    ContainsCheck,
    Dataset,
    NotContainsCheck,
    RegexCheck,
)

__all__ = [
    "CaseDefinition",
    "Check",
    "ContainsCheck",
    "Dataset",
    "InvalidDataset",
    "LoadedDataset",
    "NotContainsCheck",
    "RegexCheck",
    "ValidDataset",
    "ValidationIssue",
    "load_dataset",
    "parse_dataset",
    "validate_dataset",
]
