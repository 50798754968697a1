"""Error taxonomy shared by every layer.

Fatal errors (validation, credentials, unreadable sources, persistence)
abort an invocation with one message. Backend and pattern errors are
recovered where they happen and downgraded to failed results.
"""

from __future__ import annotations


class EvalsetError(Exception):
    """Base class for all evalset errors."""


class ValidationError(EvalsetError):
    """Malformed dataset, case shape, or option value."""

    def __init__(self, message: str, issues: list | None = None) -> None:
        super().__init__(message)
        self.issues = list(issues or [])


class CredentialError(EvalsetError):
    """No active model or no credential for it."""


class SourceReadError(EvalsetError):
    """A dataset or system prompt file could not be read."""


class BackendError(EvalsetError):
    """A completion call failed (timeout, auth, malformed response, ...)."""


class PatternError(EvalsetError):
    """An expectation pattern is not a valid regular expression."""


class PersistenceError(EvalsetError):
    """A report could not be written.

    ``report`` carries the finished, unsaved report when evaluation had
    already completed.
    """

    report = None
