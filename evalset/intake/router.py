"""Startup-intake router — turns a first free-text message into a command.

State lives in an append-only JSONL event log; every transition appends
one ``{"type": "intake-state", "data": {...}}`` line. Restoring replays
the log and keeps the last matching entry, so the router carries no
process-wide state of its own.

Phases:
    idle -> intent_captured -> command_proposed
"""

from __future__ import annotations

import json
import logging
import re
import time
from enum import Enum
from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from evalset.errors import PersistenceError, SourceReadError

logger = logging.getLogger(__name__)

WORKFLOW_VERSION = "startup-intake-v1"
STATE_ENTRY = "intake-state"
INTENT_MAX_CHARS = 1200
PROPOSED_COMMAND = "init-project-docs"
DEFAULT_LOG_PATH = Path(".evalset") / "intake.jsonl"


class Phase(str, Enum):
    IDLE = "idle"
    INTENT_CAPTURED = "intent_captured"
    COMMAND_PROPOSED = "command_proposed"


def _now_ms() -> int:
    return int(time.time() * 1000)


class IntakeState(BaseModel):
    """One snapshot of the router, as persisted in the event log."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
    }

    workflow_version: str = WORKFLOW_VERSION
    phase: Phase = Phase.IDLE
    first_message_processed: bool = False
    intent: str | None = None
    command: str | None = None
    updated_at: int = 0

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


def normalize_inline(value: str, max_chars: int = INTENT_MAX_CHARS) -> str:
    """Collapse whitespace runs and clip to ``max_chars`` with an ellipsis."""
    compact = re.sub(r"\s+", " ", value).strip()
    if len(compact) <= max_chars:
        return compact
    return compact[: max_chars - 1] + "…"


def format_command(name: str, *args: str) -> str:
    """``/name "arg" ...`` with each argument JSON-quoted."""
    quoted = " ".join(json.dumps(arg, ensure_ascii=False) for arg in args)
    return f"/{name} {quoted}"


# ---------------------------------------------------------------------------
# Event log
# ---------------------------------------------------------------------------


class IntakeEventLog:
    """Append-only JSONL file of router state entries.

    Usage:
        log = IntakeEventLog(".evalset/intake.jsonl")
        log.append(state)
        last = log.last_state()
    """

    def __init__(self, path: str | Path = DEFAULT_LOG_PATH) -> None:
        self.path = Path(path)

    def append(self, state: IntakeState) -> None:
        line = json.dumps({"type": STATE_ENTRY, "data": state.to_document()}, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise PersistenceError(f"Cannot append to intake log {self.path}: {e}") from e

    def entries(self) -> Iterator[dict[str, Any]]:
        """Yield every well-formed JSON object in the log, oldest first."""
        if not self.path.exists():
            return
        try:
            lines = self.path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            raise SourceReadError(f"Cannot read intake log {self.path}: {e}") from e

        for lineno, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("Skipping malformed intake log line %d in %s", lineno, self.path)
                continue
            if isinstance(entry, dict):
                yield entry

    def last_state(self) -> IntakeState | None:
        """The most recent valid state entry, or None."""
        restored = None
        for entry in self.entries():
            if entry.get("type") != STATE_ENTRY or not isinstance(entry.get("data"), dict):
                continue
            try:
                restored = IntakeState.model_validate(entry["data"])
            except PydanticValidationError:
                logger.warning("Skipping invalid intake state entry in %s", self.path)
        return restored


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class IntakeRouter:
    """State machine that proposes one setup command per session.

    Usage:
        router = IntakeRouter.restore(IntakeEventLog(path))
        command = router.handle_input("build a todo app")
        # '/init-project-docs "build a todo app"'
    """

    def __init__(self, log: IntakeEventLog, state: IntakeState | None = None) -> None:
        self.log = log
        self.state = state or IntakeState(updated_at=_now_ms())

    @classmethod
    def load(cls, log: IntakeEventLog) -> IntakeRouter:
        """Rehydrate from the last logged state without starting a session."""
        restored = log.last_state()
        state = (
            restored.model_copy(update={"workflow_version": WORKFLOW_VERSION})
            if restored
            else IntakeState(updated_at=_now_ms())
        )
        return cls(log, state)

    @classmethod
    def restore(cls, log: IntakeEventLog) -> IntakeRouter:
        """Rehydrate, then start a fresh session and persist it."""
        router = cls.load(log)
        router._transition(
            phase=Phase.IDLE,
            first_message_processed=False,
            intent=None,
            command=None,
        )
        return router

    def _transition(self, **changes: Any) -> None:
        changes.update(workflow_version=WORKFLOW_VERSION, updated_at=_now_ms())
        self.state = self.state.model_copy(update=changes)
        self.log.append(self.state)
        logger.debug("Intake phase -> %s", self.state.phase.value)

    def handle_input(self, text: str) -> str | None:
        """Capture the first free-text message and propose a command.

        Returns:
            The proposed command, or None when the input is ignored: the
            first message was already processed, the text is blank, or it
            is itself a ``/command``.
        """
        if self.state.first_message_processed:
            return None
        text = text.strip()
        if not text or text.startswith("/"):
            return None

        self._transition(first_message_processed=True, phase=Phase.INTENT_CAPTURED)

        intent = normalize_inline(text)
        command = format_command(PROPOSED_COMMAND, intent)
        self._transition(intent=intent, command=command, phase=Phase.COMMAND_PROPOSED)

        logger.info("Proposed %s", PROPOSED_COMMAND)
        return command

    def reset(self) -> IntakeState:
        self.state = IntakeState(updated_at=_now_ms())
        self.log.append(self.state)
        return self.state

    def status(self) -> dict[str, str]:
        updated = time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.state.updated_at / 1000))
        return {
            "phase": self.state.phase.value,
            "first_message_processed": "yes" if self.state.first_message_processed else "no",
            "intent": self.state.intent or "<none>",
            "command": self.state.command or "<none>",
            "updated_at": updated,
        }
