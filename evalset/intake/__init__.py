"""Startup intake — first-message routing backed by an event log."""

from evalset.intake.router import (
    IntakeEventLog,
    IntakeRouter,
    IntakeState,
    Phase,
    format_command,
    normalize_inline,
)

__all__ = [
    "IntakeEventLog",
    "IntakeRouter",
    "IntakeState",
    "Phase",
    "format_command",
    "normalize_inline",
]
