"""Tournament status definitions and errors.

Statuses are intentionally minimal:

- WAITING : the window has not opened yet
- ACTIVE  : the window is open, scores are accepted and rankings refresh
- ENDED   : the window closed or the tournament was stopped
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class TournamentStatus(Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"

    @classmethod
    def from_value(
        cls, value: Any, *, default: "TournamentStatus" = None
    ) -> "TournamentStatus":
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if normalized in {member.name.lower(), member.value}:
                    return member

        return default or cls.WAITING


class TournamentStateError(RuntimeError):
    """Raised when a lifecycle transition is requested from the wrong status."""


class TournamentConfigError(ValueError):
    """Raised when a tournament definition is invalid."""


__all__ = [
    "TournamentStatus",
    "TournamentStateError",
    "TournamentConfigError",
]
