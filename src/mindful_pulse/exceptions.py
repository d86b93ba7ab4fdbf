"""Exception hierarchy for the collection core."""

from __future__ import annotations

from typing import Any


class MindfulPulseError(Exception):
    """Base class for all errors raised by this package."""


class InvalidPreferenceValue(MindfulPulseError, ValueError):
    """A preference update named an unknown field or carried a bad value."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid value {value!r} for preference {field!r}: {reason}")
