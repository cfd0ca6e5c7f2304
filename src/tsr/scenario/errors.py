from __future__ import annotations

from typing import Optional


class ScenarioError(Exception):
    """Base class for the two named outcomes of a failed resolution."""


class InvalidInput(ScenarioError, ValueError):
    """Caller contract violation; the request has to be fixed, never retried."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotResolvable(ScenarioError, LookupError):
    """No pair of observations moves the way the requested direction and mode need."""

    def __init__(self, direction: str, mode: str, message: Optional[str] = None):
        self.direction = str(direction)
        self.mode = str(mode)
        super().__init__(
            message
            or f"no {self.direction}/{self.mode} scenario: market moved too little "
            f"or in the wrong direction over the price window"
        )
