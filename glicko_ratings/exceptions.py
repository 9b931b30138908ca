"""Errors raised by the rating pool."""

from typing import Any, Optional


class Glicko2Error(Exception):
    """Base class for all rating errors."""


class InvalidMatchError(Glicko2Error, ValueError):
    """A match was recorded with the same player on both sides, or a bad weight."""


class NotAParticipantError(Glicko2Error, ValueError):
    """A score or opponent was requested for a player who did not play the match."""

    def __init__(self, player: Any, message: str = "Player did not participate in match"):
        super().__init__(message)
        self.player = player


class NonConvergenceError(Glicko2Error, RuntimeError):
    """
    The volatility solver hit its iteration cap.

    This points at a bad τ/ε or a pathological Δ rather than bad data, so it
    is never retried.
    """

    def __init__(self, message: str, iterations: int, participant: Optional[Any] = None):
        super().__init__(message)
        self.iterations = iterations
        self.participant = participant
        # Set by RatingEngine: the PeriodUpdate for participants that did succeed
        self.report = None
