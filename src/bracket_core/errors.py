"""
Exceptions raised by the bracket engine and the layers around it.
"""
from typing import List


class BracketError(Exception):
    pass


class GenerationError(BracketError, ValueError):
    pass


class InvalidParticipantCount(GenerationError):
    pass


class GenerationInvariantViolation(GenerationError):
    """The validator rejected a freshly built graph."""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("Generated bracket is invalid: " + "; ".join(self.violations))


class ResultError(BracketError, ValueError):
    pass


class MatchNotFound(ResultError):
    pass


class NotReady(ResultError):
    pass


class InvalidWinner(ResultError):
    pass


class ConflictingResult(ResultError):
    pass


class StructuralInvariantViolation(BracketError, RuntimeError):
    """A link or slot contradicts the bracket structure. Never recoverable."""


class TournamentNotFound(BracketError, LookupError):
    pass


class TournamentStateError(BracketError):
    """The operation is not allowed in the tournament's current status."""


class StoreConflict(BracketError):
    """The stored tournament changed since it was loaded."""
