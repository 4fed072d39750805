"""
Error taxonomy for the coach engine.

Every failure a caller can observe carries a human-readable ``reason``.
Failures that are ordinary outcomes of a request (no legal move, an illegal
candidate in the classifier) are returned as result objects instead; these
exceptions cover inputs the engine cannot work with at all.
"""


class CoachError(Exception):
    """Base class for all coach failures."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidPositionError(CoachError, ValueError):
    """The position string is not a valid FEN."""


class IllegalMoveError(CoachError, ValueError):
    """A move candidate failed rules validation."""

    def __init__(self, reason: str, candidate: object = None) -> None:
        super().__init__(reason)
        self.candidate = candidate


class MalformedExternalMoveError(CoachError):
    """An alternate move source returned something that is not a move."""
