"""
Exceptions raised by the fixture and scoring engine.
"""


class EngineError(Exception):
    """Base class for every error the engine reports to its callers."""


class InsufficientParticipants(EngineError):
    """Fixture generation needs at least two approved participants."""


class InvalidIdentifier(EngineError):
    """A tournament, match or player identifier is malformed."""


class TournamentNotFound(InvalidIdentifier):
    """The identifier is well formed but no such tournament exists."""


class InvalidConfiguration(EngineError):
    """Unknown tournament format, seeding policy or scoring format."""


class InvalidScore(EngineError):
    """A score update carries an impossible game number or score."""


class IllegalStateTransition(EngineError):
    """The requested action is not allowed from the match's current status."""


class AlreadyCompleted(IllegalStateTransition):
    """The match already has a result; the action is a no-op."""


class StaleMatchVersion(EngineError):
    """The match changed since the caller last read it."""

    def __init__(self, expected, actual):
        super().__init__(f"Match version is {actual}, expected {expected}")
        self.expected = expected
        self.actual = actual
