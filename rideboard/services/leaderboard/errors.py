"""Leaderboard error taxonomy."""


class LeaderboardError(RuntimeError):
    """Base class for leaderboard failures."""


class LeaderboardValidationError(LeaderboardError):
    """Raised when a leaderboard request is malformed (client error)."""


class UnsupportedMetricError(LeaderboardValidationError):
    """Raised when no aggregation strategy exists for a metric."""


class LeaderboardSourceError(LeaderboardError):
    """Raised when an upstream reader fails or times out during regeneration.

    The previously materialized snapshot is left untouched, so callers may
    retry or serve it explicitly as stale data.
    """

    retryable = True


class LeaderboardInvariantError(LeaderboardError):
    """Raised when a snapshot violates ranking or uniqueness invariants."""
