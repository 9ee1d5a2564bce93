"""Error taxonomy shared by the ranking engine and the sync adapter."""

from __future__ import annotations


class RankingError(Exception):
    """Base class for every failure the ranking core reports."""


class RankingValidationError(RankingError):
    """The request was rejected before any mutation (duplicate or empty title, bad index)."""


class SessionNotFoundError(RankingError):
    """The comparison target or session no longer exists; insertion must restart."""


class RemoteError(RankingError):
    """A persisted-store or catalog call failed."""


class StateInvariantViolation(RankingError):
    """A comparison session reached a state that correct use can never produce."""
