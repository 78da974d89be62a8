"""
Domain exceptions shared by the scoring engine and services.
API maps NotFoundError -> 404 and InvalidRequestError -> 400.
"""
from __future__ import annotations


# ---------- Exceptions ----------


class NotFoundError(LookupError):
    """Referenced match, season, bowler, team or substitution does not exist."""


class InvalidRequestError(ValueError):
    """Domain-rule violation. Raised before any write; nothing is persisted."""


class InvalidFrameError(InvalidRequestError):
    """Frame values break the pins-standing rules."""


class IncompleteGameError(InvalidRequestError):
    """Final scoring requested for a game that is not fully bowled."""


class ScheduleError(InvalidRequestError):
    """Schedule cannot be generated for this season (team count, existing matches)."""


class SubstitutionError(InvalidRequestError):
    """Substitution breaks roster rules for its match."""
