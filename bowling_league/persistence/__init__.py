"""
Persistence layer for league data.
Read/write interfaces only. No business logic or scoring here.
"""
from .db import get_connection, init_db, transaction
from .repositories import (
    BowlerRepository,
    TeamRepository,
    SeasonRepository,
    MatchRepository,
    SubstitutionRepository,
    GameRepository,
    FrameRepository,
)

__all__ = [
    "get_connection",
    "init_db",
    "transaction",
    "BowlerRepository",
    "TeamRepository",
    "SeasonRepository",
    "MatchRepository",
    "SubstitutionRepository",
    "GameRepository",
    "FrameRepository",
]
