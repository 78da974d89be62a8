"""
Service layer: settlement arithmetic, schedules, statistics.
match_service and season_service orchestrate persistence; settlement,
scheduling and the stats fold are pure.
"""
from .match_service import BowlerScores, MatchService, ScoreSubmission, SubmissionResult
from .season_service import SeasonService
from .stats import SeasonStats, StatsService, compute_season_stats

__all__ = [
    "BowlerScores",
    "MatchService",
    "ScoreSubmission",
    "SubmissionResult",
    "SeasonService",
    "SeasonStats",
    "StatsService",
    "compute_season_stats",
]
