"""
Deterministic round-robin schedule generation for a bowling season.

Round-robin is used so every team bowls every other team exactly once; season
length is N-1 weeks (N even) or N weeks (N odd). Each team bowls at most one
match per week.

BYE handling: when the number of teams is odd, we add a virtual BYE. Each week
one team is paired with BYE and sits out; those pairings are dropped from the
fixture list, so an odd field yields (N-1)/2 matches per week.

Uses the circle method: fix first slot, rotate others each week. Same team list
ordering yields the same schedule. Home/away is whatever the pairing order
yields; it is not balanced across the season.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from bowling_league.errors import ScheduleError

# Sentinel for bye when number of teams is odd
BYE = "BYE"

MIN_TEAMS = 2


@dataclass(frozen=True)
class Fixture:
    home_team_id: str
    away_team_id: str
    week: int

    def to_dict(self) -> dict[str, Any]:
        return {"home_team_id": self.home_team_id, "away_team_id": self.away_team_id, "week": self.week}


def number_of_weeks(team_count: int) -> int:
    """Weeks in a single round-robin for team_count teams (0 when fewer than 2)."""
    if team_count < MIN_TEAMS:
        return 0
    padded = team_count + (team_count % 2)
    return padded - 1


def _rounds(team_ids: list[str]) -> list[list[tuple[str, str]]]:
    """All pairings per week, BYE pairings included."""
    ids = list(team_ids)
    if len(ids) % 2 == 1:
        ids.append(BYE)
    n = len(ids)  # n is even
    rounds: list[list[tuple[str, str]]] = []
    # Circle method: indices 0..n-1. Fix 0, rotate 1..n-1 each week.
    order = list(range(n))
    for _week in range(n - 1):
        # Pair order[0] with order[n-1], order[1] with order[n-2], ...
        rounds.append([(ids[order[i]], ids[order[n - 1 - i]]) for i in range(n // 2)])
        # Rotate: keep 0, then order[n-1], order[1], order[2], ..., order[n-2]
        order = [order[0]] + [order[n - 1]] + order[1 : n - 1]
    return rounds


def round_robin(team_ids: list[str]) -> list[Fixture]:
    """
    Generate the season's fixtures: one Fixture per real pairing, weeks 1-based.
    Raises ScheduleError for fewer than 2 teams or duplicate team ids.
    """
    if len(team_ids) < MIN_TEAMS:
        raise ScheduleError(f"Need at least {MIN_TEAMS} teams to generate a schedule")
    if len(set(team_ids)) != len(team_ids):
        raise ScheduleError("Team ids must be unique")
    fixtures: list[Fixture] = []
    for week, pairings in enumerate(_rounds(team_ids), start=1):
        for home_id, away_id in pairings:
            if home_id == BYE or away_id == BYE:
                continue
            fixtures.append(Fixture(home_team_id=home_id, away_team_id=away_id, week=week))
    return fixtures


def bye_weeks(team_ids: list[str]) -> dict[str, list[int]]:
    """Team id -> weeks in which that team sits out. Empty lists for an even field."""
    out: dict[str, list[int]] = {tid: [] for tid in team_ids}
    if len(team_ids) < MIN_TEAMS:
        return out
    for week, pairings in enumerate(_rounds(team_ids), start=1):
        for home_id, away_id in pairings:
            if home_id == BYE:
                out[away_id].append(week)
            elif away_id == BYE:
                out[home_id].append(week)
    return out
