"""
Match settlement arithmetic: who bowls for which side, team totals for one game,
per-game points and the match-level aggregate.
Pure functions; MatchService handles loading and persistence.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from bowling_league.models import Game, Side, Substitution
from bowling_league.scoring import GameLine

logger = logging.getLogger(__name__)

# ---------- Point rules ----------
GAME_WIN_POINTS = 10
GAME_TIE_POINTS = 5


@dataclass
class GameSettlement:
    """Team totals and points for one game."""
    home_team_score: int = 0
    away_team_score: int = 0
    home_team_strikes: int = 0
    away_team_strikes: int = 0
    home_team_points: int = 0
    away_team_points: int = 0
    unattributed_bowler_ids: list[str] = field(default_factory=list)


@dataclass
class MatchAggregate:
    home_team_points: int
    away_team_points: int
    winning_team_id: str | None


def build_team_sides(
    home_bowler_ids: Iterable[str],
    away_bowler_ids: Iterable[str],
    substitutions: Iterable[Substitution] = (),
) -> dict[str, Side]:
    """
    Bowler id -> side for one match. Starts from both rosters, then each
    substitute joins whichever side already holds its original bowler.
    A bowler on both rosters counts for home.
    """
    sides: dict[str, Side] = {}
    for bid in away_bowler_ids:
        sides[bid] = Side.AWAY
    for bid in home_bowler_ids:
        sides[bid] = Side.HOME
    roster_sides = dict(sides)
    for sub in substitutions:
        side = roster_sides.get(sub.original_bowler_id)
        if side is not None:
            sides[sub.substitute_bowler_id] = side
    return sides


def side_for_team(team_id: str, home_team_id: str, away_team_id: str) -> Side | None:
    if team_id == home_team_id:
        return Side.HOME
    if team_id == away_team_id:
        return Side.AWAY
    return None


def award_game_points(
    home_score: int, away_score: int, home_strikes: int, away_strikes: int
) -> tuple[int, int]:
    """
    (home_points, away_points) for one game. Winner gets 10 + its strikes, loser
    just its strikes; a tie gives 5 + strikes to each side.
    """
    if home_score > away_score:
        return GAME_WIN_POINTS + home_strikes, away_strikes
    if away_score > home_score:
        return home_strikes, GAME_WIN_POINTS + away_strikes
    return GAME_TIE_POINTS + home_strikes, GAME_TIE_POINTS + away_strikes


def settle_game(lines: Mapping[str, GameLine], sides: Mapping[str, Side]) -> GameSettlement:
    """
    Sum bowler lines into team totals and award points. Bowlers in neither side
    are left out of the totals and reported in unattributed_bowler_ids.
    """
    result = GameSettlement()
    for bowler_id, line in lines.items():
        side = sides.get(bowler_id)
        if side == Side.HOME:
            result.home_team_score += line.total
            result.home_team_strikes += line.strikes
        elif side == Side.AWAY:
            result.away_team_score += line.total
            result.away_team_strikes += line.strikes
        else:
            result.unattributed_bowler_ids.append(bowler_id)
    if result.unattributed_bowler_ids:
        logger.warning(
            "Bowlers on neither team were left out of team totals: %s",
            ", ".join(result.unattributed_bowler_ids),
        )
    result.home_team_points, result.away_team_points = award_game_points(
        result.home_team_score,
        result.away_team_score,
        result.home_team_strikes,
        result.away_team_strikes,
    )
    return result


def aggregate_match(games: Iterable[Game], home_team_id: str, away_team_id: str) -> MatchAggregate:
    """Sum points over every game of the match (unset = 0). Winner must be strictly ahead."""
    home = 0
    away = 0
    for g in games:
        home += g.home_team_points or 0
        away += g.away_team_points or 0
    if home > away:
        winner: str | None = home_team_id
    elif away > home:
        winner = away_team_id
    else:
        winner = None
    return MatchAggregate(home_team_points=home, away_team_points=away, winning_team_id=winner)
