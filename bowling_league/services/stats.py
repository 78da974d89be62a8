"""
Season statistics: per-bowler and per-team averages and win/loss records.

Two passes. Pass one flattens the season into lookups (bowler lines per game,
bowler -> side per match). Pass two folds those lookups into rows. Pins for a
bowler's game are the running total of whatever frames were recorded.

Attribution uses each match's substitutions as they are now, so removing a
substitution moves that substitute's pins out of the team's numbers on the next
run even though the settled game points stay as they were.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from bowling_league.errors import NotFoundError
from bowling_league.models import Frame, Match, Side
from bowling_league.persistence.repositories import (
    BowlerRepository,
    FrameRepository,
    GameRepository,
    MatchRepository,
    SeasonRepository,
    SubstitutionRepository,
    TeamRepository,
)
from bowling_league.scoring import GameLine, ScoringMode, score_game
from bowling_league.services.settlement import build_team_sides

logger = logging.getLogger(__name__)


def _per_game(total: int, games: int) -> float:
    return round(total / (games or 1), 2)


# ---------- Rows ----------


@dataclass
class BowlerStatRow:
    id: str
    name: str
    games_played: int = 0
    pins: int = 0
    strikes: int = 0
    spares: int = 0
    gutters: int = 0

    @property
    def ppg(self) -> float:
        return _per_game(self.pins, self.games_played)

    @property
    def spg(self) -> float:
        return _per_game(self.strikes, self.games_played)

    @property
    def sparespg(self) -> float:
        return _per_game(self.spares, self.games_played)

    @property
    def gpg(self) -> float:
        return _per_game(self.gutters, self.games_played)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "gamesPlayed": self.games_played,
            "ppg": self.ppg,
            "spg": self.spg,
            "sparespg": self.sparespg,
            "gpg": self.gpg,
        }


@dataclass
class TeamStatRow:
    id: str
    name: str
    match_wins: int = 0
    match_losses: int = 0
    match_ties: int = 0
    game_wins: int = 0
    game_losses: int = 0
    game_ties: int = 0
    games_played: int = 0
    pins: int = 0
    opponent_pins: int = 0
    strikes: int = 0
    spares: int = 0
    gutters: int = 0

    @property
    def ppg(self) -> float:
        return _per_game(self.pins, self.games_played)

    @property
    def oppg(self) -> float:
        return _per_game(self.opponent_pins, self.games_played)

    @property
    def spg(self) -> float:
        return _per_game(self.strikes, self.games_played)

    @property
    def sparespg(self) -> float:
        return _per_game(self.spares, self.games_played)

    @property
    def gpg(self) -> float:
        return _per_game(self.gutters, self.games_played)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "matchWins": self.match_wins,
            "matchLosses": self.match_losses,
            "matchTies": self.match_ties,
            "gameWins": self.game_wins,
            "gameLosses": self.game_losses,
            "gameTies": self.game_ties,
            "gamesPlayed": self.games_played,
            "ppg": self.ppg,
            "oppg": self.oppg,
            "spg": self.spg,
            "sparespg": self.sparespg,
            "gpg": self.gpg,
        }


@dataclass
class SeasonStats:
    bowlers: list[BowlerStatRow] = field(default_factory=list)
    teams: list[TeamStatRow] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "bowlers": [b.to_dict() for b in self.bowlers],
            "teams": [t.to_dict() for t in self.teams],
        }


# ---------- Pass one: flatten ----------


def _lines_by_bowler(frames: Sequence[Frame]) -> dict[str, GameLine]:
    """Group one game's frames by bowler (first appearance order) and score each."""
    grouped: dict[str, list[Frame]] = {}
    for f in frames:
        if f.bowler_id is None:
            continue
        grouped.setdefault(f.bowler_id, []).append(f)
    return {bid: score_game(fs, ScoringMode.RUNNING) for bid, fs in grouped.items()}


def _match_result(match: Match, team_id: str) -> str | None:
    """'win', 'loss', 'tie' or None (undecided) for team_id in match."""
    if match.winning_team_id is not None:
        return "win" if match.winning_team_id == team_id else "loss"
    if match.games and all(g.home_team_score is not None for g in match.games):
        return "tie"
    return None


# ---------- Pass two: fold ----------


def compute_season_stats(
    team_ids: Sequence[str],
    team_names: Mapping[str, str],
    matches: Sequence[Match],
    sides_by_match: Mapping[str, Mapping[str, Side]],
    bowler_names: Mapping[str, str],
) -> SeasonStats:
    """
    Fold a season into stat rows. matches carry their games and frames, in week
    order; sides_by_match maps match id -> bowler id -> side. Bowler rows appear
    in first-appearance order, team rows in team_ids order. Matches involving a
    team outside team_ids still count for the team that is in the season.
    """
    bowler_rows: dict[str, BowlerStatRow] = {}
    team_rows: dict[str, TeamStatRow] = {
        tid: TeamStatRow(id=tid, name=team_names.get(tid, tid)) for tid in team_ids
    }

    for match in matches:
        sides = sides_by_match.get(match.id, {})
        team_for_side = {Side.HOME: match.home_team_id, Side.AWAY: match.away_team_id}

        for game in match.games:
            lines = _lines_by_bowler(game.frames)
            side_pins = {Side.HOME: 0, Side.AWAY: 0}
            for bid, line in lines.items():
                row = bowler_rows.get(bid)
                if row is None:
                    row = BowlerStatRow(id=bid, name=bowler_names.get(bid, bid))
                    bowler_rows[bid] = row
                row.games_played += 1
                row.pins += line.total
                row.strikes += line.strikes
                row.spares += line.spares
                row.gutters += line.gutters

                side = sides.get(bid)
                if side is None:
                    continue
                side_pins[side] += line.total
                team_row = team_rows.get(team_for_side[side])
                if team_row is not None:
                    team_row.pins += line.total
                    team_row.strikes += line.strikes
                    team_row.spares += line.spares
                    team_row.gutters += line.gutters

            for side, tid in team_for_side.items():
                team_row = team_rows.get(tid)
                if team_row is None:
                    continue
                other = Side.AWAY if side == Side.HOME else Side.HOME
                team_row.opponent_pins += side_pins[other]
                if not game.is_scored:
                    continue
                team_row.games_played += 1
                own, opp = game.home_team_score, game.away_team_score
                if side == Side.AWAY:
                    own, opp = opp, own
                if own > opp:
                    team_row.game_wins += 1
                elif own < opp:
                    team_row.game_losses += 1
                else:
                    team_row.game_ties += 1

        for tid in (match.home_team_id, match.away_team_id):
            team_row = team_rows.get(tid)
            if team_row is None:
                continue
            result = _match_result(match, tid)
            if result == "win":
                team_row.match_wins += 1
            elif result == "loss":
                team_row.match_losses += 1
            elif result == "tie":
                team_row.match_ties += 1

    return SeasonStats(bowlers=list(bowler_rows.values()), teams=list(team_rows.values()))


# ---------- Loader ----------


class StatsService:
    """Loads a season from the database and folds it with compute_season_stats."""

    def __init__(self) -> None:
        self._bowler_repo = BowlerRepository()
        self._team_repo = TeamRepository()
        self._season_repo = SeasonRepository()
        self._match_repo = MatchRepository()
        self._sub_repo = SubstitutionRepository()
        self._game_repo = GameRepository()
        self._frame_repo = FrameRepository()

    def season_stats(self, conn: sqlite3.Connection, season_id: str) -> SeasonStats:
        if self._season_repo.get(conn, season_id) is None:
            raise NotFoundError(f"Season not found: {season_id}")
        team_ids = self._season_repo.get_team_ids(conn, season_id)
        teams = [t for t in (self._team_repo.get(conn, tid) for tid in team_ids) if t is not None]
        team_names = {t.id: t.name for t in teams}
        bowler_names: dict[str, str] = {}
        for t in teams:
            for b in t.bowlers:
                bowler_names.setdefault(b.id, b.name)

        matches = self._match_repo.list_by_season(conn, season_id)
        sides_by_match: dict[str, dict[str, Side]] = {}
        seen_bowlers: set[str] = set()
        for m in matches:
            m.games = self._game_repo.list_by_match(conn, m.id)
            for g in m.games:
                g.frames = self._frame_repo.list_by_game(conn, g.id)
                seen_bowlers.update(f.bowler_id for f in g.frames if f.bowler_id is not None)
            sides_by_match[m.id] = build_team_sides(
                self._team_repo.get_bowler_ids(conn, m.home_team_id),
                self._team_repo.get_bowler_ids(conn, m.away_team_id),
                self._sub_repo.list_by_match(conn, m.id),
            )

        unknown = [bid for bid in seen_bowlers if bid not in bowler_names]
        for bid, bowler in self._bowler_repo.get_many(conn, unknown).items():
            bowler_names[bid] = bowler.name

        stats = compute_season_stats(team_ids, team_names, matches, sides_by_match, bowler_names)
        logger.debug(
            "Season %s stats: %d bowlers, %d teams over %d matches",
            season_id, len(stats.bowlers), len(stats.teams), len(matches),
        )
        return stats
