"""
Match-centric service: score submission and settlement, substitutions, fixtures.
Guards run before any write; each mutation is a single transaction.
"""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any

from bowling_league.errors import InvalidRequestError, NotFoundError, SubstitutionError
from bowling_league.models import Frame, Match, Side, Substitution
from bowling_league.persistence.db import transaction
from bowling_league.persistence.repositories import (
    BowlerRepository,
    FrameRepository,
    GameRepository,
    MatchRepository,
    SeasonRepository,
    SubstitutionRepository,
    TeamRepository,
)
from bowling_league.scoring import GameLine, ScoringMode, score_game, validate_frames
from bowling_league.services.settlement import (
    GameSettlement,
    aggregate_match,
    build_team_sides,
    settle_game,
    side_for_team,
)

logger = logging.getLogger(__name__)

GAMES_PER_MATCH = 3


# ---------- Submission input ----------


@dataclass
class BowlerScores:
    bowler_id: str
    frames: list[Frame] = field(default_factory=list)


@dataclass
class ScoreSubmission:
    """One game's frames for any subset of the match's bowlers."""
    game_number: int
    bowlers: list[BowlerScores] = field(default_factory=list)


@dataclass
class SubmissionResult:
    match: Match
    settlement: GameSettlement
    lines: dict[str, GameLine]

    def to_dict(self) -> dict[str, Any]:
        d = self.match.to_dict()
        d["unattributed_bowler_ids"] = list(self.settlement.unattributed_bowler_ids)
        d["lines"] = {bid: line.to_dict() for bid, line in self.lines.items()}
        return d


# ---------- MatchService ----------


class MatchService:
    """
    Domain logic for matches. Persistence is delegated to repositories.
    Team attribution reads the substitutions that exist at call time.
    """

    def __init__(self) -> None:
        self._bowler_repo = BowlerRepository()
        self._team_repo = TeamRepository()
        self._season_repo = SeasonRepository()
        self._match_repo = MatchRepository()
        self._sub_repo = SubstitutionRepository()
        self._game_repo = GameRepository()
        self._frame_repo = FrameRepository()

    # ---------- Lookups ----------

    def _require_match(self, conn: sqlite3.Connection, match_id: str) -> Match:
        match = self._match_repo.get(conn, match_id)
        if match is None:
            raise NotFoundError(f"Match not found: {match_id}")
        return match

    def get_match(self, conn: sqlite3.Connection, match_id: str) -> Match:
        """Match with teams (rosters), substitutions, games and frames loaded."""
        match = self._require_match(conn, match_id)
        match.home_team = self._team_repo.get(conn, match.home_team_id)
        match.away_team = self._team_repo.get(conn, match.away_team_id)
        match.substitutions = self._sub_repo.list_by_match(conn, match_id)
        match.games = self._game_repo.list_by_match(conn, match_id)
        for g in match.games:
            g.frames = self._frame_repo.list_by_game(conn, g.id)
        return match

    def list_matches(self, conn: sqlite3.Connection, season_id: str | None = None) -> list[Match]:
        if season_id is None:
            return self._match_repo.list_all(conn)
        return self._match_repo.list_by_season(conn, season_id)

    def team_sides(self, conn: sqlite3.Connection, match: Match) -> dict[str, Side]:
        """Bowler id -> side for this match, extended by its current substitutions."""
        return build_team_sides(
            self._team_repo.get_bowler_ids(conn, match.home_team_id),
            self._team_repo.get_bowler_ids(conn, match.away_team_id),
            self._sub_repo.list_by_match(conn, match.id),
        )

    # ---------- Fixtures ----------

    def create_match(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        home_team_id: str,
        away_team_id: str,
        week: int,
    ) -> Match:
        if self._season_repo.get(conn, season_id) is None:
            raise NotFoundError(f"Season not found: {season_id}")
        for tid in (home_team_id, away_team_id):
            if self._team_repo.get(conn, tid) is None:
                raise NotFoundError(f"Team not found: {tid}")
        if home_team_id == away_team_id:
            raise InvalidRequestError("Home and away team must be different")
        if week < 1:
            raise InvalidRequestError(f"Week must be a positive integer (got {week})")
        match = self._match_repo.create(conn, season_id, home_team_id, away_team_id, week)
        return self.get_match(conn, match.id)

    def update_match(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_team_id: str | None = None,
        away_team_id: str | None = None,
        week: int | None = None,
    ) -> Match:
        """
        Move a fixture to another week or swap its teams. Points and winner are
        derived from the games and are not editable. Teams are locked once any
        game has been recorded.
        """
        match = self._require_match(conn, match_id)
        home = home_team_id if home_team_id is not None else match.home_team_id
        away = away_team_id if away_team_id is not None else match.away_team_id
        new_week = week if week is not None else match.week
        for tid in (home, away):
            if self._team_repo.get(conn, tid) is None:
                raise NotFoundError(f"Team not found: {tid}")
        if home == away:
            raise InvalidRequestError("Home and away team must be different")
        if new_week < 1:
            raise InvalidRequestError(f"Week must be a positive integer (got {new_week})")
        with transaction(conn):
            teams_changed = (home, away) != (match.home_team_id, match.away_team_id)
            if teams_changed and self._game_repo.list_by_match(conn, match_id):
                raise InvalidRequestError(
                    f"Match {match_id} already has recorded games; its teams cannot be changed"
                )
            self._match_repo.update_fixture(conn, match_id, home, away, new_week)
        logger.info("Match %s updated: week %d, %s vs %s", match_id, new_week, home, away)
        return self.get_match(conn, match_id)

    # ---------- Substitutions ----------

    def list_substitutions(self, conn: sqlite3.Connection, match_id: str) -> list[Substitution]:
        self._require_match(conn, match_id)
        return self._sub_repo.list_by_match(conn, match_id)

    def create_substitution(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        original_bowler_id: str,
        substitute_bowler_id: str,
        team_id: str,
    ) -> Substitution:
        """
        Original must be on team_id's roster, team_id must be one of the match's
        teams, and the substitute must not be rostered on either match team.
        """
        match = self._require_match(conn, match_id)
        for bid in (original_bowler_id, substitute_bowler_id):
            if self._bowler_repo.get(conn, bid) is None:
                raise NotFoundError(f"Bowler not found: {bid}")
        if side_for_team(team_id, match.home_team_id, match.away_team_id) is None:
            raise SubstitutionError(f"Team {team_id} is not playing in match {match_id}")
        if original_bowler_id == substitute_bowler_id:
            raise SubstitutionError("A bowler cannot substitute for themselves")
        if original_bowler_id not in self._team_repo.get_bowler_ids(conn, team_id):
            raise SubstitutionError(f"Bowler {original_bowler_id} is not on team {team_id}")
        match_rosters = set(self._team_repo.get_bowler_ids(conn, match.home_team_id))
        match_rosters.update(self._team_repo.get_bowler_ids(conn, match.away_team_id))
        if substitute_bowler_id in match_rosters:
            raise SubstitutionError(
                f"Bowler {substitute_bowler_id} is already on a roster in this match"
            )
        with transaction(conn):
            for existing in self._sub_repo.list_by_match(conn, match_id):
                if existing.original_bowler_id == original_bowler_id:
                    raise SubstitutionError(
                        f"Bowler {original_bowler_id} already has a substitute in this match"
                    )
                if existing.substitute_bowler_id == substitute_bowler_id:
                    raise SubstitutionError(
                        f"Bowler {substitute_bowler_id} is already substituting in this match"
                    )
            sub = self._sub_repo.create(
                conn, match_id, original_bowler_id, substitute_bowler_id, team_id
            )
        logger.info(
            "Substitution %s: %s replaces %s for team %s in match %s",
            sub.id, substitute_bowler_id, original_bowler_id, team_id, match_id,
        )
        return sub

    def delete_substitution(self, conn: sqlite3.Connection, match_id: str, substitution_id: str) -> None:
        """Remove a substitution. Already-settled games keep their point fields."""
        self._require_match(conn, match_id)
        sub = self._sub_repo.get(conn, substitution_id)
        if sub is None or sub.match_id != match_id:
            raise NotFoundError(f"Substitution not found: {substitution_id}")
        self._sub_repo.delete(conn, substitution_id)
        logger.info("Substitution %s removed from match %s", substitution_id, match_id)

    def expected_bowlers(self, conn: sqlite3.Connection, match_id: str) -> list[dict[str, Any]]:
        """
        Bowlers expected to bowl in this match: each roster, with substituted
        originals replaced by their substitutes. Home side first.
        """
        match = self._require_match(conn, match_id)
        subs_by_original = {s.original_bowler_id: s for s in self._sub_repo.list_by_match(conn, match_id)}
        substitutes = self._bowler_repo.get_many(
            conn, [s.substitute_bowler_id for s in subs_by_original.values()]
        )
        out: list[dict[str, Any]] = []
        for team_id in (match.home_team_id, match.away_team_id):
            for bowler in self._team_repo.get_bowlers(conn, team_id):
                sub = subs_by_original.get(bowler.id)
                if sub is None:
                    out.append({"id": bowler.id, "name": bowler.name, "team_id": team_id, "substitute_for": None})
                    continue
                replacement = substitutes.get(sub.substitute_bowler_id)
                out.append({
                    "id": sub.substitute_bowler_id,
                    "name": replacement.name if replacement else sub.substitute_bowler_id,
                    "team_id": team_id,
                    "substitute_for": bowler.id,
                })
        return out

    # ---------- Score submission & settlement ----------

    def _check_submission(self, conn: sqlite3.Connection, submission: ScoreSubmission) -> None:
        if not 1 <= submission.game_number <= GAMES_PER_MATCH:
            raise InvalidRequestError(
                f"game_number must be 1-{GAMES_PER_MATCH} (got {submission.game_number})"
            )
        if not any(b.frames for b in submission.bowlers):
            raise InvalidRequestError("Submission must include at least one frame")
        ids = [b.bowler_id for b in submission.bowlers]
        if len(set(ids)) != len(ids):
            raise InvalidRequestError("Each bowler may appear only once per submission")
        known = self._bowler_repo.get_many(conn, ids)
        for bid in ids:
            if bid not in known:
                raise NotFoundError(f"Bowler not found: {bid}")
        for b in submission.bowlers:
            try:
                validate_frames(b.frames)
            except InvalidRequestError as e:
                raise type(e)(f"Bowler {b.bowler_id}: {e}") from e

    def submit_scores(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        submission: ScoreSubmission,
        mode: ScoringMode,
    ) -> SubmissionResult:
        """
        Upsert one game's frames and settle it: team totals, game points, then
        match points recomputed over every game of the match. All-or-nothing.
        Frames not named in the submission are kept; each submitted bowler is
        scored from their full persisted ledger for the game.
        """
        match = self._require_match(conn, match_id)
        self._check_submission(conn, submission)
        with transaction(conn):
            existing = self._game_repo.get_by_number(conn, match_id, submission.game_number)
            lines: dict[str, GameLine] = {}
            for b in submission.bowlers:
                ledger: dict[int, Frame] = {}
                if existing is not None:
                    for f in self._frame_repo.list_by_game_and_bowler(conn, existing.id, b.bowler_id):
                        ledger[f.frame_number] = f
                for f in b.frames:
                    ledger[f.frame_number] = f
                lines[b.bowler_id] = score_game(ledger.values(), mode)

            game = existing or self._game_repo.get_or_create(conn, match_id, submission.game_number)
            for b in submission.bowlers:
                for f in b.frames:
                    self._frame_repo.upsert(conn, game.id, b.bowler_id, f)

            settlement = settle_game(lines, self.team_sides(conn, match))
            self._game_repo.update_settlement(
                conn,
                game.id,
                settlement.home_team_score,
                settlement.away_team_score,
                settlement.home_team_strikes,
                settlement.away_team_strikes,
                settlement.home_team_points,
                settlement.away_team_points,
            )
            aggregate = aggregate_match(
                self._game_repo.list_by_match(conn, match_id), match.home_team_id, match.away_team_id
            )
            self._match_repo.update_aggregate(
                conn,
                match_id,
                aggregate.home_team_points,
                aggregate.away_team_points,
                aggregate.winning_team_id,
            )
        logger.info(
            "Match %s game %d settled: %d-%d (points %d-%d); match points %d-%d, winner %s",
            match_id,
            submission.game_number,
            settlement.home_team_score,
            settlement.away_team_score,
            settlement.home_team_points,
            settlement.away_team_points,
            aggregate.home_team_points,
            aggregate.away_team_points,
            aggregate.winning_team_id,
        )
        return SubmissionResult(match=self.get_match(conn, match_id), settlement=settlement, lines=lines)
