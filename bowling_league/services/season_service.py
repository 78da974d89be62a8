"""
Season lifecycle: creation, the single active season, schedule generation and
week autofill.
Enforces domain rules; uses repositories for persistence.
"""
from __future__ import annotations

import logging
import random
import sqlite3

from bowling_league.errors import InvalidRequestError, NotFoundError, ScheduleError
from bowling_league.models import Frame, Match, Season
from bowling_league.persistence.db import transaction
from bowling_league.persistence.repositories import MatchRepository, SeasonRepository, TeamRepository
from bowling_league.scoring import PINS, TENTH_FRAME, FRAMES_PER_GAME, ScoringMode
from bowling_league.services.match_service import (
    GAMES_PER_MATCH,
    BowlerScores,
    MatchService,
    ScoreSubmission,
)
from bowling_league.services.scheduling import MIN_TEAMS, round_robin

logger = logging.getLogger(__name__)

# Autofill lane model: chance of a strike on a full rack, chance of picking up
# the spare on the second ball.
STRIKE_CHANCE = 0.2
SPARE_CHANCE = 0.35


# ---------- Autofill frame generation ----------


def _full_rack(rng: random.Random) -> int:
    if rng.random() < STRIKE_CHANCE:
        return PINS
    return rng.choices(range(PINS), weights=[1, 1, 1, 2, 3, 4, 6, 8, 9, 8])[0]


def _leave(rng: random.Random, standing: int) -> int:
    if standing == 0:
        return 0
    if rng.random() < SPARE_CHANCE:
        return standing
    return rng.randint(0, standing - 1)


def generate_game_frames(rng: random.Random) -> list[Frame]:
    """Ten rule-valid frames for one bowler, deterministic for a given rng state."""
    frames: list[Frame] = []
    for n in range(1, FRAMES_PER_GAME):
        b1 = _full_rack(rng)
        if b1 == PINS:
            frames.append(Frame(frame_number=n, ball1_score=PINS))
            continue
        split = 6 <= b1 <= 8 and rng.random() < 0.1
        frames.append(
            Frame(frame_number=n, ball1_score=b1, ball2_score=_leave(rng, PINS - b1), is_ball1_split=split)
        )

    b1 = _full_rack(rng)
    if b1 == PINS:
        b2 = _full_rack(rng)
        b3 = _full_rack(rng) if b2 == PINS else _leave(rng, PINS - b2)
    else:
        b2 = _leave(rng, PINS - b1)
        b3 = _full_rack(rng) if b1 + b2 == PINS else None
    frames.append(Frame(frame_number=TENTH_FRAME, ball1_score=b1, ball2_score=b2, ball3_score=b3))
    return frames


# ---------- SeasonService ----------


class SeasonService:
    """
    Domain logic for seasons. At most one season is active; every write that
    activates a season deactivates the others in the same transaction.
    """

    def __init__(self, match_service: MatchService | None = None) -> None:
        self._season_repo = SeasonRepository()
        self._team_repo = TeamRepository()
        self._match_repo = MatchRepository()
        self._match_service = match_service or MatchService()

    def _require_season(self, conn: sqlite3.Connection, season_id: str) -> Season:
        season = self._season_repo.get(conn, season_id)
        if season is None:
            raise NotFoundError(f"Season not found: {season_id}")
        return season

    def get_season(self, conn: sqlite3.Connection, season_id: str) -> Season:
        """Season with teams (rosters loaded) and matches in week order."""
        season = self._require_season(conn, season_id)
        season.teams = [
            t for t in (self._team_repo.get(conn, tid) for tid in self._season_repo.get_team_ids(conn, season_id))
            if t is not None
        ]
        season.matches = self._match_repo.list_by_season(conn, season_id)
        return season

    def list_seasons(self, conn: sqlite3.Connection) -> list[Season]:
        return self._season_repo.list_all(conn)

    def create_season(
        self,
        conn: sqlite3.Connection,
        name: str,
        team_ids: list[str] | None = None,
        is_active: bool = False,
    ) -> Season:
        team_ids = list(team_ids or [])
        if not name.strip():
            raise InvalidRequestError("Season name is required")
        self._check_team_ids(conn, team_ids)
        with transaction(conn):
            if is_active:
                self._season_repo.deactivate_all(conn)
            season = self._season_repo.create(conn, name, team_ids=team_ids, is_active=is_active)
        logger.info("Season %s created (%d teams, active=%s)", season.id, len(team_ids), is_active)
        return self.get_season(conn, season.id)

    def _check_team_ids(self, conn: sqlite3.Connection, team_ids: list[str]) -> None:
        if len(set(team_ids)) != len(team_ids):
            raise InvalidRequestError("Team ids must be unique")
        for tid in team_ids:
            if self._team_repo.get(conn, tid) is None:
                raise NotFoundError(f"Team not found: {tid}")

    def update_season(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        name: str | None = None,
        team_ids: list[str] | None = None,
        is_active: bool | None = None,
    ) -> Season:
        """
        Partial update. team_ids replaces the season's teams; existing matches
        are left as they are. is_active=True goes through the same
        deactivate-others rule as activate_season.
        """
        self._require_season(conn, season_id)
        if name is not None and not name.strip():
            raise InvalidRequestError("Season name is required")
        if team_ids is not None:
            self._check_team_ids(conn, team_ids)
        with transaction(conn):
            if name is not None:
                self._season_repo.update_name(conn, season_id, name)
            if team_ids is not None:
                self._season_repo.set_team_ids(conn, season_id, team_ids)
            if is_active:
                self.activate_season(conn, season_id)
            elif is_active is not None:
                self._season_repo.set_active(conn, season_id, False)
        logger.info("Season %s updated", season_id)
        return self.get_season(conn, season_id)

    def activate_season(self, conn: sqlite3.Connection, season_id: str) -> Season:
        self._require_season(conn, season_id)
        with transaction(conn):
            self._season_repo.deactivate_all(conn, except_id=season_id)
            self._season_repo.set_active(conn, season_id, True)
        logger.info("Season %s is now the active season", season_id)
        return self.get_season(conn, season_id)

    def get_active_season(self, conn: sqlite3.Connection) -> Season:
        season = self._season_repo.get_active(conn)
        if season is None:
            raise NotFoundError("No active season found")
        return self.get_season(conn, season.id)

    # ---------- Schedule ----------

    def generate_schedule(self, conn: sqlite3.Connection, season_id: str) -> Season:
        """
        Round-robin fixtures for the season's teams, inserted in one transaction.
        Refuses when the season has fewer than 2 teams or already has matches.
        """
        self._require_season(conn, season_id)
        team_ids = self._season_repo.get_team_ids(conn, season_id)
        if len(team_ids) < MIN_TEAMS:
            raise ScheduleError(f"Season must have at least {MIN_TEAMS} teams to generate a schedule")
        with transaction(conn):
            if self._match_repo.count_by_season(conn, season_id) > 0:
                raise ScheduleError(
                    "Season already has matches. Delete existing matches before generating a new schedule."
                )
            fixtures = round_robin(team_ids)
            created = self._match_repo.create_many(
                conn, season_id, [(f.home_team_id, f.away_team_id, f.week) for f in fixtures]
            )
        logger.info(
            "Season %s schedule generated: %d matches over %d weeks",
            season_id, created, max((f.week for f in fixtures), default=0),
        )
        return self.get_season(conn, season_id)

    # ---------- Autofill ----------

    def autofill_week(
        self, conn: sqlite3.Connection, season_id: str, week: int, seed: int | None = None
    ) -> list[Match]:
        """
        Bowl every game of every match in the week with generated frames for the
        expected bowlers (substitutes included). Frames go through submit_scores
        in FINAL mode, so the usual validation and settlement apply. Deterministic
        for a given seed. Existing frames for those bowlers are overwritten.
        """
        self._require_season(conn, season_id)
        matches = self._match_repo.list_by_season_and_week(conn, season_id, week)
        if not matches:
            raise InvalidRequestError(f"No matches found for season {season_id} week {week}")
        rng = random.Random(seed)
        with transaction(conn):
            for m in matches:
                bowler_ids = [b["id"] for b in self._match_service.expected_bowlers(conn, m.id)]
                for game_number in range(1, GAMES_PER_MATCH + 1):
                    submission = ScoreSubmission(
                        game_number=game_number,
                        bowlers=[BowlerScores(bowler_id=bid, frames=generate_game_frames(rng)) for bid in bowler_ids],
                    )
                    self._match_service.submit_scores(conn, m.id, submission, ScoringMode.FINAL)
        logger.info("Season %s week %d autofilled (%d matches, seed=%s)", season_id, week, len(matches), seed)
        return [self._match_service.get_match(conn, m.id) for m in matches]
