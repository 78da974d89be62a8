"""
Tests for season lifecycle: active season, schedule generation, week autofill.
"""
from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from bowling_league.errors import InvalidRequestError, NotFoundError, ScheduleError
from bowling_league.persistence.db import get_connection, init_db, set_db_path
from bowling_league.persistence.repositories import BowlerRepository, TeamRepository
from bowling_league.scoring import ScoringMode, score_game, validate_frames
from bowling_league.services.match_service import MatchService
from bowling_league.services.season_service import SeasonService, generate_game_frames


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with schema."""
    db_path = tmp_path / "season_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def service():
    return SeasonService()


@pytest.fixture
def team_ids(db_conn):
    """Four teams of three bowlers each."""
    bowlers = BowlerRepository()
    teams = TeamRepository()
    ids = []
    for t in range(4):
        roster = [bowlers.create(db_conn, f"Bowler {t}-{i}").id for i in range(3)]
        ids.append(teams.create(db_conn, f"Team {t}", bowler_ids=roster).id)
    return ids


class TestActiveSeason:
    def test_no_active_season(self, db_conn, service):
        with pytest.raises(NotFoundError, match="No active season found"):
            service.get_active_season(db_conn)

    def test_activate_deactivates_others(self, db_conn, service, team_ids):
        first = service.create_season(db_conn, "Fall", team_ids, is_active=True)
        second = service.create_season(db_conn, "Winter", team_ids)
        assert service.get_active_season(db_conn).id == first.id
        service.activate_season(db_conn, second.id)
        assert service.get_active_season(db_conn).id == second.id
        active = [s.id for s in service.list_seasons(db_conn) if s.is_active]
        assert active == [second.id]

    def test_create_active_season_replaces_active(self, db_conn, service, team_ids):
        service.create_season(db_conn, "Fall", team_ids, is_active=True)
        spring = service.create_season(db_conn, "Spring", team_ids, is_active=True)
        assert [s.id for s in service.list_seasons(db_conn) if s.is_active] == [spring.id]

    def test_activate_missing(self, db_conn, service):
        with pytest.raises(NotFoundError):
            service.activate_season(db_conn, "missing")

    def test_create_season_guards(self, db_conn, service, team_ids):
        with pytest.raises(NotFoundError):
            service.create_season(db_conn, "Bad", [team_ids[0], "missing"])
        with pytest.raises(InvalidRequestError):
            service.create_season(db_conn, "Bad", [team_ids[0], team_ids[0]])
        with pytest.raises(InvalidRequestError):
            service.create_season(db_conn, "  ", team_ids)

    def test_season_loads_teams_in_order(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", list(reversed(team_ids)))
        assert season.team_ids == list(reversed(team_ids))
        assert all(len(t.bowlers) == 3 for t in season.teams)


class TestUpdateSeason:
    def test_rename_and_replace_teams(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids[:2])
        updated = service.update_season(db_conn, season.id, name="Autumn", team_ids=team_ids[2:])
        assert updated.name == "Autumn"
        assert updated.team_ids == team_ids[2:]

    def test_activate_through_update_keeps_one_active(self, db_conn, service, team_ids):
        first = service.create_season(db_conn, "Fall", team_ids, is_active=True)
        second = service.create_season(db_conn, "Winter", team_ids)
        service.update_season(db_conn, second.id, is_active=True)
        assert [s.id for s in service.list_seasons(db_conn) if s.is_active] == [second.id]
        service.update_season(db_conn, second.id, is_active=False)
        assert not any(s.is_active for s in service.list_seasons(db_conn))
        assert service.get_season(db_conn, first.id).is_active is False

    def test_update_guards(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        with pytest.raises(NotFoundError):
            service.update_season(db_conn, "missing", name="X")
        with pytest.raises(NotFoundError):
            service.update_season(db_conn, season.id, team_ids=["missing"])
        with pytest.raises(InvalidRequestError):
            service.update_season(db_conn, season.id, team_ids=[team_ids[0], team_ids[0]])
        with pytest.raises(InvalidRequestError):
            service.update_season(db_conn, season.id, name=" ")
        assert service.get_season(db_conn, season.id).team_ids == team_ids


class TestGenerateSchedule:
    def test_four_teams(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        season = service.generate_schedule(db_conn, season.id)
        assert len(season.matches) == 6
        assert sorted({m.week for m in season.matches}) == [1, 2, 3]
        pairs = {frozenset((m.home_team_id, m.away_team_id)) for m in season.matches}
        assert len(pairs) == 6

    def test_refuses_second_schedule(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        service.generate_schedule(db_conn, season.id)
        with pytest.raises(ScheduleError, match="already has matches"):
            service.generate_schedule(db_conn, season.id)
        assert len(service.get_season(db_conn, season.id).matches) == 6

    def test_needs_two_teams(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Solo", team_ids[:1])
        with pytest.raises(ScheduleError, match="at least 2 teams"):
            service.generate_schedule(db_conn, season.id)

    def test_missing_season(self, db_conn, service):
        with pytest.raises(NotFoundError):
            service.generate_schedule(db_conn, "missing")


class TestAutofill:
    def test_generated_frames_are_valid_and_complete(self):
        rng = random.Random(7)
        for _ in range(200):
            frames = generate_game_frames(rng)
            validate_frames(frames)
            line = score_game(frames, ScoringMode.FINAL)
            assert 0 <= line.total <= 300

    def test_fills_every_game_of_the_week(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        service.generate_schedule(db_conn, season.id)
        matches = service.autofill_week(db_conn, season.id, 1, seed=42)
        assert len(matches) == 2
        for m in matches:
            assert [g.game_number for g in m.games] == [1, 2, 3]
            assert all(g.is_scored for g in m.games)
            assert all(len(g.frames) == 60 for g in m.games)
            assert m.home_team_points is not None

    def test_deterministic_for_seed(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        service.generate_schedule(db_conn, season.id)
        first = service.autofill_week(db_conn, season.id, 2, seed=3)
        again = service.autofill_week(db_conn, season.id, 2, seed=3)
        assert [[g.home_team_score for g in m.games] for m in first] == [
            [g.home_team_score for g in m.games] for m in again
        ]

    def test_includes_substitutes(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        service.generate_schedule(db_conn, season.id)
        match = service.get_season(db_conn, season.id).matches[0]
        sub = BowlerRepository().create(db_conn, "Sub")
        original = TeamRepository().get_bowler_ids(db_conn, match.home_team_id)[0]
        MatchService().create_substitution(db_conn, match.id, original, sub.id, match.home_team_id)
        filled = {m.id: m for m in service.autofill_week(db_conn, season.id, match.week, seed=1)}
        bowled = {f.bowler_id for g in filled[match.id].games for f in g.frames}
        assert sub.id in bowled
        assert original not in bowled

    def test_week_without_matches(self, db_conn, service, team_ids):
        season = service.create_season(db_conn, "Fall", team_ids)
        with pytest.raises(InvalidRequestError):
            service.autofill_week(db_conn, season.id, 1)
