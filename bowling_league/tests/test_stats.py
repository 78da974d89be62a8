"""
Tests for season statistics: bowler and team rows, attribution, records.
"""
from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from bowling_league.errors import NotFoundError
from bowling_league.models import Frame, Game, Match, Side
from bowling_league.persistence.db import get_connection, init_db, set_db_path
from bowling_league.persistence.repositories import BowlerRepository, SeasonRepository, TeamRepository
from bowling_league.scoring import ScoringMode
from bowling_league.services.match_service import BowlerScores, MatchService, ScoreSubmission
from bowling_league.services.stats import StatsService, compute_season_stats

NOW = datetime(2026, 1, 5, tzinfo=timezone.utc)


def open_game(b1: int, b2: int) -> list[Frame]:
    return [Frame(frame_number=n, ball1_score=b1, ball2_score=b2) for n in range(1, 11)]


def perfect_game() -> list[Frame]:
    frames = [Frame(frame_number=n, ball1_score=10) for n in range(1, 10)]
    frames.append(Frame(frame_number=10, ball1_score=10, ball2_score=10, ball3_score=10))
    return frames


def submission(game_number: int, **frames_by_bowler: list[Frame]) -> ScoreSubmission:
    return ScoreSubmission(
        game_number=game_number,
        bowlers=[BowlerScores(bowler_id=bid, frames=fs) for bid, fs in frames_by_bowler.items()],
    )


def by_id(rows):
    return {r.id: r for r in rows}


@pytest.fixture
def db_conn(tmp_path):
    """Temporary DB with schema."""
    db_path = tmp_path / "stats_test.db"
    set_db_path(db_path)
    init_db(db_path=db_path)
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def matches():
    return MatchService()


@pytest.fixture
def stats():
    return StatsService()


@pytest.fixture
def match_id(db_conn, matches):
    """Home (h1, h2) vs Away (a1, a2) in week 1; s1 is on no roster."""
    bowlers = BowlerRepository()
    for bid, name in [("h1", "Hana"), ("h2", "Hugo"), ("a1", "Ada"), ("a2", "Abe"), ("s1", "Sam")]:
        bowlers.create(db_conn, name, id=bid)
    teams = TeamRepository()
    teams.create(db_conn, "Home Team", bowler_ids=["h1", "h2"], id="home")
    teams.create(db_conn, "Away Team", bowler_ids=["a1", "a2"], id="away")
    SeasonRepository().create(db_conn, "Spring", team_ids=["home", "away"], id="season")
    return matches.create_match(db_conn, "season", "home", "away", week=1).id


class TestBowlerRows:
    def test_per_game_averages(self, db_conn, matches, stats, match_id):
        matches.submit_scores(
            db_conn,
            match_id,
            submission(1, h1=open_game(9, 0), h2=perfect_game(), a1=open_game(8, 0), a2=open_game(5, 0)),
            ScoringMode.FINAL,
        )
        result = stats.season_stats(db_conn, "season")
        assert [b.id for b in result.bowlers] == ["h1", "h2", "a1", "a2"]
        rows = by_id(result.bowlers)
        assert rows["h1"].to_dict() == {
            "id": "h1", "name": "Hana", "gamesPlayed": 1, "ppg": 90.0, "spg": 0.0, "sparespg": 0.0, "gpg": 10.0,
        }
        assert rows["h2"].ppg == 300.0
        assert rows["h2"].spg == 12.0

    def test_partial_games_count_and_round(self, db_conn, matches, stats, match_id):
        matches.submit_scores(db_conn, match_id, submission(1, h1=open_game(9, 0)), ScoringMode.FINAL)
        matches.submit_scores(
            db_conn, match_id, submission(2, h1=[Frame(frame_number=1, ball1_score=3, ball2_score=4)]), ScoringMode.RUNNING
        )
        matches.submit_scores(
            db_conn, match_id, submission(3, h1=[Frame(frame_number=1, ball1_score=3, ball2_score=3)]), ScoringMode.RUNNING
        )
        row = by_id(stats.season_stats(db_conn, "season").bowlers)["h1"]
        assert row.games_played == 3
        assert row.ppg == 34.33

    def test_bowler_off_roster_named_from_directory(self, db_conn, matches, stats, match_id):
        matches.create_substitution(db_conn, match_id, "h1", "s1", "home")
        matches.submit_scores(db_conn, match_id, submission(1, s1=open_game(7, 0)), ScoringMode.FINAL)
        row = by_id(stats.season_stats(db_conn, "season").bowlers)["s1"]
        assert row.name == "Sam"

    def test_no_frames_no_rows(self, db_conn, stats, match_id):
        result = stats.season_stats(db_conn, "season")
        assert result.bowlers == []
        assert [t.id for t in result.teams] == ["home", "away"]
        assert result.teams[0].to_dict()["gamesPlayed"] == 0
        assert result.teams[0].ppg == 0.0


class TestTeamRows:
    def test_game_and_match_records(self, db_conn, matches, stats, match_id):
        matches.submit_scores(
            db_conn,
            match_id,
            submission(1, h1=open_game(9, 0), h2=perfect_game(), a1=open_game(8, 0), a2=open_game(5, 0)),
            ScoringMode.FINAL,
        )
        teams = by_id(stats.season_stats(db_conn, "season").teams)
        home, away = teams["home"], teams["away"]
        assert (home.game_wins, home.game_losses, home.game_ties) == (1, 0, 0)
        assert (away.game_wins, away.game_losses, away.game_ties) == (0, 1, 0)
        assert (home.match_wins, away.match_losses) == (1, 1)
        assert home.games_played == 1
        assert home.ppg == 390.0
        assert home.oppg == 130.0
        assert away.oppg == 390.0
        assert home.spg == 12.0
        assert set(home.to_dict()) == {
            "id", "name", "matchWins", "matchLosses", "matchTies", "gameWins", "gameLosses",
            "gameTies", "gamesPlayed", "ppg", "oppg", "spg", "sparespg", "gpg",
        }

    def test_tied_match(self, db_conn, matches, stats, match_id):
        for n in (1, 2, 3):
            matches.submit_scores(
                db_conn, match_id, submission(n, h1=open_game(6, 0), a1=open_game(6, 0)), ScoringMode.FINAL
            )
        teams = by_id(stats.season_stats(db_conn, "season").teams)
        assert teams["home"].match_ties == 1
        assert teams["away"].match_ties == 1
        assert teams["home"].game_ties == 3
        assert teams["home"].match_wins == teams["home"].match_losses == 0

    def test_unplayed_match_has_no_result(self, db_conn, stats, match_id):
        teams = by_id(stats.season_stats(db_conn, "season").teams)
        assert teams["home"].match_ties == 0
        assert teams["home"].match_wins == 0

    def test_substitute_pins_follow_current_substitutions(self, db_conn, matches, stats, match_id):
        sub = matches.create_substitution(db_conn, match_id, "h1", "s1", "home")
        matches.submit_scores(
            db_conn, match_id, submission(1, s1=open_game(9, 0), a1=open_game(4, 0)), ScoringMode.FINAL
        )
        before = by_id(stats.season_stats(db_conn, "season").teams)["home"]
        assert before.ppg == 90.0

        matches.delete_substitution(db_conn, match_id, sub.id)
        after = stats.season_stats(db_conn, "season")
        home = by_id(after.teams)["home"]
        assert home.ppg == 0.0
        # the settled game itself is unchanged
        assert home.game_wins == 1
        assert by_id(after.bowlers)["s1"].ppg == 90.0

    def test_unknown_season(self, db_conn, stats):
        with pytest.raises(NotFoundError):
            stats.season_stats(db_conn, "missing")


class TestComputeSeasonStats:
    def _match(self) -> Match:
        frames = [
            Frame(frame_number=1, ball1_score=10, bowler_id="x"),
            Frame(frame_number=1, ball1_score=3, ball2_score=6, bowler_id="y"),
            Frame(frame_number=1, ball1_score=0, ball2_score=0, bowler_id="z"),
        ]
        game = Game(
            id="g1", match_id="m1", game_number=1, created_at=NOW,
            home_team_score=10, away_team_score=9, home_team_points=11, away_team_points=0,
            frames=frames,
        )
        return Match(
            id="m1", season_id="s", week=1, home_team_id="T1", away_team_id="T2",
            created_at=NOW, home_team_points=11, away_team_points=0, winning_team_id="T1",
            games=[game],
        )

    def test_names_fall_back_to_id(self):
        result = compute_season_stats(
            ["T1", "T2"], {"T1": "One"}, [self._match()], {"m1": {"x": Side.HOME, "y": Side.AWAY}}, {"x": "Xavier"}
        )
        names = {b.id: b.name for b in result.bowlers}
        assert names == {"x": "Xavier", "y": "y", "z": "z"}
        assert [t.name for t in result.teams] == ["One", "T2"]

    def test_unattributed_bowler_counts_only_for_self(self):
        result = compute_season_stats(
            ["T1", "T2"], {}, [self._match()], {"m1": {"x": Side.HOME, "y": Side.AWAY}}, {}
        )
        teams = by_id(result.teams)
        assert teams["T1"].pins == 10
        assert teams["T2"].pins == 9
        assert teams["T1"].gutters == 0
        assert by_id(result.bowlers)["z"].gutters == 2

    def test_teams_outside_season_are_skipped(self):
        result = compute_season_stats(["T1"], {}, [self._match()], {"m1": {"x": Side.HOME, "y": Side.AWAY}}, {})
        assert [t.id for t in result.teams] == ["T1"]
        assert result.teams[0].match_wins == 1
        assert result.teams[0].oppg == 9.0
