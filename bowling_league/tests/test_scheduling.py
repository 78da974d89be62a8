"""
Tests for round-robin schedule generation.
Deterministic; no duplicate matchups; at most one match per team per week.
"""
from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from bowling_league.errors import ScheduleError
from bowling_league.services.scheduling import (
    BYE,
    bye_weeks,
    number_of_weeks,
    round_robin,
)


def _pairs(fixtures):
    return {tuple(sorted([f.home_team_id, f.away_team_id])) for f in fixtures}


def test_round_robin_two_teams():
    """2 teams: 1 week, 1 match."""
    fixtures = round_robin(["A", "B"])
    assert len(fixtures) == 1
    assert fixtures[0].week == 1
    assert _pairs(fixtures) == {("A", "B")}


def test_round_robin_three_teams():
    """3 teams: BYE added, 3 weeks of one real match; each pair once."""
    fixtures = round_robin(["A", "B", "C"])
    assert len(fixtures) == 3
    assert _pairs(fixtures) == {("A", "B"), ("A", "C"), ("B", "C")}
    assert sorted(f.week for f in fixtures) == [1, 2, 3]


def test_round_robin_four_teams():
    """4 teams: 3 weeks, 2 matches per week, each pair once."""
    fixtures = round_robin(["A", "B", "C", "D"])
    assert len(fixtures) == 6
    assert Counter(f.week for f in fixtures) == {1: 2, 2: 2, 3: 2}
    assert _pairs(fixtures) == {
        ("A", "B"), ("A", "C"), ("A", "D"), ("B", "C"), ("B", "D"), ("C", "D"),
    }


def test_round_robin_five_teams():
    """5 teams: 5 weeks of 2 matches; each team sits out exactly one week."""
    teams = ["A", "B", "C", "D", "E"]
    fixtures = round_robin(teams)
    assert len(fixtures) == 10
    assert Counter(f.week for f in fixtures) == {w: 2 for w in range(1, 6)}
    assert len(_pairs(fixtures)) == 10
    byes = bye_weeks(teams)
    assert all(len(weeks) == 1 for weeks in byes.values())
    assert sorted(w for weeks in byes.values() for w in weeks) == [1, 2, 3, 4, 5]


def test_one_match_per_team_per_week():
    fixtures = round_robin([f"T{i}" for i in range(8)])
    per_week: dict[int, list[str]] = {}
    for f in fixtures:
        per_week.setdefault(f.week, []).extend([f.home_team_id, f.away_team_id])
    for teams in per_week.values():
        assert len(teams) == len(set(teams))


def test_no_bye_in_fixtures():
    for f in round_robin(["A", "B", "C", "D", "E", "F", "G"]):
        assert BYE not in (f.home_team_id, f.away_team_id)


def test_deterministic():
    teams = ["A", "B", "C", "D", "E", "F"]
    assert round_robin(teams) == round_robin(teams)


def test_first_week_pairs_outside_in():
    fixtures = [f for f in round_robin(["A", "B", "C", "D"]) if f.week == 1]
    assert [(f.home_team_id, f.away_team_id) for f in fixtures] == [("A", "D"), ("B", "C")]


def test_number_of_weeks():
    assert number_of_weeks(0) == 0
    assert number_of_weeks(1) == 0
    assert number_of_weeks(2) == 1
    assert number_of_weeks(4) == 3
    assert number_of_weeks(5) == 5


def test_even_field_has_no_byes():
    assert bye_weeks(["A", "B", "C", "D"]) == {"A": [], "B": [], "C": [], "D": []}


def test_too_few_teams():
    with pytest.raises(ScheduleError):
        round_robin(["A"])
    with pytest.raises(ScheduleError):
        round_robin([])


def test_duplicate_team_ids():
    with pytest.raises(ScheduleError):
        round_robin(["A", "B", "A"])


def test_fixture_to_dict():
    f = round_robin(["A", "B"])[0]
    assert f.to_dict() == {"home_team_id": "A", "away_team_id": "B", "week": 1}
