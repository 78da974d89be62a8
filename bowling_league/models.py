"""
Data models for the bowling league backend.
Domain objects only; no persistence or API logic.

League structure: bowlers are rostered on teams; teams take part in seasons;
seasons own weekly matches; each match has up to three games; each game holds
one frame ledger per bowler.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# ---------- Match side ----------
class Side(str, Enum):
    HOME = "home"
    AWAY = "away"


# ---------- Bowler ----------
@dataclass
class Bowler:
    """A league bowler. May sit on several team rosters or none (substitutes)."""
    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Team ----------
@dataclass
class Team:
    """
    A team and its roster. bowlers is populated by the repository when the
    roster is loaded; it is empty otherwise.
    """
    id: str
    name: str
    created_at: datetime
    bowlers: list[Bowler] = field(default_factory=list)

    @property
    def bowler_ids(self) -> list[str]:
        return [b.id for b in self.bowlers]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
            "bowlers": [b.to_dict() for b in self.bowlers],
        }


# ---------- Season ----------
@dataclass
class Season:
    """
    One league season. At most one season is active at a time; activation goes
    through SeasonService so the invariant holds at write time.
    """
    id: str
    name: str
    is_active: bool
    created_at: datetime
    teams: list[Team] = field(default_factory=list)
    matches: list["Match"] = field(default_factory=list)

    @property
    def team_ids(self) -> list[str]:
        return [t.id for t in self.teams]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
            "teams": [t.to_dict() for t in self.teams],
            "matches": [m.to_dict() for m in self.matches],
        }


# ---------- Frame ----------
@dataclass
class Frame:
    """
    One bowler's frame in one game. ball2/ball3 are None when not bowled.
    Unique per (game_id, bowler_id, frame_number).
    """
    frame_number: int
    ball1_score: int
    ball2_score: int | None = None
    ball3_score: int | None = None
    is_ball1_split: bool = False
    id: str | None = None
    game_id: str | None = None
    bowler_id: str | None = None

    @property
    def is_strike(self) -> bool:
        return self.ball1_score == 10

    @property
    def is_spare(self) -> bool:
        return (
            self.ball1_score != 10
            and self.ball2_score is not None
            and self.ball1_score + self.ball2_score == 10
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "frame_number": self.frame_number,
            "ball1_score": self.ball1_score,
            "ball2_score": self.ball2_score,
            "ball3_score": self.ball3_score,
            "is_ball1_split": self.is_ball1_split,
        }
        if self.id is not None:
            d["id"] = self.id
        if self.game_id is not None:
            d["game_id"] = self.game_id
        if self.bowler_id is not None:
            d["bowler_id"] = self.bowler_id
        return d


# ---------- Game ----------
@dataclass
class Game:
    """
    Game 1-3 of a match. Computed fields stay None until the first submission
    for this game number has been settled.
    """
    id: str
    match_id: str
    game_number: int
    created_at: datetime
    home_team_score: int | None = None
    away_team_score: int | None = None
    home_team_strikes: int | None = None
    away_team_strikes: int | None = None
    home_team_points: int | None = None
    away_team_points: int | None = None
    frames: list[Frame] = field(default_factory=list)

    @property
    def is_scored(self) -> bool:
        return self.home_team_score is not None and self.away_team_score is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "match_id": self.match_id,
            "game_number": self.game_number,
            "home_team_score": self.home_team_score,
            "away_team_score": self.away_team_score,
            "home_team_strikes": self.home_team_strikes,
            "away_team_strikes": self.away_team_strikes,
            "home_team_points": self.home_team_points,
            "away_team_points": self.away_team_points,
            "created_at": self.created_at.isoformat(),
            "frames": [f.to_dict() for f in self.frames],
        }


# ---------- Substitution ----------
@dataclass
class Substitution:
    """
    Per-match replacement: substitute_bowler_id bowls in place of
    original_bowler_id for team_id in this match only.
    """
    id: str
    match_id: str
    original_bowler_id: str
    substitute_bowler_id: str
    team_id: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "match_id": self.match_id,
            "original_bowler_id": self.original_bowler_id,
            "substitute_bowler_id": self.substitute_bowler_id,
            "team_id": self.team_id,
            "created_at": self.created_at.isoformat(),
        }


# ---------- Match ----------
@dataclass
class Match:
    """
    A weekly home/away fixture within a season. Aggregate fields are always
    recomputed from the match's games, never patched incrementally.
    winning_team_id None = undecided or tie.
    """
    id: str
    season_id: str
    week: int
    home_team_id: str
    away_team_id: str
    created_at: datetime
    home_team_points: int | None = None
    away_team_points: int | None = None
    winning_team_id: str | None = None
    home_team: Team | None = None
    away_team: Team | None = None
    substitutions: list[Substitution] = field(default_factory=list)
    games: list[Game] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "season_id": self.season_id,
            "week": self.week,
            "home_team_id": self.home_team_id,
            "away_team_id": self.away_team_id,
            "home_team_points": self.home_team_points,
            "away_team_points": self.away_team_points,
            "winning_team_id": self.winning_team_id,
            "created_at": self.created_at.isoformat(),
            "substitutions": [s.to_dict() for s in self.substitutions],
            "games": [g.to_dict() for g in self.games],
        }
        if self.home_team is not None:
            d["home_team"] = self.home_team.to_dict()
        if self.away_team is not None:
            d["away_team"] = self.away_team.to_dict()
        return d
