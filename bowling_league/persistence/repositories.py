"""
Repository interfaces for league data.
No business logic; only read/write operations. Connections run in autocommit
mode; callers wrap multi-step writes in persistence.db.transaction().
"""
from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Iterable, Sequence

from bowling_league.models import Bowler, Frame, Game, Match, Season, Substitution, Team

from .db import transaction


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_datetime(s: str | None) -> datetime:
    if s is None:
        raise ValueError("expected datetime string")
    return datetime.fromisoformat(s.replace("Z", "+00:00"))


def _placeholders(values: Sequence[object]) -> str:
    return ", ".join("?" for _ in values)


# ---------- BowlerRepository ----------


class BowlerRepository:
    """CRUD for bowlers."""

    def create(self, conn: sqlite3.Connection, name: str, id: str | None = None) -> Bowler:
        bid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            "INSERT INTO bowlers (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
            (bid, name, now, now),
        )
        return Bowler(id=bid, name=name, created_at=_parse_datetime(now))

    def get(self, conn: sqlite3.Connection, bowler_id: str) -> Bowler | None:
        row = conn.execute(
            "SELECT id, name, created_at FROM bowlers WHERE id = ?", (bowler_id,)
        ).fetchone()
        if row is None:
            return None
        return Bowler(id=row["id"], name=row["name"], created_at=_parse_datetime(row["created_at"]))

    def get_many(self, conn: sqlite3.Connection, bowler_ids: Sequence[str]) -> dict[str, Bowler]:
        if not bowler_ids:
            return {}
        ids = list(bowler_ids)
        rows = conn.execute(
            f"SELECT id, name, created_at FROM bowlers WHERE id IN ({_placeholders(ids)})", ids
        ).fetchall()
        return {
            r["id"]: Bowler(id=r["id"], name=r["name"], created_at=_parse_datetime(r["created_at"]))
            for r in rows
        }

    def list_all(self, conn: sqlite3.Connection) -> list[Bowler]:
        rows = conn.execute("SELECT id, name, created_at FROM bowlers ORDER BY created_at, name").fetchall()
        return [
            Bowler(id=r["id"], name=r["name"], created_at=_parse_datetime(r["created_at"]))
            for r in rows
        ]

    def update_name(self, conn: sqlite3.Connection, bowler_id: str, name: str) -> None:
        conn.execute(
            "UPDATE bowlers SET name = ?, updated_at = ? WHERE id = ?", (name, _now(), bowler_id)
        )


# ---------- TeamRepository ----------


class TeamRepository:
    """CRUD for teams and team_bowlers (roster)."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        bowler_ids: list[str] | None = None,
        id: str | None = None,
    ) -> Team:
        tid = id or str(uuid.uuid4())
        now = _now()
        with transaction(conn):
            conn.execute(
                "INSERT INTO teams (id, name, created_at, updated_at) VALUES (?, ?, ?, ?)",
                (tid, name, now, now),
            )
            self._insert_roster(conn, tid, bowler_ids or [])
        return self.get(conn, tid) or Team(id=tid, name=name, created_at=_parse_datetime(now))

    def _insert_roster(self, conn: sqlite3.Connection, team_id: str, bowler_ids: list[str]) -> None:
        conn.executemany(
            "INSERT INTO team_bowlers (team_id, bowler_id, position) VALUES (?, ?, ?)",
            [(team_id, bid, pos) for pos, bid in enumerate(bowler_ids, start=1)],
        )

    def set_roster(self, conn: sqlite3.Connection, team_id: str, bowler_ids: list[str]) -> None:
        """Replace the roster (order preserved)."""
        with transaction(conn):
            conn.execute("DELETE FROM team_bowlers WHERE team_id = ?", (team_id,))
            self._insert_roster(conn, team_id, bowler_ids)
            conn.execute("UPDATE teams SET updated_at = ? WHERE id = ?", (_now(), team_id))

    def update_name(self, conn: sqlite3.Connection, team_id: str, name: str) -> None:
        conn.execute("UPDATE teams SET name = ?, updated_at = ? WHERE id = ?", (name, _now(), team_id))

    def get(self, conn: sqlite3.Connection, team_id: str) -> Team | None:
        """Team with its roster loaded."""
        row = conn.execute("SELECT id, name, created_at FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            return None
        return Team(
            id=row["id"],
            name=row["name"],
            created_at=_parse_datetime(row["created_at"]),
            bowlers=self.get_bowlers(conn, team_id),
        )

    def get_bowlers(self, conn: sqlite3.Connection, team_id: str) -> list[Bowler]:
        """Roster for team, ordered by position."""
        rows = conn.execute(
            """SELECT b.id, b.name, b.created_at
               FROM team_bowlers tb JOIN bowlers b ON b.id = tb.bowler_id
               WHERE tb.team_id = ? ORDER BY tb.position""",
            (team_id,),
        ).fetchall()
        return [
            Bowler(id=r["id"], name=r["name"], created_at=_parse_datetime(r["created_at"]))
            for r in rows
        ]

    def get_bowler_ids(self, conn: sqlite3.Connection, team_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT bowler_id FROM team_bowlers WHERE team_id = ? ORDER BY position", (team_id,)
        ).fetchall()
        return [r["bowler_id"] for r in rows]

    def list_all(self, conn: sqlite3.Connection) -> list[Team]:
        rows = conn.execute("SELECT id FROM teams ORDER BY created_at, name").fetchall()
        return [t for t in (self.get(conn, r["id"]) for r in rows) if t is not None]


# ---------- SeasonRepository ----------


class SeasonRepository:
    """CRUD for seasons and season_teams. Matches are loaded via MatchRepository."""

    def create(
        self,
        conn: sqlite3.Connection,
        name: str,
        team_ids: list[str] | None = None,
        is_active: bool = False,
        id: str | None = None,
    ) -> Season:
        sid = id or str(uuid.uuid4())
        now = _now()
        with transaction(conn):
            conn.execute(
                "INSERT INTO seasons (id, name, is_active, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (sid, name, 1 if is_active else 0, now, now),
            )
            conn.executemany(
                "INSERT INTO season_teams (season_id, team_id, position) VALUES (?, ?, ?)",
                [(sid, tid, pos) for pos, tid in enumerate(team_ids or [], start=1)],
            )
        return Season(id=sid, name=name, is_active=is_active, created_at=_parse_datetime(now))

    def _from_row(self, row: sqlite3.Row) -> Season:
        return Season(
            id=row["id"],
            name=row["name"],
            is_active=bool(row["is_active"]),
            created_at=_parse_datetime(row["created_at"]),
        )

    def get(self, conn: sqlite3.Connection, season_id: str) -> Season | None:
        row = conn.execute(
            "SELECT id, name, is_active, created_at FROM seasons WHERE id = ?", (season_id,)
        ).fetchone()
        return self._from_row(row) if row is not None else None

    def get_active(self, conn: sqlite3.Connection) -> Season | None:
        row = conn.execute(
            "SELECT id, name, is_active, created_at FROM seasons WHERE is_active = 1 ORDER BY created_at DESC LIMIT 1"
        ).fetchone()
        return self._from_row(row) if row is not None else None

    def list_all(self, conn: sqlite3.Connection) -> list[Season]:
        rows = conn.execute(
            "SELECT id, name, is_active, created_at FROM seasons ORDER BY created_at DESC"
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def get_team_ids(self, conn: sqlite3.Connection, season_id: str) -> list[str]:
        rows = conn.execute(
            "SELECT team_id FROM season_teams WHERE season_id = ? ORDER BY position", (season_id,)
        ).fetchall()
        return [r["team_id"] for r in rows]

    def set_team_ids(self, conn: sqlite3.Connection, season_id: str, team_ids: list[str]) -> None:
        """Replace the season's teams (order preserved)."""
        with transaction(conn):
            conn.execute("DELETE FROM season_teams WHERE season_id = ?", (season_id,))
            conn.executemany(
                "INSERT INTO season_teams (season_id, team_id, position) VALUES (?, ?, ?)",
                [(season_id, tid, pos) for pos, tid in enumerate(team_ids, start=1)],
            )
            conn.execute("UPDATE seasons SET updated_at = ? WHERE id = ?", (_now(), season_id))

    def update_name(self, conn: sqlite3.Connection, season_id: str, name: str) -> None:
        conn.execute("UPDATE seasons SET name = ?, updated_at = ? WHERE id = ?", (name, _now(), season_id))

    def set_active(self, conn: sqlite3.Connection, season_id: str, is_active: bool) -> None:
        conn.execute(
            "UPDATE seasons SET is_active = ?, updated_at = ? WHERE id = ?",
            (1 if is_active else 0, _now(), season_id),
        )

    def deactivate_all(self, conn: sqlite3.Connection, except_id: str | None = None) -> None:
        conn.execute(
            "UPDATE seasons SET is_active = 0, updated_at = ? WHERE is_active = 1 AND id IS NOT ?",
            (_now(), except_id),
        )


# ---------- MatchRepository ----------

_MATCH_COLS = (
    "id, season_id, week, home_team_id, away_team_id, "
    "home_team_points, away_team_points, winning_team_id, created_at"
)


class MatchRepository:
    """CRUD for matches (fixtures and their aggregate points)."""

    def _from_row(self, row: sqlite3.Row) -> Match:
        return Match(
            id=row["id"],
            season_id=row["season_id"],
            week=row["week"],
            home_team_id=row["home_team_id"],
            away_team_id=row["away_team_id"],
            home_team_points=row["home_team_points"],
            away_team_points=row["away_team_points"],
            winning_team_id=row["winning_team_id"],
            created_at=_parse_datetime(row["created_at"]),
        )

    def create(
        self,
        conn: sqlite3.Connection,
        season_id: str,
        home_team_id: str,
        away_team_id: str,
        week: int,
        id: str | None = None,
    ) -> Match:
        mid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            """INSERT INTO matches (id, season_id, week, home_team_id, away_team_id, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (mid, season_id, week, home_team_id, away_team_id, now, now),
        )
        return Match(
            id=mid, season_id=season_id, week=week, home_team_id=home_team_id,
            away_team_id=away_team_id, created_at=_parse_datetime(now),
        )

    def create_many(
        self, conn: sqlite3.Connection, season_id: str, fixtures: Iterable[tuple[str, str, int]]
    ) -> int:
        """Bulk insert (home_team_id, away_team_id, week) fixtures. Returns rows inserted."""
        now = _now()
        rows = [
            (str(uuid.uuid4()), season_id, week, home, away, now, now)
            for home, away, week in fixtures
        ]
        conn.executemany(
            """INSERT INTO matches (id, season_id, week, home_team_id, away_team_id, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            rows,
        )
        return len(rows)

    def get(self, conn: sqlite3.Connection, match_id: str) -> Match | None:
        row = conn.execute(f"SELECT {_MATCH_COLS} FROM matches WHERE id = ?", (match_id,)).fetchone()
        return self._from_row(row) if row is not None else None

    def list_all(self, conn: sqlite3.Connection) -> list[Match]:
        rows = conn.execute(f"SELECT {_MATCH_COLS} FROM matches ORDER BY week, rowid").fetchall()
        return [self._from_row(r) for r in rows]

    def list_by_season(self, conn: sqlite3.Connection, season_id: str) -> list[Match]:
        rows = conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE season_id = ? ORDER BY week, rowid",
            (season_id,),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def list_by_season_and_week(self, conn: sqlite3.Connection, season_id: str, week: int) -> list[Match]:
        rows = conn.execute(
            f"SELECT {_MATCH_COLS} FROM matches WHERE season_id = ? AND week = ? ORDER BY rowid",
            (season_id, week),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def count_by_season(self, conn: sqlite3.Connection, season_id: str) -> int:
        row = conn.execute("SELECT COUNT(*) AS n FROM matches WHERE season_id = ?", (season_id,)).fetchone()
        return int(row["n"])

    def update_fixture(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_team_id: str,
        away_team_id: str,
        week: int,
    ) -> None:
        conn.execute(
            """UPDATE matches SET home_team_id = ?, away_team_id = ?, week = ?, updated_at = ?
               WHERE id = ?""",
            (home_team_id, away_team_id, week, _now(), match_id),
        )

    def update_aggregate(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        home_team_points: int,
        away_team_points: int,
        winning_team_id: str | None,
    ) -> None:
        conn.execute(
            """UPDATE matches SET home_team_points = ?, away_team_points = ?, winning_team_id = ?, updated_at = ?
               WHERE id = ?""",
            (home_team_points, away_team_points, winning_team_id, _now(), match_id),
        )


# ---------- SubstitutionRepository ----------

_SUB_COLS = "id, match_id, original_bowler_id, substitute_bowler_id, team_id, created_at"


class SubstitutionRepository:
    """CRUD for per-match substitutions."""

    def _from_row(self, row: sqlite3.Row) -> Substitution:
        return Substitution(
            id=row["id"],
            match_id=row["match_id"],
            original_bowler_id=row["original_bowler_id"],
            substitute_bowler_id=row["substitute_bowler_id"],
            team_id=row["team_id"],
            created_at=_parse_datetime(row["created_at"]),
        )

    def create(
        self,
        conn: sqlite3.Connection,
        match_id: str,
        original_bowler_id: str,
        substitute_bowler_id: str,
        team_id: str,
        id: str | None = None,
    ) -> Substitution:
        sid = id or str(uuid.uuid4())
        now = _now()
        conn.execute(
            f"INSERT INTO substitutions ({_SUB_COLS}, updated_at) VALUES (?, ?, ?, ?, ?, ?, ?)",
            (sid, match_id, original_bowler_id, substitute_bowler_id, team_id, now, now),
        )
        return Substitution(
            id=sid, match_id=match_id, original_bowler_id=original_bowler_id,
            substitute_bowler_id=substitute_bowler_id, team_id=team_id,
            created_at=_parse_datetime(now),
        )

    def get(self, conn: sqlite3.Connection, substitution_id: str) -> Substitution | None:
        row = conn.execute(
            f"SELECT {_SUB_COLS} FROM substitutions WHERE id = ?", (substitution_id,)
        ).fetchone()
        return self._from_row(row) if row is not None else None

    def list_by_match(self, conn: sqlite3.Connection, match_id: str) -> list[Substitution]:
        rows = conn.execute(
            f"SELECT {_SUB_COLS} FROM substitutions WHERE match_id = ? ORDER BY created_at, rowid",
            (match_id,),
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def delete(self, conn: sqlite3.Connection, substitution_id: str) -> None:
        conn.execute("DELETE FROM substitutions WHERE id = ?", (substitution_id,))


# ---------- GameRepository ----------

_GAME_COLS = (
    "id, match_id, game_number, home_team_score, away_team_score, home_team_strikes, "
    "away_team_strikes, home_team_points, away_team_points, created_at"
)


class GameRepository:
    """CRUD for games. Games are created lazily, one per (match, game_number)."""

    def _from_row(self, row: sqlite3.Row) -> Game:
        return Game(
            id=row["id"],
            match_id=row["match_id"],
            game_number=row["game_number"],
            home_team_score=row["home_team_score"],
            away_team_score=row["away_team_score"],
            home_team_strikes=row["home_team_strikes"],
            away_team_strikes=row["away_team_strikes"],
            home_team_points=row["home_team_points"],
            away_team_points=row["away_team_points"],
            created_at=_parse_datetime(row["created_at"]),
        )

    def get_or_create(self, conn: sqlite3.Connection, match_id: str, game_number: int) -> Game:
        """Idempotent: returns the existing game for game_number or inserts an empty one."""
        now = _now()
        conn.execute(
            """INSERT INTO games (id, match_id, game_number, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(match_id, game_number) DO NOTHING""",
            (str(uuid.uuid4()), match_id, game_number, now, now),
        )
        game = self.get_by_number(conn, match_id, game_number)
        if game is None:
            raise RuntimeError(f"Game {game_number} for match {match_id} missing after insert")
        return game

    def get_by_number(self, conn: sqlite3.Connection, match_id: str, game_number: int) -> Game | None:
        row = conn.execute(
            f"SELECT {_GAME_COLS} FROM games WHERE match_id = ? AND game_number = ?",
            (match_id, game_number),
        ).fetchone()
        return self._from_row(row) if row is not None else None

    def list_by_match(self, conn: sqlite3.Connection, match_id: str) -> list[Game]:
        rows = conn.execute(
            f"SELECT {_GAME_COLS} FROM games WHERE match_id = ? ORDER BY game_number", (match_id,)
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def update_settlement(
        self,
        conn: sqlite3.Connection,
        game_id: str,
        home_team_score: int,
        away_team_score: int,
        home_team_strikes: int,
        away_team_strikes: int,
        home_team_points: int,
        away_team_points: int,
    ) -> None:
        conn.execute(
            """UPDATE games SET home_team_score = ?, away_team_score = ?, home_team_strikes = ?,
                   away_team_strikes = ?, home_team_points = ?, away_team_points = ?, updated_at = ?
               WHERE id = ?""",
            (
                home_team_score, away_team_score, home_team_strikes, away_team_strikes,
                home_team_points, away_team_points, _now(), game_id,
            ),
        )


# ---------- FrameRepository ----------

_FRAME_COLS = "id, game_id, bowler_id, frame_number, ball1_score, ball2_score, ball3_score, is_ball1_split"


class FrameRepository:
    """Frame ledger. Writes are upserts keyed by (game_id, bowler_id, frame_number)."""

    def _from_row(self, row: sqlite3.Row) -> Frame:
        return Frame(
            id=row["id"],
            game_id=row["game_id"],
            bowler_id=row["bowler_id"],
            frame_number=row["frame_number"],
            ball1_score=row["ball1_score"],
            ball2_score=row["ball2_score"],
            ball3_score=row["ball3_score"],
            is_ball1_split=bool(row["is_ball1_split"]),
        )

    def upsert(self, conn: sqlite3.Connection, game_id: str, bowler_id: str, frame: Frame) -> None:
        now = _now()
        conn.execute(
            f"""INSERT INTO frames ({_FRAME_COLS}, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(game_id, bowler_id, frame_number) DO UPDATE SET
                    ball1_score = excluded.ball1_score,
                    ball2_score = excluded.ball2_score,
                    ball3_score = excluded.ball3_score,
                    is_ball1_split = excluded.is_ball1_split,
                    updated_at = excluded.updated_at""",
            (
                str(uuid.uuid4()), game_id, bowler_id, frame.frame_number,
                frame.ball1_score, frame.ball2_score, frame.ball3_score,
                1 if frame.is_ball1_split else 0, now, now,
            ),
        )

    def list_by_game(self, conn: sqlite3.Connection, game_id: str) -> list[Frame]:
        rows = conn.execute(
            f"SELECT {_FRAME_COLS} FROM frames WHERE game_id = ? ORDER BY rowid", (game_id,)
        ).fetchall()
        return [self._from_row(r) for r in rows]

    def list_by_game_and_bowler(self, conn: sqlite3.Connection, game_id: str, bowler_id: str) -> list[Frame]:
        rows = conn.execute(
            f"SELECT {_FRAME_COLS} FROM frames WHERE game_id = ? AND bowler_id = ? ORDER BY frame_number",
            (game_id, bowler_id),
        ).fetchall()
        return [self._from_row(r) for r in rows]
