"""
SQLite schema for league entities.
Migration-friendly: each table created with IF NOT EXISTS.
"""
from __future__ import annotations


def bowlers_schema() -> str:
    return """
    CREATE TABLE IF NOT EXISTS bowlers (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """


def teams_schema() -> str:
    """Teams and their rosters. A bowler may be rostered on several teams."""
    return """
    CREATE TABLE IF NOT EXISTS teams (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS team_bowlers (
        team_id TEXT NOT NULL,
        bowler_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        PRIMARY KEY (team_id, bowler_id),
        FOREIGN KEY (team_id) REFERENCES teams(id) ON DELETE CASCADE,
        FOREIGN KEY (bowler_id) REFERENCES bowlers(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS ix_team_bowlers_bowler ON team_bowlers(bowler_id);
    """


def seasons_schema() -> str:
    """Seasons and participating teams. is_active kept single-valued by SeasonService."""
    return """
    CREATE TABLE IF NOT EXISTS seasons (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        is_active INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    CREATE TABLE IF NOT EXISTS season_teams (
        season_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        PRIMARY KEY (season_id, team_id),
        FOREIGN KEY (season_id) REFERENCES seasons(id) ON DELETE CASCADE,
        FOREIGN KEY (team_id) REFERENCES teams(id) ON DELETE CASCADE
    );
    CREATE INDEX IF NOT EXISTS ix_season_teams_team ON season_teams(team_id);
    """


def matches_schema() -> str:
    """Weekly fixtures. Aggregate columns NULL until a game has been settled."""
    return """
    CREATE TABLE IF NOT EXISTS matches (
        id TEXT PRIMARY KEY,
        season_id TEXT NOT NULL,
        week INTEGER NOT NULL CHECK (week >= 1),
        home_team_id TEXT NOT NULL,
        away_team_id TEXT NOT NULL,
        home_team_points INTEGER,
        away_team_points INTEGER,
        winning_team_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        CHECK (home_team_id <> away_team_id),
        FOREIGN KEY (season_id) REFERENCES seasons(id),
        FOREIGN KEY (home_team_id) REFERENCES teams(id),
        FOREIGN KEY (away_team_id) REFERENCES teams(id),
        FOREIGN KEY (winning_team_id) REFERENCES teams(id) ON DELETE SET NULL
    );
    CREATE INDEX IF NOT EXISTS ix_matches_season_week ON matches(season_id, week);
    """


def substitutions_schema() -> str:
    """One substitution per (match, original) and per (match, substitute)."""
    return """
    CREATE TABLE IF NOT EXISTS substitutions (
        id TEXT PRIMARY KEY,
        match_id TEXT NOT NULL,
        original_bowler_id TEXT NOT NULL,
        substitute_bowler_id TEXT NOT NULL,
        team_id TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (match_id) REFERENCES matches(id),
        FOREIGN KEY (original_bowler_id) REFERENCES bowlers(id),
        FOREIGN KEY (substitute_bowler_id) REFERENCES bowlers(id),
        FOREIGN KEY (team_id) REFERENCES teams(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_substitutions_match_original ON substitutions(match_id, original_bowler_id);
    CREATE UNIQUE INDEX IF NOT EXISTS ix_substitutions_match_substitute ON substitutions(match_id, substitute_bowler_id);
    """


def games_schema() -> str:
    """Games 1-3 per match, created lazily on first score submission."""
    return """
    CREATE TABLE IF NOT EXISTS games (
        id TEXT PRIMARY KEY,
        match_id TEXT NOT NULL,
        game_number INTEGER NOT NULL CHECK (game_number BETWEEN 1 AND 3),
        home_team_score INTEGER,
        away_team_score INTEGER,
        home_team_strikes INTEGER,
        away_team_strikes INTEGER,
        home_team_points INTEGER,
        away_team_points INTEGER,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (match_id) REFERENCES matches(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_games_match_number ON games(match_id, game_number);
    """


def frames_schema() -> str:
    """Frame ledger: one row per (game, bowler, frame_number); resubmission upserts."""
    return """
    CREATE TABLE IF NOT EXISTS frames (
        id TEXT PRIMARY KEY,
        game_id TEXT NOT NULL,
        bowler_id TEXT NOT NULL,
        frame_number INTEGER NOT NULL CHECK (frame_number BETWEEN 1 AND 10),
        ball1_score INTEGER NOT NULL CHECK (ball1_score BETWEEN 0 AND 10),
        ball2_score INTEGER CHECK (ball2_score BETWEEN 0 AND 10),
        ball3_score INTEGER CHECK (ball3_score BETWEEN 0 AND 10),
        is_ball1_split INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (game_id) REFERENCES games(id),
        FOREIGN KEY (bowler_id) REFERENCES bowlers(id)
    );
    CREATE UNIQUE INDEX IF NOT EXISTS ix_frames_game_bowler_number ON frames(game_id, bowler_id, frame_number);
    CREATE INDEX IF NOT EXISTS ix_frames_bowler ON frames(bowler_id);
    """


def all_schema_sql() -> str:
    """Combine all schema DDL for a single execution. Order follows foreign key dependencies."""
    return "\n".join([
        bowlers_schema(),
        teams_schema(),
        seasons_schema(),
        matches_schema(),
        substitutions_schema(),
        games_schema(),
        frames_schema(),
    ])
