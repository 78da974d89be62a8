"""
REST API for the bowling league backend.
Thin wrappers around the services and persistence.
"""
from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import asynccontextmanager, contextmanager
from typing import Any, AsyncGenerator, Generator

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field

from bowling_league.errors import InvalidRequestError, NotFoundError
from bowling_league.models import Bowler, Frame, Team
from bowling_league.persistence import (
    BowlerRepository,
    TeamRepository,
    get_connection,
    init_db,
)
from bowling_league.persistence.db import get_db_path, transaction
from bowling_league.scoring import ScoringMode
from bowling_league.services import (
    BowlerScores,
    MatchService,
    ScoreSubmission,
    SeasonService,
    StatsService,
)

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "BOWLING_LOG_LEVEL"
CORS_ORIGINS_ENV = "BOWLING_CORS_ORIGINS"

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://0.0.0.0:5173",
    "http://[::1]:5173",
]


def _cors_origins() -> list[str]:
    raw = os.environ.get(CORS_ORIGINS_ENV, "").strip()
    if not raw:
        return list(_DEFAULT_CORS_ORIGINS)
    return [o.strip() for o in raw.split(",") if o.strip()]


def _configure_logging() -> None:
    level = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger().setLevel(level)


@contextmanager
def db_conn() -> Generator:
    """Yield a DB connection, ensure close on exit."""
    conn = get_connection()
    try:
        yield conn
    finally:
        conn.close()


@contextmanager
def http_errors() -> Generator:
    """Translate domain errors raised inside the block into HTTP errors."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ---------- Lifespan ----------
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    _configure_logging()
    init_db(db_path=get_db_path())
    logger.info("Bowling league API ready (CORS origins: %s)", ", ".join(_cors_origins()))
    yield


# ---------- FastAPI app ----------
app = FastAPI(
    title="Bowling League API",
    description="Scoring, schedules and season statistics for a bowling league",
    version="0.1.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)

bowler_repo = BowlerRepository()
team_repo = TeamRepository()
match_service = MatchService()
season_service = SeasonService(match_service)
stats_service = StatsService()


# ---------- Request/Response models ----------


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateBowlerRequest(_CamelModel):
    name: str = Field(..., min_length=1, max_length=200)


class CreateTeamRequest(_CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    bowler_ids: list[str] = Field(default_factory=list, alias="bowlerIds")


class CreateSeasonRequest(_CamelModel):
    name: str = Field(..., min_length=1, max_length=200)
    team_ids: list[str] = Field(default_factory=list, alias="teamIds")
    is_active: bool = Field(False, alias="isActive")


class UpdateBowlerRequest(_CamelModel):
    name: str | None = Field(None, min_length=1, max_length=200)


class UpdateTeamRequest(_CamelModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    bowler_ids: list[str] | None = Field(None, alias="bowlerIds")


class UpdateSeasonRequest(_CamelModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    team_ids: list[str] | None = Field(None, alias="teamIds")
    is_active: bool | None = Field(None, alias="isActive")


class UpdateMatchRequest(_CamelModel):
    home_team_id: str | None = Field(None, alias="homeTeamId")
    away_team_id: str | None = Field(None, alias="awayTeamId")
    week: int | None = Field(None, ge=1)


class CreateMatchRequest(_CamelModel):
    season_id: str = Field(..., alias="seasonId")
    home_team_id: str = Field(..., alias="homeTeamId")
    away_team_id: str = Field(..., alias="awayTeamId")
    week: int = Field(..., ge=1)


class CreateSubstitutionRequest(_CamelModel):
    original_bowler_id: str = Field(..., alias="originalBowlerId")
    substitute_bowler_id: str = Field(..., alias="substituteBowlerId")
    team_id: str = Field(..., alias="teamId")


class FrameInput(_CamelModel):
    frame_number: int = Field(..., ge=1, le=10, alias="frameNumber")
    ball1_score: int = Field(..., ge=0, le=10, alias="ball1Score")
    ball2_score: int | None = Field(None, ge=0, le=10, alias="ball2Score")
    ball3_score: int | None = Field(None, ge=0, le=10, alias="ball3Score")
    is_ball1_split: bool = Field(False, alias="isBall1Split")

    def to_frame(self) -> Frame:
        return Frame(
            frame_number=self.frame_number,
            ball1_score=self.ball1_score,
            ball2_score=self.ball2_score,
            ball3_score=self.ball3_score,
            is_ball1_split=self.is_ball1_split,
        )


class BowlerScoresInput(_CamelModel):
    bowler_id: str = Field(..., alias="bowlerId")
    frames: list[FrameInput] = Field(default_factory=list)


class SubmitScoresRequest(_CamelModel):
    game_number: int = Field(..., ge=1, le=3, alias="gameNumber")
    mode: ScoringMode = Field(ScoringMode.RUNNING, description="'running' accepts partial games; 'final' requires all ten frames")
    bowlers: list[BowlerScoresInput] = Field(default_factory=list)

    def to_submission(self) -> ScoreSubmission:
        return ScoreSubmission(
            game_number=self.game_number,
            bowlers=[
                BowlerScores(bowler_id=b.bowler_id, frames=[f.to_frame() for f in b.frames])
                for b in self.bowlers
            ],
        )


class AutofillRequest(_CamelModel):
    seed: int | None = Field(None, description="RNG seed for deterministic demo data")


# ---------- Bowlers ----------


def _require_bowler(conn: sqlite3.Connection, bowler_id: str) -> Bowler:
    bowler = bowler_repo.get(conn, bowler_id)
    if bowler is None:
        raise NotFoundError(f"Bowler not found: {bowler_id}")
    return bowler


@app.post("/bowlers")
def create_bowler(req: CreateBowlerRequest) -> dict[str, Any]:
    with db_conn() as conn:
        return bowler_repo.create(conn, req.name).to_dict()


@app.get("/bowlers")
def list_bowlers() -> dict[str, Any]:
    with db_conn() as conn:
        return {"bowlers": [b.to_dict() for b in bowler_repo.list_all(conn)]}


@app.get("/bowlers/{bowler_id}")
def get_bowler(bowler_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return _require_bowler(conn, bowler_id).to_dict()


@app.patch("/bowlers/{bowler_id}")
def update_bowler(bowler_id: str, req: UpdateBowlerRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        _require_bowler(conn, bowler_id)
        if req.name is not None:
            bowler_repo.update_name(conn, bowler_id, req.name)
        return _require_bowler(conn, bowler_id).to_dict()


# ---------- Teams ----------


def _require_team(conn: sqlite3.Connection, team_id: str) -> Team:
    team = team_repo.get(conn, team_id)
    if team is None:
        raise NotFoundError(f"Team not found: {team_id}")
    return team


def _check_roster(conn: sqlite3.Connection, bowler_ids: list[str]) -> None:
    if len(set(bowler_ids)) != len(bowler_ids):
        raise InvalidRequestError("Bowler ids must be unique")
    known = bowler_repo.get_many(conn, bowler_ids)
    for bid in bowler_ids:
        if bid not in known:
            raise NotFoundError(f"Bowler not found: {bid}")


@app.post("/teams")
def create_team(req: CreateTeamRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        _check_roster(conn, req.bowler_ids)
        return team_repo.create(conn, req.name, bowler_ids=req.bowler_ids).to_dict()


@app.get("/teams")
def list_teams() -> dict[str, Any]:
    with db_conn() as conn:
        return {"teams": [t.to_dict() for t in team_repo.list_all(conn)]}


@app.get("/teams/{team_id}")
def get_team(team_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return _require_team(conn, team_id).to_dict()


@app.patch("/teams/{team_id}")
def update_team(team_id: str, req: UpdateTeamRequest) -> dict[str, Any]:
    """Rename and/or replace the roster. Later settlements and stats read the new roster."""
    with db_conn() as conn, http_errors():
        _require_team(conn, team_id)
        if req.bowler_ids is not None:
            _check_roster(conn, req.bowler_ids)
        with transaction(conn):
            if req.name is not None:
                team_repo.update_name(conn, team_id, req.name)
            if req.bowler_ids is not None:
                team_repo.set_roster(conn, team_id, req.bowler_ids)
        return _require_team(conn, team_id).to_dict()


# ---------- Seasons ----------


@app.post("/seasons")
def create_season(req: CreateSeasonRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return season_service.create_season(
            conn, req.name, team_ids=req.team_ids, is_active=req.is_active
        ).to_dict()


@app.get("/seasons")
def list_seasons() -> dict[str, Any]:
    with db_conn() as conn:
        return {"seasons": [s.to_dict() for s in season_service.list_seasons(conn)]}


# Registered before /seasons/{season_id} so "active" is not taken for an id.
@app.get("/seasons/active")
def get_active_season() -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return season_service.get_active_season(conn).to_dict()


@app.get("/seasons/{season_id}")
def get_season(season_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return season_service.get_season(conn, season_id).to_dict()


@app.patch("/seasons/{season_id}")
def update_season(season_id: str, req: UpdateSeasonRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return season_service.update_season(
            conn, season_id, name=req.name, team_ids=req.team_ids, is_active=req.is_active
        ).to_dict()


@app.post("/seasons/{season_id}/activate")
def activate_season(season_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return season_service.activate_season(conn, season_id).to_dict()


@app.post("/seasons/{season_id}/generate-schedule")
def generate_schedule(season_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return season_service.generate_schedule(conn, season_id).to_dict()


@app.get("/seasons/{season_id}/stats")
def get_season_stats(season_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return stats_service.season_stats(conn, season_id).to_dict()


@app.post("/seasons/{season_id}/weeks/{week}/autofill")
def autofill_week(season_id: str, week: int, req: AutofillRequest | None = None) -> dict[str, Any]:
    seed = req.seed if req is not None else None
    with db_conn() as conn, http_errors():
        matches = season_service.autofill_week(conn, season_id, week, seed=seed)
        return {"season_id": season_id, "week": week, "matches": [m.to_dict() for m in matches]}


# ---------- Matches ----------


@app.post("/matches")
def create_match(req: CreateMatchRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return match_service.create_match(
            conn, req.season_id, req.home_team_id, req.away_team_id, req.week
        ).to_dict()


@app.get("/matches")
def list_matches(season_id: str | None = Query(None, description="Only matches of this season")) -> dict[str, Any]:
    with db_conn() as conn:
        return {"matches": [m.to_dict() for m in match_service.list_matches(conn, season_id)]}


@app.get("/matches/{match_id}")
def get_match(match_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return match_service.get_match(conn, match_id).to_dict()


@app.patch("/matches/{match_id}")
def update_match(match_id: str, req: UpdateMatchRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return match_service.update_match(
            conn, match_id, home_team_id=req.home_team_id, away_team_id=req.away_team_id, week=req.week
        ).to_dict()


@app.get("/matches/{match_id}/expected-bowlers")
def get_expected_bowlers(match_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return {"match_id": match_id, "bowlers": match_service.expected_bowlers(conn, match_id)}


@app.get("/matches/{match_id}/substitutions")
def list_substitutions(match_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return {"substitutions": [s.to_dict() for s in match_service.list_substitutions(conn, match_id)]}


@app.post("/matches/{match_id}/substitutions")
def create_substitution(match_id: str, req: CreateSubstitutionRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        return match_service.create_substitution(
            conn, match_id, req.original_bowler_id, req.substitute_bowler_id, req.team_id
        ).to_dict()


@app.delete("/matches/{match_id}/substitutions/{substitution_id}")
def delete_substitution(match_id: str, substitution_id: str) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        match_service.delete_substitution(conn, match_id, substitution_id)
        return {"deleted": substitution_id}


@app.post("/matches/{match_id}/submit-scores")
def submit_scores(match_id: str, req: SubmitScoresRequest) -> dict[str, Any]:
    with db_conn() as conn, http_errors():
        result = match_service.submit_scores(conn, match_id, req.to_submission(), req.mode)
        return result.to_dict()


# ---------- Run with: uvicorn bowling_league.api:app --reload ----------
