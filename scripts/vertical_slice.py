#!/usr/bin/env python3
"""
Vertical slice: Create bowlers and teams → Schedule a season → Bowl week 1 → Print standings.
Run from project root: python3 scripts/vertical_slice.py [seed]
"""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

# Ensure project root on path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bowling_league.persistence import BowlerRepository, TeamRepository, get_connection, init_db
from bowling_league.persistence.db import set_db_path
from bowling_league.services import SeasonService, StatsService
from bowling_league.services.scheduling import bye_weeks

TEAMS = {
    "Gutter Kings": ["Ada", "Ben", "Cal"],
    "Split Happens": ["Dee", "Eli", "Fay"],
    "Pin Pals": ["Gus", "Hal", "Ivy"],
    "Lane Changers": ["Jo", "Kit", "Lou"],
    "Spare Parts": ["Max", "Ned", "Oz"],
}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    seed = int(sys.argv[1]) if len(sys.argv) > 1 else 2024

    # Use data/vertical_slice.db for demo (distinct from bowling.db)
    db_path = PROJECT_ROOT / "data" / "vertical_slice.db"
    if db_path.exists():
        db_path.unlink()
    set_db_path(db_path)
    init_db(db_path=db_path)

    conn = get_connection()
    try:
        bowler_repo = BowlerRepository()
        team_repo = TeamRepository()
        seasons = SeasonService()

        # 1. Bowlers and teams
        team_ids = []
        for team_name, names in TEAMS.items():
            roster = [bowler_repo.create(conn, name).id for name in names]
            team = team_repo.create(conn, team_name, bowler_ids=roster)
            team_ids.append(team.id)
            print(f"Created team: {team.name} ({len(roster)} bowlers)")

        # 2. Season and schedule (odd field: one bye per week)
        season = seasons.create_season(conn, "Demo Season", team_ids, is_active=True)
        season = seasons.generate_schedule(conn, season.id)
        names = {t.id: t.name for t in season.teams}
        print(f"Scheduled {len(season.matches)} matches")
        for tid, weeks in bye_weeks(team_ids).items():
            print(f"  {names[tid]} bye in week(s) {weeks}")

        # 3. Bowl week 1
        for m in seasons.autofill_week(conn, season.id, 1, seed=seed):
            games = ", ".join(f"{g.home_team_score}-{g.away_team_score}" for g in m.games)
            print(
                f"Week 1: {names[m.home_team_id]} {m.home_team_points} - "
                f"{m.away_team_points} {names[m.away_team_id]} ({games})"
            )

        # 4. Standings
        stats = StatsService().season_stats(conn, season.id)
        print(json.dumps(stats.to_dict()["teams"], indent=2))
    finally:
        conn.close()


if __name__ == "__main__":
    main()
