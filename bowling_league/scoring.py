"""
Ten-pin scoring for one bowler's game.
Turns per-ball pin counts into a game total and derived counts (strikes, spares,
gutters). Pure functions: no persistence, no I/O.

Contract: score_game() trusts its input. Run validate_frames() first; values that
break the pins-standing rules produce a wrong (but non-crashing) total, and are
never clamped here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable

from bowling_league.errors import IncompleteGameError, InvalidFrameError
from bowling_league.models import Frame

# ---------- Lane constants ----------
PINS = 10
FRAMES_PER_GAME = 10
TENTH_FRAME = 10


class ScoringMode(str, Enum):
    """
    RUNNING: best-effort total for a partially bowled game; bonus balls that have
    not been bowled yet count 0.
    FINAL: game must be fully bowled; anything missing raises IncompleteGameError.
    """
    RUNNING = "running"
    FINAL = "final"


@dataclass
class GameLine:
    """Scored result for one bowler in one game."""
    total: int = 0
    strikes: int = 0
    spares: int = 0
    gutters: int = 0
    frames_bowled: int = 0
    frame_scores: list[int] = field(default_factory=list)  # per-frame contribution, frame order

    @property
    def cumulative(self) -> list[int]:
        """Running total after each bowled frame (scorecard line)."""
        out: list[int] = []
        running = 0
        for s in self.frame_scores:
            running += s
            out.append(running)
        return out

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "strikes": self.strikes,
            "spares": self.spares,
            "gutters": self.gutters,
            "frames_bowled": self.frames_bowled,
            "frame_scores": list(self.frame_scores),
            "cumulative": self.cumulative,
        }


# ---------- Validation ----------


def _check_ball(frame_number: int, label: str, value: int | None) -> None:
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= PINS:
        raise InvalidFrameError(f"Frame {frame_number}: {label} must be 0-{PINS} (got {value!r})")


def validate_frame(frame: Frame) -> None:
    """Raise InvalidFrameError if a single frame breaks the pins-standing rules."""
    n = frame.frame_number
    if not isinstance(n, int) or not 1 <= n <= FRAMES_PER_GAME:
        raise InvalidFrameError(f"frame_number must be 1-{FRAMES_PER_GAME} (got {n!r})")
    b1, b2, b3 = frame.ball1_score, frame.ball2_score, frame.ball3_score
    if b1 is None:
        raise InvalidFrameError(f"Frame {n}: ball1 is required")
    _check_ball(n, "ball1", b1)
    _check_ball(n, "ball2", b2)
    _check_ball(n, "ball3", b3)
    if b3 is not None and b2 is None:
        raise InvalidFrameError(f"Frame {n}: ball3 given without ball2")

    if n != TENTH_FRAME:
        if b3 is not None:
            raise InvalidFrameError(f"Frame {n}: only the tenth frame has a third ball")
        if b1 == PINS and b2 is not None:
            raise InvalidFrameError(f"Frame {n}: no second ball after a strike")
        if b2 is not None and b1 + b2 > PINS:
            raise InvalidFrameError(f"Frame {n}: {b1} + {b2} exceeds {PINS} pins")
        return

    # Tenth frame: pins are reset after a strike or a spare.
    if b2 is None:
        return
    if b1 != PINS and b1 + b2 > PINS:
        raise InvalidFrameError(f"Frame {n}: {b1} + {b2} exceeds {PINS} pins")
    if b3 is None:
        return
    if b1 != PINS and b1 + b2 != PINS:
        raise InvalidFrameError(f"Frame {n}: third ball only after a strike or spare")
    if b1 == PINS and b2 != PINS and b2 + b3 > PINS:
        raise InvalidFrameError(f"Frame {n}: {b2} + {b3} exceeds {PINS} pins")


def validate_frames(frames: Iterable[Frame]) -> None:
    """Validate every frame and reject duplicate frame numbers."""
    seen: set[int] = set()
    for f in frames:
        validate_frame(f)
        if f.frame_number in seen:
            raise InvalidFrameError(f"Frame {f.frame_number} submitted more than once")
        seen.add(f.frame_number)


def _frame_is_complete(frame: Frame) -> bool:
    b1, b2, b3 = frame.ball1_score, frame.ball2_score, frame.ball3_score
    if frame.frame_number != TENTH_FRAME:
        return b1 == PINS or b2 is not None
    if b2 is None:
        return False
    if b1 == PINS or b1 + b2 == PINS:
        return b3 is not None
    return True


def check_complete(frames: Iterable[Frame]) -> None:
    """Raise IncompleteGameError unless frames 1-10 are all present and fully bowled."""
    by_number = {f.frame_number: f for f in frames}
    missing = [n for n in range(1, FRAMES_PER_GAME + 1) if n not in by_number]
    if missing:
        raise IncompleteGameError(f"Game is missing frames: {missing}")
    unfinished = [n for n, f in sorted(by_number.items()) if not _frame_is_complete(f)]
    if unfinished:
        raise IncompleteGameError(f"Frames not fully bowled: {unfinished}")


# ---------- Scoring ----------


def _strike_bonus(by_number: dict[int, Frame], frame_number: int) -> int:
    """Next two balls after a strike in frames 1-9. Unbowled balls count 0."""
    nxt = by_number.get(frame_number + 1)
    if nxt is None:
        return 0
    if nxt.ball1_score == PINS and nxt.frame_number != TENTH_FRAME:
        after = by_number.get(frame_number + 2)
        return PINS + (after.ball1_score if after is not None else 0)
    return nxt.ball1_score + (nxt.ball2_score or 0)


def _spare_bonus(by_number: dict[int, Frame], frame_number: int) -> int:
    nxt = by_number.get(frame_number + 1)
    return nxt.ball1_score if nxt is not None else 0


def _frame_score(by_number: dict[int, Frame], frame: Frame) -> int:
    b1 = frame.ball1_score
    b2 = frame.ball2_score or 0
    if frame.frame_number == TENTH_FRAME:
        return b1 + b2 + (frame.ball3_score or 0)
    if b1 == PINS:
        return PINS + _strike_bonus(by_number, frame.frame_number)
    if b1 + b2 == PINS:
        return PINS + _spare_bonus(by_number, frame.frame_number)
    return b1 + b2


def _count_strikes(frame: Frame) -> int:
    count = 1 if frame.ball1_score == PINS else 0
    if frame.frame_number == TENTH_FRAME:
        if frame.ball2_score == PINS:
            count += 1
        if frame.ball3_score == PINS:
            count += 1
    return count


def _count_spares(frame: Frame) -> int:
    b1, b2, b3 = frame.ball1_score, frame.ball2_score, frame.ball3_score
    count = 0
    if b1 != PINS and b2 is not None and b1 + b2 == PINS:
        count += 1
    if (
        frame.frame_number == TENTH_FRAME
        and b1 == PINS
        and b2 is not None
        and b2 != PINS
        and b3 is not None
        and b2 + b3 == PINS
    ):
        count += 1
    return count


def _count_gutters(frame: Frame) -> int:
    balls = (frame.ball1_score, frame.ball2_score, frame.ball3_score)
    return sum(1 for b in balls if b is not None and b == 0)


def score_game(frames: Iterable[Frame], mode: ScoringMode) -> GameLine:
    """
    Score one bowler's frames for one game. Frames may arrive in any order and
    need not be all ten in RUNNING mode. mode is required so callers decide
    whether an incomplete game may be persisted as a total.
    """
    ordered = sorted(frames, key=lambda f: f.frame_number)
    if mode == ScoringMode.FINAL:
        check_complete(ordered)
    by_number = {f.frame_number: f for f in ordered}
    line = GameLine(frames_bowled=len(ordered))
    for f in ordered:
        score = _frame_score(by_number, f)
        line.frame_scores.append(score)
        line.total += score
        line.strikes += _count_strikes(f)
        line.spares += _count_spares(f)
        line.gutters += _count_gutters(f)
    return line
