"""
Tests for ten-pin scoring: totals, bonuses, derived counts, frame validation.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from bowling_league.errors import IncompleteGameError, InvalidFrameError, InvalidRequestError
from bowling_league.models import Frame
from bowling_league.scoring import (
    ScoringMode,
    check_complete,
    score_game,
    validate_frame,
    validate_frames,
)


def _f(n: int, b1: int, b2: int | None = None, b3: int | None = None) -> Frame:
    return Frame(frame_number=n, ball1_score=b1, ball2_score=b2, ball3_score=b3)


def _open_game(b1: int, b2: int) -> list[Frame]:
    return [_f(n, b1, b2) for n in range(1, 11)]


def _zeros_then(tenth: Frame) -> list[Frame]:
    return [_f(n, 0, 0) for n in range(1, 10)] + [tenth]


class TestTotals:
    def test_perfect_game(self):
        frames = [_f(n, 10) for n in range(1, 10)] + [_f(10, 10, 10, 10)]
        line = score_game(frames, ScoringMode.FINAL)
        assert line.total == 300
        assert line.strikes == 12
        assert line.spares == 0
        assert line.frame_scores == [30] * 10

    def test_all_nine_zero(self):
        line = score_game(_open_game(9, 0), ScoringMode.FINAL)
        assert line.total == 90
        assert line.gutters == 10
        assert line.strikes == 0

    def test_gutter_game(self):
        line = score_game(_open_game(0, 0), ScoringMode.FINAL)
        assert line.total == 0
        assert line.gutters == 20

    def test_spare_then_three(self):
        frames = [_f(1, 5, 5), _f(2, 3, 0)]
        line = score_game(frames, ScoringMode.RUNNING)
        assert line.frame_scores[0] == 13
        assert line.total == 16
        assert line.spares == 1

    def test_all_spares_five_five(self):
        frames = [_f(n, 5, 5) for n in range(1, 10)] + [_f(10, 5, 5, 5)]
        line = score_game(frames, ScoringMode.FINAL)
        assert line.total == 150
        assert line.spares == 10

    def test_double_then_four(self):
        frames = [_f(1, 10), _f(2, 10), _f(3, 4, 2)]
        line = score_game(frames, ScoringMode.RUNNING)
        assert line.frame_scores == [24, 16, 6]
        assert line.total == 46

    def test_strike_in_ninth_then_strike_in_tenth(self):
        frames = [_f(n, 0, 0) for n in range(1, 9)] + [_f(9, 10), _f(10, 10, 7, 2)]
        line = score_game(frames, ScoringMode.FINAL)
        # frame 9 = 10 + tenth ball1 + tenth ball2
        assert line.frame_scores[8] == 27
        assert line.frame_scores[9] == 19
        assert line.total == 46

    def test_tenth_strike_then_spare(self):
        line = score_game(_zeros_then(_f(10, 10, 4, 6)), ScoringMode.FINAL)
        assert line.total == 20
        assert line.strikes == 1
        assert line.spares == 1

    def test_frame_order_does_not_matter(self):
        frames = [_f(2, 3, 0), _f(1, 7, 3)]
        assert score_game(frames, ScoringMode.RUNNING).total == 16

    def test_cumulative_line(self):
        line = score_game([_f(1, 7, 3), _f(2, 3, 0)], ScoringMode.RUNNING)
        assert line.cumulative == [13, 16]
        assert line.to_dict()["cumulative"] == [13, 16]
        assert line.to_dict()["frame_scores"] == [13, 3]

    def test_split_flag_does_not_change_score(self):
        plain = score_game([_f(1, 8, 1)], ScoringMode.RUNNING)
        split = score_game(
            [Frame(frame_number=1, ball1_score=8, ball2_score=1, is_ball1_split=True)],
            ScoringMode.RUNNING,
        )
        assert plain.total == split.total == 9


class TestRunningMode:
    def test_lone_strike_counts_ten(self):
        line = score_game([_f(1, 10)], ScoringMode.RUNNING)
        assert line.total == 10
        assert line.frames_bowled == 1

    def test_open_tenth_ball_counts_what_was_bowled(self):
        line = score_game([_f(10, 7)], ScoringMode.RUNNING)
        assert line.total == 7

    def test_empty_game(self):
        line = score_game([], ScoringMode.RUNNING)
        assert line.total == 0
        assert line.frames_bowled == 0


class TestFinalMode:
    def test_missing_frames_rejected(self):
        with pytest.raises(IncompleteGameError):
            score_game([_f(1, 10)], ScoringMode.FINAL)

    def test_tenth_spare_without_fill_ball_rejected(self):
        with pytest.raises(IncompleteGameError):
            score_game(_zeros_then(_f(10, 6, 4)), ScoringMode.FINAL)

    def test_tenth_strike_needs_two_more_balls(self):
        with pytest.raises(IncompleteGameError):
            score_game(_zeros_then(_f(10, 10, 10)), ScoringMode.FINAL)

    def test_frame_missing_second_ball_rejected(self):
        frames = _open_game(3, 4)
        frames[4] = _f(5, 3)
        with pytest.raises(IncompleteGameError):
            check_complete(frames)

    def test_incomplete_game_is_invalid_request(self):
        assert issubclass(IncompleteGameError, InvalidRequestError)


class TestValidation:
    @pytest.mark.parametrize(
        "frame",
        [
            _f(1, 7, 4),  # pins over ten
            _f(5, 10, 0),  # second ball after strike
            _f(3, 3, 4, 2),  # third ball outside the tenth
            _f(10, 10, 5, 6),  # tenth: refill after strike exceeds ten
            _f(10, 3, 4, 5),  # tenth: third ball without strike or spare
            _f(10, 8, 3),  # tenth: open frame over ten
            _f(11, 3, 4),  # frame number out of range
            _f(0, 3, 4),
            _f(1, 11),  # ball out of range
            _f(1, -1, 0),
            _f(10, 10, None, 5),  # third ball without second
        ],
    )
    def test_invalid_frames(self, frame):
        with pytest.raises(InvalidFrameError):
            validate_frame(frame)

    @pytest.mark.parametrize(
        "frame",
        [
            _f(1, 10),
            _f(4, 0, 10),
            _f(10, 10, 10, 10),
            _f(10, 10, 3, 7),
            _f(10, 7, 3, 10),
            _f(10, 4, 5),
            _f(10, 10),
        ],
    )
    def test_valid_frames(self, frame):
        validate_frame(frame)

    def test_duplicate_frame_numbers_rejected(self):
        with pytest.raises(InvalidFrameError):
            validate_frames([_f(1, 3, 4), _f(1, 2, 2)])

    def test_gutter_then_ten_is_a_spare(self):
        line = score_game([_f(1, 0, 10), _f(2, 5, 0)], ScoringMode.RUNNING)
        assert line.spares == 1
        assert line.gutters == 2
        assert line.frame_scores[0] == 15
