import random

import pytest

from core.exceptions import InvalidScore
from models import Modality
from services.scoring_service import normalize_score, random_result, validate_score


def test_points_modality_passes_raw_scores_through():
    assert normalize_score(9, 7, Modality.POINTS_16) == (9, 7)
    assert normalize_score(0, 0, Modality.POINTS_16) == (0, 0)
    assert normalize_score(16, 0, Modality.POINTS_16) == (16, 0)


@pytest.mark.parametrize("raw, points", [
    ((4, 0), (16, 0)),
    ((4, 1), (13, 3)),
    ((4, 2), (10, 6)),
    ((4, 3), (9, 7)),
    ((4, 4), (8, 8)),
    ((0, 4), (0, 16)),
    ((1, 4), (3, 13)),
    ((2, 4), (6, 10)),
    ((3, 4), (7, 9)),
])
def test_games_modality_uses_the_conversion_table(raw, points):
    assert normalize_score(*raw, Modality.GAMES_4) == points


def test_games_modality_scales_other_results_to_16():
    assert normalize_score(3, 1, Modality.GAMES_4) == (12, 4)
    assert normalize_score(2, 1, Modality.GAMES_4) == (11, 5)
    assert normalize_score(1, 1, Modality.GAMES_4) == (8, 8)
    # 0.5 rounds up
    assert normalize_score(1, 31, Modality.GAMES_4) == (1, 15)


def test_games_modality_unplayed_is_zero():
    assert normalize_score(0, 0, Modality.GAMES_4) == (0, 0)


def test_games_modality_always_distributes_16_points():
    for raw1 in range(0, 9):
        for raw2 in range(0, 9):
            if raw1 == raw2 == 0:
                continue
            points1, points2 = normalize_score(raw1, raw2, Modality.GAMES_4)
            assert points1 + points2 == 16
            assert points1 >= 0 and points2 >= 0


def test_validate_rejects_more_than_16_points():
    with pytest.raises(InvalidScore):
        validate_score(10, 7, Modality.POINTS_16)
    validate_score(9, 7, Modality.POINTS_16)
    validate_score(0, 0, Modality.POINTS_16)


def test_validate_rejects_negative_scores():
    with pytest.raises(InvalidScore):
        validate_score(-1, 4, Modality.GAMES_4)
    with pytest.raises(InvalidScore):
        validate_score(3, -2, Modality.POINTS_16)


def test_random_result_is_valid_for_each_modality():
    rng = random.Random(7)
    for _ in range(50):
        s1, s2 = random_result(Modality.POINTS_16, rng)
        assert s1 + s2 == 16
        validate_score(s1, s2, Modality.POINTS_16)

        g1, g2 = random_result(Modality.GAMES_4, rng)
        assert 4 in (g1, g2)
        assert max(g1, g2) == 4 and min(g1, g2) <= 3
