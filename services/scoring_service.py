"""
Scoring service: converts a raw match result into ranking points

Pure calculation, no database access.
"""
from typing import Tuple

from models import Modality
from core.exceptions import InvalidScore

TOTAL_POINTS = 16

# Short-set results where one side reached 4 games
GAMES_TABLE = {
    (4, 0): (16, 0),
    (4, 1): (13, 3),
    (4, 2): (10, 6),
    (4, 3): (9, 7),
    (4, 4): (8, 8),
}


def normalize_score(raw1: int, raw2: int, modality: Modality) -> Tuple[int, int]:
    """
    Convert raw team scores into ranking points

    "16 puntos": points are the raw scores.

    "4 games":
    ┌──────────┬──────────┐
    │ games    │ points   │
    ├──────────┼──────────┤
    │ 4 - 0    │ 16 - 0   │
    │ 4 - 1    │ 13 - 3   │
    │ 4 - 2    │ 10 - 6   │
    │ 4 - 3    │  9 - 7   │
    │ 4 - 4    │  8 - 8   │
    └──────────┴──────────┘
    plus the reversed results. Any other result is scaled to 16:
    points1 = round(raw1 / (raw1 + raw2) * 16), points2 = 16 - points1.
    0 - 0 (unplayed) is 0 - 0.

    Params:
        raw1: team 1 raw score (>= 0)
        raw2: team 2 raw score (>= 0)
        modality: tournament modality

    Returns:
        (points1, points2)
    """
    if modality == Modality.POINTS_16:
        return raw1, raw2

    if raw1 == 0 and raw2 == 0:
        return 0, 0

    if (raw1, raw2) in GAMES_TABLE:
        return GAMES_TABLE[(raw1, raw2)]
    if (raw2, raw1) in GAMES_TABLE:
        points2, points1 = GAMES_TABLE[(raw2, raw1)]
        return points1, points2

    # round half up, in integers
    total = raw1 + raw2
    points1 = (2 * TOTAL_POINTS * raw1 + total) // (2 * total)
    return points1, TOTAL_POINTS - points1


def validate_score(raw1: int, raw2: int, modality: Modality) -> None:
    """
    Reject raw scores the modality does not allow

    Raises:
        InvalidScore: negative score, or sum above 16 for "16 puntos"
    """
    if raw1 < 0 or raw2 < 0:
        raise InvalidScore(f"Scores cannot be negative, got {raw1}-{raw2}")

    if modality == Modality.POINTS_16 and raw1 + raw2 > TOTAL_POINTS:
        raise InvalidScore(
            f"Scores for '{modality.value}' cannot add up to more than {TOTAL_POINTS}, "
            f"got {raw1}-{raw2}"
        )


def random_result(modality: Modality, rng) -> Tuple[int, int]:
    """
    Draw a plausible finished result, used by tournament simulation

    "16 puntos": s1 in [0, 16], s2 = 16 - s1
    "4 games": one side wins 4, the other 0..3
    """
    if modality == Modality.POINTS_16:
        s1 = rng.randint(0, TOTAL_POINTS)
        return s1, TOTAL_POINTS - s1

    loser = rng.randint(0, 3)
    if rng.random() < 0.5:
        return 4, loser
    return loser, 4
