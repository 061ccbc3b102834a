import random

import pytest

from services.history_service import InteractionHistory, ParticipationRow, build_history
from services.pairing_service import (
    PARTNER_PENALTY,
    Lineup,
    best_split,
    candidate_splits,
    lineup_penalty,
    partition_penalty,
    partition_pool,
)


def _previous_round():
    """Round 1 of an 8-player event: (1,2) v (3,4) and (5,6) v (7,8)"""
    rows = []
    for match_id, (a, b, c, d) in ((1, (1, 2, 3, 4)), (2, (5, 6, 7, 8))):
        rows += [
            ParticipationRow(match_id, a, b, 1),
            ParticipationRow(match_id, b, a, 1),
            ParticipationRow(match_id, c, d, 2),
            ParticipationRow(match_id, d, c, 2),
        ]
    return build_history(rows)


def test_lineup_penalty_counts_partners_and_opponents():
    history = _previous_round()

    # same teams as before: 2 repeated partnerships + 4 repeated oppositions
    assert lineup_penalty(Lineup((1, 2), (3, 4)), history) == 2 * 1000 + 4 * 100
    # new partners, but 1 faces 4 and 3 faces 2 again
    assert lineup_penalty(Lineup((1, 3), (2, 4)), history) == 200
    # nobody met before
    assert lineup_penalty(Lineup((1, 5), (2, 6)), history) == 0
    # 1 vs 3 and 5 vs 7 again
    assert lineup_penalty(Lineup((1, 5), (3, 7)), history) == 200


def test_empty_history_has_no_penalty():
    history = InteractionHistory()
    assert lineup_penalty(Lineup((1, 2), (3, 4)), history) == 0


def test_partition_covers_every_player_once():
    pool = list(range(1, 13))
    lineups, penalty = partition_pool(pool, InteractionHistory(), random.Random(3))

    assert len(lineups) == 3
    assert penalty == 0
    players = [player for lineup in lineups for player in lineup.players]
    assert sorted(players) == pool


def test_partition_avoids_repeated_partners():
    history = _previous_round()
    lineups, penalty = partition_pool(list(range(1, 9)), history, random.Random(11))

    assert penalty < PARTNER_PENALTY
    assert penalty == partition_penalty(lineups, history)
    for lineup in lineups:
        for a, b in (lineup.team1, lineup.team2):
            assert not history.have_partnered(a, b)


def test_partition_is_reproducible_with_a_seed():
    history = _previous_round()
    first = partition_pool(list(range(1, 9)), history, random.Random(99))
    second = partition_pool(list(range(1, 9)), history, random.Random(99))
    assert first == second


@pytest.mark.parametrize("size", [0, 3, 6])
def test_partition_rejects_pools_not_multiple_of_4(size):
    with pytest.raises(ValueError):
        partition_pool(list(range(size)), InteractionHistory(), random.Random(1))


def test_candidate_splits_are_the_three_pairings():
    splits = candidate_splits([1, 2, 3, 4])
    teams = {frozenset([frozenset(s.team1), frozenset(s.team2)]) for s in splits}
    assert len(teams) == 3


def test_best_split_avoids_previous_partners():
    rows = [
        ParticipationRow(1, 1, 2, 1),
        ParticipationRow(1, 2, 1, 1),
        ParticipationRow(2, 1, 3, 1),
        ParticipationRow(2, 3, 1, 1),
    ]
    history = build_history(rows)

    lineup, penalty = best_split([1, 2, 3, 4], history, random.Random(5))
    assert {frozenset(lineup.team1), frozenset(lineup.team2)} == {frozenset({1, 4}), frozenset({2, 3})}
    assert penalty == 0


def test_best_split_breaks_ties_at_random():
    seen = set()
    for seed in range(60):
        lineup, _ = best_split([1, 2, 3, 4], InteractionHistory(), random.Random(seed))
        seen.add(frozenset([frozenset(lineup.team1), frozenset(lineup.team2)]))
    assert len(seen) == 3


def test_build_history_is_symmetric():
    history = _previous_round()

    assert history.have_partnered(1, 2) and history.have_partnered(2, 1)
    assert history.have_opposed(1, 3) and history.have_opposed(4, 2)
    assert not history.have_opposed(1, 2)
    assert not history.have_opposed(1, 5)
    assert history.opponents[7] == {5, 6}
