"""
Pairing service: splits selected players into balanced doubles matches

Penalty of a lineup (lower is better):
- 1000 per team whose two members already partnered this tournament
- 100 per cross-team pair that already faced each other

Two modes:
- partition_pool: randomized local search over a pool of 4k players
- best_split: exhaustive over the 3 team splits of exactly 4 players
"""
import random
from typing import List, NamedTuple, Sequence, Tuple
import logging

from services.history_service import InteractionHistory

logger = logging.getLogger(__name__)

PARTNER_PENALTY = 1000
OPPONENT_PENALTY = 100
MIN_TRIALS = 100


class Lineup(NamedTuple):
    team1: Tuple[int, int]
    team2: Tuple[int, int]

    @property
    def players(self) -> Tuple[int, int, int, int]:
        return self.team1 + self.team2


def lineup_penalty(lineup: Lineup, history: InteractionHistory) -> int:
    """Penalty of a single match lineup"""
    penalty = 0
    for a, b in (lineup.team1, lineup.team2):
        if history.have_partnered(a, b):
            penalty += PARTNER_PENALTY

    for a in lineup.team1:
        for b in lineup.team2:
            if history.have_opposed(a, b):
                penalty += OPPONENT_PENALTY

    return penalty


def partition_penalty(lineups: Sequence[Lineup], history: InteractionHistory) -> int:
    return sum(lineup_penalty(lineup, history) for lineup in lineups)


def _slice_into_lineups(players: Sequence[int]) -> List[Lineup]:
    return [
        Lineup((players[i], players[i + 1]), (players[i + 2], players[i + 3]))
        for i in range(0, len(players) - 3, 4)
    ]


def partition_pool(
    pool: Sequence[int],
    history: InteractionHistory,
    rng: random.Random,
    trials: int = MIN_TRIALS
) -> Tuple[List[Lineup], int]:
    """
    Partition a pool of 4k players into k matches with low repetition

    Flow:
    1. shuffle the pool, slice it into consecutive groups of 4
       (first two vs last two)
    2. score the partition, keep the lowest seen
    3. stop early on a zero-penalty partition, otherwise after `trials`

    Best effort: not an exact minimizer.

    Params:
        pool: player ids, length must be a multiple of 4
        history: partner / opponent history of the tournament
        rng: random source
        trials: search budget, raised to at least 100

    Returns:
        (lineups, penalty); lineups[i] is meant for court i + 1
    """
    if len(pool) < 4 or len(pool) % 4 != 0:
        raise ValueError(f"Pool size must be a positive multiple of 4, got {len(pool)}")

    best_lineups: List[Lineup] = []
    best_penalty = None

    for _ in range(max(trials, MIN_TRIALS)):
        shuffled = list(pool)
        rng.shuffle(shuffled)
        lineups = _slice_into_lineups(shuffled)
        penalty = partition_penalty(lineups, history)

        if best_penalty is None or penalty < best_penalty:
            best_penalty = penalty
            best_lineups = lineups
            if penalty == 0:
                break

    logger.debug(f"Partitioned {len(pool)} players into {len(best_lineups)} matches, penalty={best_penalty}")
    return best_lineups, best_penalty


def candidate_splits(players: Sequence[int]) -> List[Lineup]:
    """The 3 ways to split 4 players into two teams of 2"""
    if len(players) != 4:
        raise ValueError(f"A split needs exactly 4 players, got {len(players)}")
    a, b, c, d = players
    return [
        Lineup((a, b), (c, d)),
        Lineup((a, c), (b, d)),
        Lineup((a, d), (b, c)),
    ]


def best_split(
    players: Sequence[int],
    history: InteractionHistory,
    rng: random.Random
) -> Tuple[Lineup, int]:
    """
    Pick the lowest-penalty split of exactly 4 players

    Exact ties are broken uniformly at random.
    """
    scored = [(lineup_penalty(lineup, history), lineup) for lineup in candidate_splits(players)]
    lowest = min(penalty for penalty, _ in scored)
    choices = [lineup for penalty, lineup in scored if penalty == lowest]
    return rng.choice(choices), lowest
