"""
Selection service: decides who plays next

Rotation fairness rules:
1. fewest games played first
2. then whoever has waited longest (lowest last round played)
3. remaining ties broken by a uniform random permutation
"""
import math
import random
from dataclasses import dataclass
from typing import Iterable, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Enrollment, Match, MatchParticipation


@dataclass(frozen=True)
class PlayerLoad:
    player_id: int
    games_played: int
    last_round_played: int


def load_player_loads(tournament_id: int, db: Session) -> List[PlayerLoad]:
    """
    Games played (filler or not) and last round played, per enrolled player

    Players who never played have games_played=0 and last_round_played=0.
    """
    db.flush()
    stats = {
        player_id: (games, last_round)
        for player_id, games, last_round in (
            db.query(
                MatchParticipation.player_id,
                func.count(MatchParticipation.id),
                func.max(Match.round_number),
            )
            .join(Match, MatchParticipation.match_id == Match.id)
            .filter(Match.tournament_id == tournament_id)
            .group_by(MatchParticipation.player_id)
            .all()
        )
    }

    enrolled = (
        db.query(Enrollment.player_id)
        .filter(Enrollment.tournament_id == tournament_id)
        .order_by(Enrollment.player_id)
        .all()
    )

    loads = []
    for (player_id,) in enrolled:
        games, last_round = stats.get(player_id, (0, 0))
        loads.append(PlayerLoad(player_id, int(games), int(last_round or 0)))
    return loads


def order_by_fairness(loads: Iterable[PlayerLoad], rng: random.Random) -> List[PlayerLoad]:
    """
    Sort players by (games_played, last_round_played), random among equals

    Each player gets one random tie key, which makes the order of every
    group of equals a uniform permutation.
    """
    keyed = [(load.games_played, load.last_round_played, rng.random(), load) for load in loads]
    keyed.sort(key=lambda item: item[:3])
    return [item[3] for item in keyed]


def needed_matches(loads: List[PlayerLoad], matches_per_player: int, courts_available: int) -> int:
    """
    How many matches the next round should have

    ceil(players below target / 4), capped by the courts and by the roster
    size, and at least 1.
    """
    below_target = sum(1 for load in loads if load.games_played < matches_per_player)
    needed = math.ceil(below_target / 4)
    needed = min(courts_available, needed, len(loads) // 4)
    return max(1, needed)


def select_round_pool(
    loads: List[PlayerLoad],
    matches_per_player: int,
    courts_available: int,
    rng: random.Random
) -> List[PlayerLoad]:
    """
    The players of the next round: top needed_matches * 4 by fairness

    Returns fewer than 4 players only when the roster itself is that small;
    callers turn that into InsufficientPlayers.
    """
    ordered = order_by_fairness(loads, rng)
    if len(ordered) < 4:
        return ordered
    count = needed_matches(loads, matches_per_player, courts_available)
    return ordered[:count * 4]


def is_filler(load: PlayerLoad, matches_per_player: int) -> bool:
    """A participation is filler when the player already reached the target"""
    return load.games_played >= matches_per_player


def resting_players(enrolled: Iterable[int], round_players: Iterable[int]) -> List[int]:
    """Enrolled players absent from every match of a round, by id"""
    return sorted(set(enrolled) - set(round_players))
