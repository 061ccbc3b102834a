"""
Interaction history service.

Derives who has partnered with / played against whom in a tournament from
the persisted match_players rows. Rebuilt on every call, never cached, so
the pairing logic always sees the committed schedule.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, NamedTuple, Optional, Set

from sqlalchemy.orm import Session

from models import Match, MatchParticipation


class ParticipationRow(NamedTuple):
    match_id: int
    player_id: int
    partner_id: int
    team: int


@dataclass
class InteractionHistory:
    partners: Dict[int, Set[int]] = field(default_factory=lambda: defaultdict(set))
    opponents: Dict[int, Set[int]] = field(default_factory=lambda: defaultdict(set))

    def have_partnered(self, a: int, b: int) -> bool:
        return b in self.partners.get(a, ())

    def have_opposed(self, a: int, b: int) -> bool:
        return b in self.opponents.get(a, ())


def build_history(rows: Iterable[ParticipationRow]) -> InteractionHistory:
    """
    Build partner and opponent sets from participation rows

    Pure function: the same rows always give the same history.
    """
    history = InteractionHistory()
    teams: Dict[int, Dict[int, Set[int]]] = defaultdict(lambda: defaultdict(set))

    for row in rows:
        if row.partner_id is not None:
            history.partners[row.player_id].add(row.partner_id)
            history.partners[row.partner_id].add(row.player_id)
        teams[row.match_id][row.team].add(row.player_id)

    for sides in teams.values():
        for player_id in sides.get(1, ()):
            history.opponents[player_id].update(sides.get(2, ()))
        for player_id in sides.get(2, ()):
            history.opponents[player_id].update(sides.get(1, ()))

    return history


def load_participation_rows(
    tournament_id: int,
    db: Session,
    exclude_match_id: Optional[int] = None
) -> list:
    query = (
        db.query(
            MatchParticipation.match_id,
            MatchParticipation.player_id,
            MatchParticipation.partner_id,
            MatchParticipation.team,
        )
        .join(Match, MatchParticipation.match_id == Match.id)
        .filter(Match.tournament_id == tournament_id)
    )
    if exclude_match_id is not None:
        query = query.filter(MatchParticipation.match_id != exclude_match_id)

    return [ParticipationRow(*row) for row in query.all()]


def load_history(
    tournament_id: int,
    db: Session,
    exclude_match_id: Optional[int] = None
) -> InteractionHistory:
    """
    Interaction history for a tournament

    exclude_match_id leaves one match out, used when that match is about
    to be rebuilt (a reshuffle should not be penalized by its own lineup).
    """
    return build_history(load_participation_rows(tournament_id, db, exclude_match_id))
