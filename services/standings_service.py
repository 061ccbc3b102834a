"""
Standings service: keeps Enrollment.current_score in sync with match results

current_score = sum(points) over the player's non-filler participations in
the tournament whose match has a recorded result (raw scores not both 0).
Always recomputed from scratch, never patched incrementally.
"""
from typing import Iterable
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from models import Enrollment, Match, MatchParticipation
from core.exceptions import EnrollmentNotFound

logger = logging.getLogger(__name__)


def scored_match_ids():
    """Select of match ids with at least one non-zero raw score"""
    scored = aliased(MatchParticipation)
    return select(scored.match_id).where(scored.raw_score > 0)


def calculate_player_total(player_id: int, tournament_id: int, db: Session) -> int:
    """Sum of counted points for one player in one tournament"""
    db.flush()  # sessions run with autoflush off; pending score writes must be visible
    total = (
        db.query(func.coalesce(func.sum(MatchParticipation.points), 0))
        .join(Match, MatchParticipation.match_id == Match.id)
        .filter(
            Match.tournament_id == tournament_id,
            MatchParticipation.player_id == player_id,
            MatchParticipation.is_filler == False,  # noqa: E712
            MatchParticipation.match_id.in_(scored_match_ids()),
        )
        .scalar()
    )
    return int(total or 0)


def recompute(player_id: int, tournament_id: int, db: Session) -> Enrollment:
    """
    Recompute and store a player's current_score

    Must run for every player touched by a score write, a match deletion or
    a swap.

    Params:
        player_id: player id
        tournament_id: tournament id
        db: SQLAlchemy Session

    Returns:
        the updated Enrollment

    Raises:
        EnrollmentNotFound: the player is not enrolled in the tournament
    """
    enrollment = db.query(Enrollment).filter(
        Enrollment.tournament_id == tournament_id,
        Enrollment.player_id == player_id
    ).first()
    if not enrollment:
        raise EnrollmentNotFound(player_id, tournament_id)

    enrollment.current_score = calculate_player_total(player_id, tournament_id, db)
    db.flush()  # commit is left to the outer transaction
    return enrollment


def recompute_many(player_ids: Iterable[int], tournament_id: int, db: Session) -> None:
    for player_id in sorted(set(player_ids)):
        recompute(player_id, tournament_id, db)


def recompute_tournament(tournament_id: int, db: Session) -> None:
    """Recompute every enrollment of a tournament"""
    player_ids = [
        row.player_id for row in
        db.query(Enrollment.player_id).filter(Enrollment.tournament_id == tournament_id).all()
    ]
    recompute_many(player_ids, tournament_id, db)
    logger.info(f"Recomputed standings for {len(player_ids)} players in tournament {tournament_id}")
