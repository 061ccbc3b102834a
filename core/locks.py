"""
Concurrency helpers

Row-level pessimistic locks (SELECT ... FOR UPDATE) so that two requests
touching the same tournament's schedule or standings serialize instead of
interleaving their read-then-write accumulator updates.

SQLite has no row locks; SQLAlchemy drops the clause there.
"""
from sqlalchemy.orm import Session, Query

from models import Tournament, Match


def with_tournament_lock(tournament_id: int, db: Session) -> Query:
    """
    Lock one Tournament row

    Used by every schedule mutation (round/match generation, score writes,
    deletions) so the accumulator and the round counter see a stable view.

    Example:
        tournament = with_tournament_lock(tournament_id, db).first()
        if not tournament:
            raise TournamentNotFound(tournament_id)

    Returns:
        Query object (call .first() to load it)

    Notes:
        - nowait=False waits for the lock instead of failing
        - must run inside a transaction (see @transactional)
    """
    return db.query(Tournament).filter(
        Tournament.id == tournament_id
    ).with_for_update(nowait=False)


def with_match_lock(match_id: int, db: Session) -> Query:
    """
    Lock one Match row

    Used before score writes, swaps, reshuffles and deletions of a match.
    """
    return db.query(Match).filter(
        Match.id == match_id
    ).with_for_update(nowait=False)
