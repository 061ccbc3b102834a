"""
Schedule state service: where a tournament's schedule stands

States are derived from data, never stored:
- COMPLETED: tournament status flipped to completed (wins over everything)
- NEEDS_FIRST_ROUND: no match generated yet
- FULLY_SCHEDULED: every enrolled player has at least matches_per_player
  non-filler participations
- IN_PROGRESS: anything else
"""
from typing import Dict, Iterable, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import (
    Enrollment,
    Match,
    MatchParticipation,
    ScheduleState,
    Tournament,
    TournamentStatus,
)


def derive_schedule_state(
    status: TournamentStatus,
    match_count: int,
    counted_games: Dict[int, int],
    enrolled: Iterable[int],
    matches_per_player: int
) -> ScheduleState:
    """
    Pure state derivation

    Params:
        status: stored tournament status
        match_count: number of matches in the tournament
        counted_games: player_id -> non-filler participations
        enrolled: enrolled player ids
        matches_per_player: per-player target

    Returns:
        ScheduleState

    Examples:
        derive_schedule_state(COMPLETED, 0, {}, [1], 3) -> COMPLETED
        derive_schedule_state(IN_PROGRESS, 0, {}, [1], 3) -> NEEDS_FIRST_ROUND
    """
    if status == TournamentStatus.COMPLETED:
        return ScheduleState.COMPLETED
    if match_count == 0:
        return ScheduleState.NEEDS_FIRST_ROUND
    if all(counted_games.get(player_id, 0) >= matches_per_player for player_id in enrolled):
        return ScheduleState.FULLY_SCHEDULED
    return ScheduleState.IN_PROGRESS


def get_schedule_state(tournament: Tournament, db: Session) -> ScheduleState:
    match_count = db.query(Match).filter(Match.tournament_id == tournament.id).count()

    counted_games = dict(
        db.query(MatchParticipation.player_id, func.count(MatchParticipation.id))
        .join(Match, MatchParticipation.match_id == Match.id)
        .filter(
            Match.tournament_id == tournament.id,
            MatchParticipation.is_filler == False,  # noqa: E712
        )
        .group_by(MatchParticipation.player_id)
        .all()
    )

    enrolled: Set[int] = {
        player_id for (player_id,) in
        db.query(Enrollment.player_id).filter(Enrollment.tournament_id == tournament.id).all()
    }

    return derive_schedule_state(
        tournament.status,
        match_count,
        counted_games,
        enrolled,
        tournament.matches_per_player,
    )
