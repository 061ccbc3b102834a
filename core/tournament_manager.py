"""
Tournament Manager: tournament lifecycle and read models

Responsibilities:
1. Create a tournament (roster + first round)
2. Edit roster, courts, modality and status
3. Delete a tournament with its whole schedule
4. Query tournaments, matches, standings and schedule state

Rules:
- Single responsibility: schedule mutations belong to ScheduleManager
- Any change that can move points (modality) recomputes the standings
"""
from datetime import date as Date
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Any, Dict, Iterable, List, Optional
import logging
import random

from models import (
    Enrollment,
    Match,
    MatchParticipation,
    Modality,
    Player,
    ScheduleState,
    Tournament,
    TournamentStatus,
)
from core.exceptions import (
    InsufficientPlayers,
    PlayerNotFound,
    RosterLocked,
    TournamentNotFound,
)
from core.locks import with_tournament_lock
from core.schedule_manager import apply_score, build_round
from services.schedule_state_service import get_schedule_state
from services.standings_service import recompute_tournament, scored_match_ids
from database import get_settings, transactional

logger = logging.getLogger(__name__)


class TournamentManager:
    """Tournament lifecycle manager"""

    @staticmethod
    @transactional
    def create_tournament(
        db: Session,
        date: Date,
        courts_available: int,
        player_ids: Iterable[int],
        location: Optional[str] = None,
        matches_per_player: Optional[int] = None,
        modality: Modality = Modality.POINTS_16,
        rng: Optional[random.Random] = None
    ) -> Tournament:
        """
        Create a tournament, enroll its roster and generate the first round

        Flow:
        1. Validate the roster (enough distinct, existing players)
        2. Create the tournament (status in_progress)
        3. Enroll every player with current_score 0
        4. Generate round 1

        Params:
            db: SQLAlchemy Session
            date: event date
            courts_available: simultaneous matches
            player_ids: roster
            location: venue
            matches_per_player: per-player target (settings default when omitted)
            modality: scoring convention
            rng: random source

        Returns:
            the created Tournament

        Raises:
            InsufficientPlayers: roster below settings.min_tournament_players
            PlayerNotFound: an id is not a known player
        """
        settings = get_settings()
        roster = _validate_roster(db, player_ids)

        tournament = Tournament(
            date=date,
            location=location,
            courts_available=courts_available,
            matches_per_player=matches_per_player or settings.default_matches_per_player,
            modality=modality,
            status=TournamentStatus.IN_PROGRESS,
        )
        db.add(tournament)
        db.flush()  # tournament.id

        for player_id in roster:
            db.add(Enrollment(tournament_id=tournament.id, player_id=player_id, current_score=0))
        db.flush()

        logger.info(
            f"Created tournament {tournament.id} with {len(roster)} players, "
            f"{courts_available} courts, modality '{tournament.modality.value}'"
        )

        build_round(db, tournament, rng or random.Random())
        return tournament

    @staticmethod
    @transactional
    def update_roster(
        db: Session,
        tournament_id: int,
        player_ids: Iterable[int],
        date: Optional[Date] = None,
        location: Optional[str] = None,
        courts_available: Optional[int] = None
    ) -> Tournament:
        """
        Replace the roster and edit basic info

        Retained players keep their enrollment (and score), new players are
        enrolled at 0, removed players lose their enrollment.

        Raises:
            TournamentNotFound
            InsufficientPlayers: roster below settings.min_tournament_players
            PlayerNotFound: an id is not a known player
            RosterLocked: a removed player already has matches
        """
        tournament = _get_tournament(db, tournament_id)
        roster = _validate_roster(db, player_ids)

        current = {
            enrollment.player_id: enrollment for enrollment in
            db.query(Enrollment).filter(Enrollment.tournament_id == tournament.id).all()
        }
        removed = sorted(set(current) - set(roster))
        added = [player_id for player_id in roster if player_id not in current]

        scheduled = {
            player_id for (player_id,) in
            db.query(MatchParticipation.player_id)
            .join(Match, MatchParticipation.match_id == Match.id)
            .filter(
                Match.tournament_id == tournament.id,
                MatchParticipation.player_id.in_(removed),
            )
            .distinct()
            .all()
        }
        if scheduled:
            raise RosterLocked(
                f"Players {sorted(scheduled)} already have matches in tournament {tournament.id}"
            )

        for player_id in removed:
            db.delete(current[player_id])
        for player_id in added:
            db.add(Enrollment(tournament_id=tournament.id, player_id=player_id, current_score=0))

        if date is not None:
            tournament.date = date
        if location is not None:
            tournament.location = location
        if courts_available is not None:
            tournament.courts_available = courts_available
        db.flush()

        logger.info(
            f"Updated roster of tournament {tournament.id}: +{len(added)} -{len(removed)}"
        )
        return tournament

    @staticmethod
    @transactional
    def update_tournament(
        db: Session,
        tournament_id: int,
        courts_available: Optional[int] = None,
        modality: Optional[Modality] = None,
        status: Optional[TournamentStatus] = None
    ) -> Tournament:
        """
        Edit the mutable tournament fields

        A modality change re-normalizes every recorded result and
        recomputes all standings.

        Raises:
            TournamentNotFound
        """
        tournament = _get_tournament(db, tournament_id)

        if courts_available is not None:
            tournament.courts_available = courts_available
        if status is not None and status != tournament.status:
            logger.info(f"Tournament {tournament.id}: {tournament.status.value} -> {status.value}")
            tournament.status = status

        if modality is not None and modality != tournament.modality:
            tournament.modality = modality
            matches = db.query(Match).filter(Match.tournament_id == tournament.id).all()
            for match in matches:
                raw = {p.team: p.raw_score for p in match.participations}
                apply_score(match, raw.get(1, 0), raw.get(2, 0), tournament)
            db.flush()
            recompute_tournament(tournament.id, db)
            logger.info(
                f"Tournament {tournament.id} switched to '{modality.value}', "
                f"re-normalized {len(matches)} matches"
            )

        db.flush()
        return tournament

    @staticmethod
    @transactional
    def delete_tournament(db: Session, tournament_id: int) -> None:
        """
        Delete a tournament with its matches, participations and enrollments

        Raises:
            TournamentNotFound
        """
        tournament = _get_tournament(db, tournament_id)
        db.delete(tournament)
        db.flush()
        logger.info(f"Deleted tournament {tournament_id}")

    # ============ Queries ============

    @staticmethod
    def get_tournament(db: Session, tournament_id: int) -> Tournament:
        """
        Raises:
            TournamentNotFound
        """
        tournament = db.query(Tournament).filter(Tournament.id == tournament_id).first()
        if not tournament:
            raise TournamentNotFound(tournament_id)
        return tournament

    @staticmethod
    def list_tournaments(db: Session) -> List[Dict[str, Any]]:
        """
        All tournaments, newest first, with match counters

        Each entry: {"tournament", "total_matches", "completed_matches"}
        """
        totals = dict(
            db.query(Match.tournament_id, func.count(Match.id))
            .group_by(Match.tournament_id)
            .all()
        )
        completed = dict(
            db.query(Match.tournament_id, func.count(Match.id))
            .filter(Match.id.in_(scored_match_ids()))
            .group_by(Match.tournament_id)
            .all()
        )

        tournaments = db.query(Tournament).order_by(Tournament.date.desc(), Tournament.id.desc()).all()
        return [
            {
                "tournament": tournament,
                "total_matches": totals.get(tournament.id, 0),
                "completed_matches": completed.get(tournament.id, 0),
            }
            for tournament in tournaments
        ]

    @staticmethod
    def get_matches(db: Session, tournament_id: int) -> List[Match]:
        """Matches of a tournament, latest round first, then by court"""
        TournamentManager.get_tournament(db, tournament_id)
        return (
            db.query(Match)
            .filter(Match.tournament_id == tournament_id)
            .order_by(Match.round_number.desc(), Match.court_number.asc())
            .all()
        )

    @staticmethod
    def get_standings(db: Session, tournament_id: int) -> List[Dict[str, Any]]:
        """
        Leaderboard of a tournament

        games_played counts the non-filler participations of matches with a
        recorded result, i.e. the games that feed current_score.

        Returns:
            [{"player_id", "name", "current_score", "games_played"}, ...]
            ordered by current_score desc, then name
        """
        TournamentManager.get_tournament(db, tournament_id)

        games = dict(
            db.query(MatchParticipation.player_id, func.count(MatchParticipation.id))
            .join(Match, MatchParticipation.match_id == Match.id)
            .filter(
                Match.tournament_id == tournament_id,
                MatchParticipation.is_filler == False,  # noqa: E712
                MatchParticipation.match_id.in_(scored_match_ids()),
            )
            .group_by(MatchParticipation.player_id)
            .all()
        )

        rows = (
            db.query(Enrollment, Player)
            .join(Player, Enrollment.player_id == Player.id)
            .filter(Enrollment.tournament_id == tournament_id)
            .order_by(Enrollment.current_score.desc(), Player.name.asc())
            .all()
        )
        return [
            {
                "player_id": player.id,
                "name": player.name,
                "current_score": enrollment.current_score,
                "games_played": games.get(player.id, 0),
            }
            for enrollment, player in rows
        ]

    @staticmethod
    def get_schedule_state(db: Session, tournament_id: int) -> ScheduleState:
        tournament = TournamentManager.get_tournament(db, tournament_id)
        return get_schedule_state(tournament, db)


def _get_tournament(db: Session, tournament_id: int) -> Tournament:
    tournament = with_tournament_lock(tournament_id, db).first()
    if not tournament:
        raise TournamentNotFound(tournament_id)
    return tournament


def _validate_roster(db: Session, player_ids: Iterable[int]) -> List[int]:
    """Distinct roster ids in input order; every id must be a known player"""
    roster = list(dict.fromkeys(int(player_id) for player_id in player_ids))

    minimum = get_settings().min_tournament_players
    if len(roster) < minimum:
        raise InsufficientPlayers(f"Need at least {minimum} players, got {len(roster)}")

    known = {
        player_id for (player_id,) in
        db.query(Player.id).filter(Player.id.in_(roster)).all()
    }
    for player_id in roster:
        if player_id not in known:
            raise PlayerNotFound(player_id)

    return roster
