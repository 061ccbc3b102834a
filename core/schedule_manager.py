"""
Schedule Manager: owns every mutation of a tournament's schedule

Responsibilities:
1. Generate a full round / a whole plan / one incremental match
2. Reshuffle an unplayed match (or the whole unplayed schedule)
3. Record scores, swap players, delete matches
4. Keep Enrollment.current_score consistent after each of the above

Each public method is one transaction (@transactional): it either commits
everything or rolls everything back. Private helpers only flush, so public
methods can share them without nesting transactions.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Dict, List, Optional
import logging
import random

from models import Enrollment, Match, MatchParticipation, Tournament
from core.locks import with_match_lock, with_tournament_lock
from core.exceptions import (
    AlreadyScored,
    BusyCourts,
    DuplicatePlayer,
    EnrollmentNotFound,
    InsufficientPlayers,
    MatchNotFound,
    PlayerNotInMatch,
    TournamentNotFound,
)
from services.history_service import load_history
from services.pairing_service import Lineup, best_split, partition_pool
from services.scoring_service import normalize_score, random_result, validate_score
from services.selection_service import (
    PlayerLoad,
    is_filler,
    load_player_loads,
    order_by_fairness,
    resting_players,
    select_round_pool,
)
from services.standings_service import recompute_many, recompute_tournament
from database import get_settings, transactional

logger = logging.getLogger(__name__)


class ScheduleManager:
    """Round / match orchestrator"""

    # ============ Generation ============

    @staticmethod
    @transactional
    def generate_round(db: Session, tournament_id: int, rng: Optional[random.Random] = None) -> List[Match]:
        """
        Generate the next full round

        Flow:
        1. Load each enrolled player's games played / last round played
        2. Pick the round pool by rotation fairness
        3. Partition the pool into matches with the fewest repeats
        4. Persist matches on courts 1..n with round_number = max + 1

        Params:
            db: SQLAlchemy Session
            tournament_id: tournament id
            rng: random source (a fresh one when omitted)

        Returns:
            the created matches, ordered by court

        Raises:
            TournamentNotFound: tournament does not exist
            InsufficientPlayers: fewer than 4 selectable players
        """
        tournament = _get_tournament(db, tournament_id)
        return build_round(db, tournament, rng or random.Random())

    @staticmethod
    @transactional
    def generate_plan(
        db: Session,
        tournament_id: int,
        matches_per_player: Optional[int] = None,
        rng: Optional[random.Random] = None
    ) -> List[Match]:
        """
        Generate rounds until every player reached matches_per_player

        Loops while the minimum games played across the roster is below the
        target, at most settings.plan_iteration_cap rounds. Hitting the cap
        is accepted as a best-effort plan, not an error.

        Params:
            db: SQLAlchemy Session
            tournament_id: tournament id
            matches_per_player: target (defaults to the tournament's)
            rng: random source

        Returns:
            all matches created by this call

        Raises:
            TournamentNotFound, InsufficientPlayers
        """
        tournament = _get_tournament(db, tournament_id)
        target = matches_per_player or tournament.matches_per_player
        return build_plan(db, tournament, target, rng or random.Random())

    @staticmethod
    @transactional
    def generate_next_match(
        db: Session,
        tournament_id: int,
        force: bool = False,
        court_progress: Optional[Dict[int, int]] = None,
        rng: Optional[random.Random] = None
    ) -> Match:
        """
        Generate exactly one match on a free court

        A court is busy while it holds an unscored match. Only courts
        1..courts_available are candidates; unscored matches left on courts
        above that (after a reduction) do not block or receive new matches.

        Court choice:
        - lowest free court
        - no free court and force=False: BusyCourts (retry with force=True)
        - no free court and force=True: queue behind the court with the most
          points recorded so far according to court_progress; ties and
          missing entries go to the court whose match is oldest

        Player choice: the 4 fairest players not currently on court (players
        on court are used only when fewer than 4 are idle), split into the
        lowest-penalty teams.

        Params:
            db: SQLAlchemy Session
            tournament_id: tournament id
            force: queue on a busy court instead of failing
            court_progress: court number -> points recorded so far
            rng: random source

        Returns:
            the created Match

        Raises:
            TournamentNotFound, InsufficientPlayers, BusyCourts
        """
        rng = rng or random.Random()
        tournament = _get_tournament(db, tournament_id)

        unscored = [
            match for match in
            db.query(Match).filter(Match.tournament_id == tournament.id).order_by(Match.id).all()
            if not match.is_scored
        ]
        # courts above courts_available (after a reduction) are no longer usable
        busy: Dict[int, int] = {}
        for match in unscored:
            if match.court_number <= tournament.courts_available:
                busy.setdefault(match.court_number, match.id)

        free = [court for court in range(1, tournament.courts_available + 1) if court not in busy]
        if free:
            court = free[0]
        elif not force:
            raise BusyCourts(tournament.courts_available)
        else:
            court = _most_advanced_court(busy, court_progress or {})
            logger.info(f"All courts busy in tournament {tournament.id}, queueing on court {court}")

        loads = load_player_loads(tournament.id, db)
        if len(loads) < 4:
            raise InsufficientPlayers(
                f"Need at least 4 enrolled players to generate a match, got {len(loads)}"
            )

        on_court = {p.player_id for match in unscored for p in match.participations}
        ordered = order_by_fairness(loads, rng)
        idle = [load for load in ordered if load.player_id not in on_court]
        if len(idle) >= 4:
            pool = idle[:4]
        else:
            pool = (idle + [load for load in ordered if load.player_id in on_court])[:4]

        history = load_history(tournament.id, db)
        lineup, penalty = best_split([load.player_id for load in pool], history, rng)

        round_number = _next_round_number(db, tournament.id)
        match = _add_match(db, tournament, round_number, court, lineup, {load.player_id: load for load in pool})

        logger.info(
            f"Generated match {match.id} (round {round_number}, court {court}) "
            f"for tournament {tournament.id}, penalty={penalty}"
        )
        return match

    # ============ Reshuffling ============

    @staticmethod
    @transactional
    def shuffle_single_match(db: Session, match_id: int, rng: Optional[random.Random] = None) -> Match:
        """
        Redraw the lineup of an unplayed match

        Flow:
        1. Refuse if the match has any recorded score
        2. Pool = the match's 4 players + players resting in that round
        3. Draw 4 at random, pick the best team split
        4. Replace the 4 participations (filler flags recomputed)

        Raises:
            MatchNotFound: match does not exist
            AlreadyScored: the match has a non-zero raw score
        """
        rng = rng or random.Random()
        match = _get_match(db, match_id)
        tournament = _get_tournament(db, match.tournament_id)

        if match.is_scored:
            raise AlreadyScored(f"Match {match.id} already has a recorded result")

        current = [p.player_id for p in match.participations]
        round_players = {
            player_id for (player_id,) in
            db.query(MatchParticipation.player_id)
            .join(Match, MatchParticipation.match_id == Match.id)
            .filter(
                Match.tournament_id == tournament.id,
                Match.round_number == match.round_number,
            )
            .all()
        }
        enrolled = [
            player_id for (player_id,) in
            db.query(Enrollment.player_id).filter(Enrollment.tournament_id == tournament.id).all()
        ]
        pool = current + resting_players(enrolled, round_players)

        drawn = rng.sample(pool, 4)
        history = load_history(tournament.id, db, exclude_match_id=match.id)
        lineup, penalty = best_split(drawn, history, rng)

        # Deletes must hit the database before re-inserting the same players
        match.participations.clear()
        db.flush()

        loads = {load.player_id: load for load in load_player_loads(tournament.id, db)}
        _add_participations(match, lineup, loads, tournament.matches_per_player)
        db.flush()

        recompute_many(set(current) | set(lineup.players), tournament.id, db)

        logger.info(
            f"Shuffled match {match.id}: {current} -> {list(lineup.players)}, penalty={penalty}"
        )
        return match

    @staticmethod
    @transactional
    def reshuffle_tournament(db: Session, tournament_id: int, rng: Optional[random.Random] = None) -> List[Match]:
        """
        Throw away the whole (unplayed) schedule and generate a new plan

        Raises:
            TournamentNotFound
            AlreadyScored: some match already has a recorded result
        """
        tournament = _get_tournament(db, tournament_id)
        matches = db.query(Match).filter(Match.tournament_id == tournament.id).all()

        if any(match.is_scored for match in matches):
            raise AlreadyScored(
                f"Tournament {tournament.id} already has results, its schedule cannot be reshuffled"
            )

        for match in matches:
            db.delete(match)
        db.flush()

        logger.info(f"Deleted {len(matches)} matches of tournament {tournament.id} before reshuffle")

        created = build_plan(db, tournament, tournament.matches_per_player, rng or random.Random())
        recompute_tournament(tournament.id, db)
        return created

    # ============ Results ============

    @staticmethod
    @transactional
    def submit_score(db: Session, match_id: int, raw_score1: int, raw_score2: int) -> Match:
        """
        Record a match result and refresh the standings of its 4 players

        Submitting the same result twice leaves the standings unchanged.

        Raises:
            MatchNotFound
            InvalidScore: the result violates the tournament modality
        """
        match = _get_match(db, match_id)
        tournament = _get_tournament(db, match.tournament_id)

        validate_score(raw_score1, raw_score2, tournament.modality)
        apply_score(match, raw_score1, raw_score2, tournament)
        db.flush()

        recompute_many([p.player_id for p in match.participations], tournament.id, db)

        logger.info(f"Score {raw_score1}-{raw_score2} recorded for match {match.id}")
        return match

    @staticmethod
    @transactional
    def simulate_results(db: Session, tournament_id: int, rng: Optional[random.Random] = None) -> int:
        """
        Fill every unscored match with a random valid result

        Returns:
            number of matches filled
        """
        rng = rng or random.Random()
        tournament = _get_tournament(db, tournament_id)

        filled = 0
        for match in db.query(Match).filter(Match.tournament_id == tournament.id).order_by(Match.id).all():
            if match.is_scored:
                continue
            raw1, raw2 = random_result(tournament.modality, rng)
            apply_score(match, raw1, raw2, tournament)
            filled += 1

        db.flush()
        recompute_tournament(tournament.id, db)

        logger.info(f"Simulated {filled} results for tournament {tournament.id}")
        return filled

    # ============ Lineup edits ============

    @staticmethod
    @transactional
    def swap_player(db: Session, match_id: int, old_player_id: int, new_player_id: int) -> Match:
        """
        Replace one player of a match

        The incoming player takes the outgoing player's team, score and
        partner; the partner's row is re-pointed at the incoming player.
        The filler flag is recomputed from the incoming player's games.
        Allowed on scored matches too (late corrections), so both players'
        standings are recomputed.

        Raises:
            MatchNotFound
            DuplicatePlayer: new_player_id already plays in this match
            PlayerNotInMatch: old_player_id does not play in this match
            EnrollmentNotFound: new_player_id is not enrolled in the tournament
        """
        match = _get_match(db, match_id)
        tournament = _get_tournament(db, match.tournament_id)

        if any(p.player_id == new_player_id for p in match.participations):
            raise DuplicatePlayer(new_player_id, match.id)

        outgoing = next((p for p in match.participations if p.player_id == old_player_id), None)
        if outgoing is None:
            raise PlayerNotInMatch(old_player_id, match.id)

        enrolled = db.query(Enrollment).filter(
            Enrollment.tournament_id == tournament.id,
            Enrollment.player_id == new_player_id
        ).first()
        if not enrolled:
            raise EnrollmentNotFound(new_player_id, tournament.id)

        games_played = (
            db.query(MatchParticipation)
            .join(Match, MatchParticipation.match_id == Match.id)
            .filter(
                Match.tournament_id == tournament.id,
                MatchParticipation.player_id == new_player_id,
            )
            .count()
        )

        outgoing.player_id = new_player_id
        outgoing.is_filler = games_played >= tournament.matches_per_player
        for participation in match.participations:
            if participation.partner_id == old_player_id:
                participation.partner_id = new_player_id
        db.flush()

        recompute_many([old_player_id, new_player_id], tournament.id, db)

        logger.info(f"Swapped player {old_player_id} -> {new_player_id} in match {match.id}")
        return match

    @staticmethod
    @transactional
    def delete_match(db: Session, match_id: int) -> None:
        """
        Delete a match and its participations, then refresh its players' standings

        Raises:
            MatchNotFound
        """
        match = _get_match(db, match_id)
        tournament = _get_tournament(db, match.tournament_id)
        player_ids = [p.player_id for p in match.participations]

        db.delete(match)
        db.flush()

        recompute_many(player_ids, tournament.id, db)

        logger.info(f"Deleted match {match_id} of tournament {tournament.id}")


# ============ Helpers (flush only, never commit) ============

def _get_tournament(db: Session, tournament_id: int) -> Tournament:
    tournament = with_tournament_lock(tournament_id, db).first()
    if not tournament:
        raise TournamentNotFound(tournament_id)
    return tournament


def _get_match(db: Session, match_id: int) -> Match:
    match = with_match_lock(match_id, db).first()
    if not match:
        raise MatchNotFound(match_id)
    return match


def _next_round_number(db: Session, tournament_id: int) -> int:
    current = db.query(func.max(Match.round_number)).filter(Match.tournament_id == tournament_id).scalar()
    return (current or 0) + 1


def _most_advanced_court(busy: Dict[int, int], court_progress: Dict[int, int]) -> int:
    """Busy court with the most recorded points; oldest match on ties"""
    progress = {int(court): points or 0 for court, points in court_progress.items()}
    return max(busy, key=lambda court: (progress.get(court, 0), -busy[court]))


def _add_participations(
    match: Match,
    lineup: Lineup,
    loads: Dict[int, PlayerLoad],
    matches_per_player: int
) -> None:
    for team, (a, b) in ((1, lineup.team1), (2, lineup.team2)):
        for player_id, partner_id in ((a, b), (b, a)):
            load = loads.get(player_id, PlayerLoad(player_id, 0, 0))
            match.participations.append(
                MatchParticipation(
                    player_id=player_id,
                    partner_id=partner_id,
                    team=team,
                    raw_score=0,
                    points=0,
                    is_filler=is_filler(load, matches_per_player),
                )
            )


def _add_match(
    db: Session,
    tournament: Tournament,
    round_number: int,
    court_number: int,
    lineup: Lineup,
    loads: Dict[int, PlayerLoad]
) -> Match:
    match = Match(
        tournament_id=tournament.id,
        round_number=round_number,
        court_number=court_number,
    )
    _add_participations(match, lineup, loads, tournament.matches_per_player)
    db.add(match)
    db.flush()  # match.id
    return match


def build_round(db: Session, tournament: Tournament, rng: random.Random) -> List[Match]:
    loads = load_player_loads(tournament.id, db)
    pool = select_round_pool(loads, tournament.matches_per_player, tournament.courts_available, rng)
    if len(pool) < 4:
        raise InsufficientPlayers(
            f"Need at least 4 enrolled players to generate a round, got {len(pool)}"
        )

    history = load_history(tournament.id, db)
    lineups, penalty = partition_pool(
        [load.player_id for load in pool],
        history,
        rng,
        trials=get_settings().pairing_trials,
    )

    round_number = _next_round_number(db, tournament.id)
    loads_by_id = {load.player_id: load for load in pool}
    matches = [
        _add_match(db, tournament, round_number, court, lineup, loads_by_id)
        for court, lineup in enumerate(lineups, start=1)
    ]

    logger.info(
        f"Generated round {round_number} for tournament {tournament.id}: "
        f"{len(matches)} matches, penalty={penalty}"
    )
    return matches


def build_plan(db: Session, tournament: Tournament, target: int, rng: random.Random) -> List[Match]:
    cap = get_settings().plan_iteration_cap
    created: List[Match] = []

    for _ in range(cap):
        loads = load_player_loads(tournament.id, db)
        if len(loads) >= 4 and min(load.games_played for load in loads) >= target:
            break
        created.extend(build_round(db, tournament, rng))

    loads = load_player_loads(tournament.id, db)
    if loads and min(load.games_played for load in loads) < target:
        logger.warning(
            f"Plan for tournament {tournament.id} stopped after {cap} rounds "
            f"before every player reached {target} games"
        )

    logger.info(f"Generated plan for tournament {tournament.id}: {len(created)} matches")
    return created


def apply_score(match: Match, raw1: int, raw2: int, tournament: Tournament) -> None:
    points1, points2 = normalize_score(raw1, raw2, tournament.modality)
    for participation in match.participations:
        if participation.team == 1:
            participation.raw_score, participation.points = raw1, points1
        else:
            participation.raw_score, participation.points = raw2, points2
