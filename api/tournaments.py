"""
Tournament API Endpoints

Responsibilities:
1. Tournament lifecycle (create / edit / delete) and read models
2. Schedule generation: next round, full plan, next match, reshuffle, simulation

All business logic lives in TournamentManager / ScheduleManager; this module
only maps their results and errors to HTTP.
"""
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from api.deps import require_admin
from database import get_db
from schemas import (
    MatchResponse,
    NextMatchRequest,
    PlanRequest,
    RosterUpdate,
    ScheduleStateResponse,
    SimulationResponse,
    StandingResponse,
    StatusResponse,
    TournamentCreate,
    TournamentResponse,
    TournamentSummaryResponse,
    TournamentUpdate,
)
from core.schedule_manager import ScheduleManager
from core.tournament_manager import TournamentManager
from core.exceptions import (
    AlreadyScored,
    BusyCourts,
    InsufficientPlayers,
    NotFound,
    RosterLocked,
)

router = APIRouter(prefix="/api/tournaments", tags=["tournaments"])
logger = logging.getLogger(__name__)


@router.post("", response_model=TournamentResponse, status_code=201, dependencies=[Depends(require_admin)])
def create_tournament(data: TournamentCreate, db: Session = Depends(get_db)):
    """
    Create a tournament and generate its first round

    Preconditions:
    - at least settings.min_tournament_players distinct, existing players
    """
    try:
        tournament = TournamentManager.create_tournament(
            db,
            date=data.date,
            courts_available=data.courts_available,
            player_ids=data.player_ids,
            location=data.location,
            matches_per_player=data.matches_per_player,
            modality=data.modality,
        )
        return TournamentResponse.model_validate(tournament)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientPlayers as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create tournament: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("", response_model=List[TournamentSummaryResponse])
def list_tournaments(db: Session = Depends(get_db)):
    return [
        TournamentSummaryResponse(
            **TournamentResponse.model_validate(entry["tournament"]).model_dump(),
            total_matches=entry["total_matches"],
            completed_matches=entry["completed_matches"],
        )
        for entry in TournamentManager.list_tournaments(db)
    ]


@router.get("/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, db: Session = Depends(get_db)):
    try:
        return TournamentResponse.model_validate(TournamentManager.get_tournament(db, tournament_id))
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/{tournament_id}", response_model=TournamentResponse, dependencies=[Depends(require_admin)])
def update_tournament(tournament_id: int, data: TournamentUpdate, db: Session = Depends(get_db)):
    """
    Edit courts, modality or status

    A modality change re-normalizes all recorded results.
    """
    try:
        tournament = TournamentManager.update_tournament(
            db,
            tournament_id,
            courts_available=data.courts_available,
            modality=data.modality,
            status=data.status,
        )
        return TournamentResponse.model_validate(tournament)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update tournament: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{tournament_id}/players", response_model=TournamentResponse, dependencies=[Depends(require_admin)])
def update_roster(tournament_id: int, data: RosterUpdate, db: Session = Depends(get_db)):
    try:
        tournament = TournamentManager.update_roster(
            db,
            tournament_id,
            player_ids=data.player_ids,
            date=data.date,
            location=data.location,
            courts_available=data.courts_available,
        )
        return TournamentResponse.model_validate(tournament)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientPlayers as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RosterLocked as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to update roster: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{tournament_id}", response_model=StatusResponse, dependencies=[Depends(require_admin)])
def delete_tournament(tournament_id: int, db: Session = Depends(get_db)):
    try:
        TournamentManager.delete_tournament(db, tournament_id)
        return StatusResponse(status="ok")

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete tournament: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.get("/{tournament_id}/matches", response_model=List[MatchResponse])
def get_matches(tournament_id: int, db: Session = Depends(get_db)):
    try:
        return [MatchResponse.from_match(match) for match in TournamentManager.get_matches(db, tournament_id)]
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{tournament_id}/standings", response_model=List[StandingResponse])
def get_standings(tournament_id: int, db: Session = Depends(get_db)):
    try:
        return [StandingResponse(**row) for row in TournamentManager.get_standings(db, tournament_id)]
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/{tournament_id}/state", response_model=ScheduleStateResponse)
def get_schedule_state(tournament_id: int, db: Session = Depends(get_db)):
    try:
        state = TournamentManager.get_schedule_state(db, tournament_id)
        return ScheduleStateResponse(tournament_id=tournament_id, state=state)
    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{tournament_id}/next-round", response_model=List[MatchResponse], dependencies=[Depends(require_admin)])
def generate_next_round(tournament_id: int, db: Session = Depends(get_db)):
    try:
        matches = ScheduleManager.generate_round(db, tournament_id)
        return [MatchResponse.from_match(match) for match in matches]

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientPlayers as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to generate round: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{tournament_id}/plan", response_model=List[MatchResponse], dependencies=[Depends(require_admin)])
def generate_plan(
    tournament_id: int,
    data: Optional[PlanRequest] = Body(None),
    db: Session = Depends(get_db)
):
    try:
        matches = ScheduleManager.generate_plan(
            db,
            tournament_id,
            matches_per_player=data.matches_per_player if data else None,
        )
        return [MatchResponse.from_match(match) for match in matches]

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientPlayers as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to generate plan: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{tournament_id}/next-match", response_model=MatchResponse, dependencies=[Depends(require_admin)])
def generate_next_match(
    tournament_id: int,
    data: Optional[NextMatchRequest] = Body(None),
    db: Session = Depends(get_db)
):
    """
    Generate one match on a free court

    409 when every court is busy; the client may retry with force=true
    and its court_progress map to queue the match.
    """
    data = data or NextMatchRequest()
    try:
        match = ScheduleManager.generate_next_match(
            db,
            tournament_id,
            force=data.force,
            court_progress=data.court_progress,
        )
        return MatchResponse.from_match(match)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BusyCourts as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InsufficientPlayers as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to generate match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{tournament_id}/shuffle", response_model=List[MatchResponse], dependencies=[Depends(require_admin)])
def reshuffle_tournament(tournament_id: int, db: Session = Depends(get_db)):
    try:
        matches = ScheduleManager.reshuffle_tournament(db, tournament_id)
        return [MatchResponse.from_match(match) for match in matches]

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadyScored as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InsufficientPlayers as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to reshuffle tournament: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{tournament_id}/simulate", response_model=SimulationResponse, dependencies=[Depends(require_admin)])
def simulate_results(tournament_id: int, db: Session = Depends(get_db)):
    try:
        filled = ScheduleManager.simulate_results(db, tournament_id)
        return SimulationResponse(matches_filled=filled)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to simulate results: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
