"""
Match API Endpoints

Responsibilities:
1. Record scores
2. Reshuffle an unplayed match
3. Swap a player
4. Delete a match
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
import logging

from api.deps import require_admin
from database import get_db
from schemas import MatchResponse, PlayerSwap, ScoreSubmit, StatusResponse
from core.schedule_manager import ScheduleManager
from core.exceptions import (
    AlreadyScored,
    DuplicatePlayer,
    InvalidScore,
    NotFound,
)

router = APIRouter(prefix="/api/matches", tags=["matches"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)


@router.post("/{match_id}/score", response_model=MatchResponse)
def submit_score(match_id: int, data: ScoreSubmit, db: Session = Depends(get_db)):
    """
    Record a result and refresh the standings of the 4 players

    Idempotent: the same result twice gives the same standings.
    """
    try:
        match = ScheduleManager.submit_score(db, match_id, data.team1_score, data.team2_score)
        return MatchResponse.from_match(match)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidScore as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to submit score: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.post("/{match_id}/shuffle", response_model=MatchResponse)
def shuffle_match(match_id: int, db: Session = Depends(get_db)):
    try:
        match = ScheduleManager.shuffle_single_match(db, match_id)
        return MatchResponse.from_match(match)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AlreadyScored as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to shuffle match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/{match_id}/players", response_model=MatchResponse)
def swap_player(match_id: int, data: PlayerSwap, db: Session = Depends(get_db)):
    try:
        match = ScheduleManager.swap_player(db, match_id, data.old_player_id, data.new_player_id)
        return MatchResponse.from_match(match)

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicatePlayer as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to swap player: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")


@router.delete("/{match_id}", response_model=StatusResponse)
def delete_match(match_id: int, db: Session = Depends(get_db)):
    try:
        ScheduleManager.delete_match(db, match_id)
        return StatusResponse(status="ok")

    except NotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to delete match: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal error")
