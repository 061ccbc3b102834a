"""
Request / response models for the HTTP adapter
"""
import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import Match, Modality, ScheduleState, TournamentStatus


# ============ Requests ============

class TournamentCreate(BaseModel):
    date: datetime.date
    location: Optional[str] = None
    courts_available: int = Field(..., ge=1)
    player_ids: List[int]
    matches_per_player: Optional[int] = Field(None, ge=1)
    modality: Modality = Modality.POINTS_16


class RosterUpdate(BaseModel):
    player_ids: List[int]
    date: Optional[datetime.date] = None
    location: Optional[str] = None
    courts_available: Optional[int] = Field(None, ge=1)


class TournamentUpdate(BaseModel):
    courts_available: Optional[int] = Field(None, ge=1)
    modality: Optional[Modality] = None
    status: Optional[TournamentStatus] = None


class PlanRequest(BaseModel):
    matches_per_player: Optional[int] = Field(None, ge=1)


class NextMatchRequest(BaseModel):
    force: bool = False
    court_progress: Optional[Dict[int, int]] = None


class ScoreSubmit(BaseModel):
    team1_score: int
    team2_score: int


class PlayerSwap(BaseModel):
    old_player_id: int
    new_player_id: int


# ============ Responses ============

class StatusResponse(BaseModel):
    status: str = "ok"


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    date: datetime.date
    location: Optional[str] = None
    courts_available: int
    matches_per_player: int
    modality: Modality
    status: TournamentStatus


class TournamentSummaryResponse(TournamentResponse):
    total_matches: int
    completed_matches: int


class ScheduleStateResponse(BaseModel):
    tournament_id: int
    state: ScheduleState


class ParticipationResponse(BaseModel):
    player_id: int
    name: Optional[str] = None
    partner_id: int
    team: int
    raw_score: int
    points: int
    is_filler: bool


class MatchResponse(BaseModel):
    id: int
    tournament_id: int
    round_number: int
    court_number: int
    participations: List[ParticipationResponse]

    @classmethod
    def from_match(cls, match: Match) -> "MatchResponse":
        return cls(
            id=match.id,
            tournament_id=match.tournament_id,
            round_number=match.round_number,
            court_number=match.court_number,
            participations=[
                ParticipationResponse(
                    player_id=p.player_id,
                    name=p.player.name if p.player else None,
                    partner_id=p.partner_id,
                    team=p.team,
                    raw_score=p.raw_score,
                    points=p.points,
                    is_filler=p.is_filler,
                )
                for p in sorted(match.participations, key=lambda p: (p.team, p.id))
            ],
        )


class StandingResponse(BaseModel):
    player_id: int
    name: str
    current_score: int
    games_played: int


class SimulationResponse(BaseModel):
    status: str = "ok"
    matches_filled: int
