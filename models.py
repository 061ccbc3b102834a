"""
ORM models for the Americano tournament engine

Tables:
- players: roster, owned by the surrounding service (the engine only reads id/name)
- tournaments: one event, with courts, per-player target and scoring modality
- tournament_players: enrollment + denormalized current_score
- matches: one game on one court in one round
- match_players: the 4 participations of a match
"""
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from database import Base


class Modality(str, enum.Enum):
    """Scoring convention of a tournament"""
    POINTS_16 = "16 puntos"
    GAMES_4 = "4 games"


class TournamentStatus(str, enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ScheduleState(str, enum.Enum):
    """Derived schedule state, never stored"""
    NEEDS_FIRST_ROUND = "needs_first_round"
    IN_PROGRESS = "in_progress"
    FULLY_SCHEDULED = "fully_scheduled"
    COMPLETED = "completed"


class Player(Base):
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Tournament(Base):
    __tablename__ = "tournaments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    date = Column(Date, nullable=False)
    location = Column(String(120), nullable=True)
    courts_available = Column(Integer, nullable=False)
    matches_per_player = Column(Integer, nullable=False, default=3)
    modality = Column(Enum(Modality), nullable=False, default=Modality.POINTS_16)
    status = Column(Enum(TournamentStatus), nullable=False, default=TournamentStatus.PLANNED)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    enrollments = relationship(
        "Enrollment", back_populates="tournament", cascade="all, delete-orphan"
    )
    matches = relationship(
        "Match", back_populates="tournament", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("courts_available >= 1", name="ck_tournaments_courts"),
        CheckConstraint("matches_per_player >= 1", name="ck_tournaments_matches_per_player"),
    )


class Enrollment(Base):
    """Tournament membership; current_score is kept by the standings service"""
    __tablename__ = "tournament_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    current_score = Column(Integer, nullable=False, default=0)

    tournament = relationship("Tournament", back_populates="enrollments")
    player = relationship("Player")

    __table_args__ = (
        UniqueConstraint("tournament_id", "player_id", name="uq_tournament_players"),
    )


class Match(Base):
    __tablename__ = "matches"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tournament_id = Column(Integer, ForeignKey("tournaments.id", ondelete="CASCADE"), nullable=False)
    round_number = Column(Integer, nullable=False)
    court_number = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tournament = relationship("Tournament", back_populates="matches")
    participations = relationship(
        "MatchParticipation",
        back_populates="match",
        cascade="all, delete-orphan",
        order_by="MatchParticipation.id",
    )

    @property
    def is_scored(self) -> bool:
        return any(p.raw_score for p in self.participations)


class MatchParticipation(Base):
    __tablename__ = "match_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    partner_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    team = Column(Integer, nullable=False)
    raw_score = Column(Integer, nullable=False, default=0)
    points = Column(Integer, nullable=False, default=0)
    is_filler = Column(Boolean, nullable=False, default=False)

    match = relationship("Match", back_populates="participations")
    player = relationship("Player", foreign_keys=[player_id])

    __table_args__ = (
        UniqueConstraint("match_id", "player_id", name="uq_match_players"),
        CheckConstraint("team IN (1, 2)", name="ck_match_players_team"),
        CheckConstraint("player_id <> partner_id", name="ck_match_players_partner"),
    )
