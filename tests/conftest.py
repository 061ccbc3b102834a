import datetime
import random
from collections import defaultdict

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from database import Base
from models import (
    Enrollment,
    Match,
    Modality,
    Player,
    Tournament,
    TournamentStatus,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def rng():
    return random.Random(20261019)


@pytest.fixture
def make_players(db):
    def _make(count):
        players = [Player(name=f"Player {i:02d}") for i in range(1, count + 1)]
        db.add_all(players)
        db.commit()
        return [player.id for player in players]
    return _make


@pytest.fixture
def make_tournament(db, make_players):
    """Tournament with an enrolled roster and no matches yet"""
    def _make(
        player_count=8,
        courts=2,
        matches_per_player=3,
        modality=Modality.POINTS_16,
    ):
        player_ids = make_players(player_count)
        tournament = Tournament(
            date=datetime.date(2026, 10, 19),
            location="Club Central",
            courts_available=courts,
            matches_per_player=matches_per_player,
            modality=modality,
            status=TournamentStatus.IN_PROGRESS,
        )
        db.add(tournament)
        db.flush()
        for player_id in player_ids:
            db.add(Enrollment(tournament_id=tournament.id, player_id=player_id, current_score=0))
        db.commit()
        return tournament
    return _make


def assert_schedule_consistent(db, tournament_id):
    """
    Every match has 4 distinct players, 2 per team, symmetric partners, and
    every current_score equals the sum of counted points.
    """
    db.expire_all()
    expected = defaultdict(int)

    for match in db.query(Match).filter(Match.tournament_id == tournament_id).all():
        rows = match.participations
        assert len(rows) == 4
        assert sorted(p.team for p in rows) == [1, 1, 2, 2]
        by_player = {p.player_id: p for p in rows}
        assert len(by_player) == 4

        for p in rows:
            partner = by_player[p.partner_id]
            assert partner.partner_id == p.player_id
            assert partner.team == p.team

        if any(p.raw_score for p in rows):
            for p in rows:
                if not p.is_filler:
                    expected[p.player_id] += p.points

    for enrollment in db.query(Enrollment).filter(Enrollment.tournament_id == tournament_id).all():
        assert enrollment.current_score == expected.get(enrollment.player_id, 0)


@pytest.fixture
def consistent():
    return assert_schedule_consistent
