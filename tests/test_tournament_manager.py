import datetime

import pytest

from core.exceptions import (
    InsufficientPlayers,
    PlayerNotFound,
    RosterLocked,
    TournamentNotFound,
)
from core.schedule_manager import ScheduleManager
from core.tournament_manager import TournamentManager
from models import (
    Enrollment,
    Match,
    MatchParticipation,
    Modality,
    ScheduleState,
    Tournament,
    TournamentStatus,
)


def _create(db, player_ids, rng, **kwargs):
    kwargs.setdefault("courts_available", 2)
    return TournamentManager.create_tournament(
        db,
        date=datetime.date(2026, 10, 24),
        player_ids=player_ids,
        location="Club Norte",
        rng=rng,
        **kwargs,
    )


def test_create_tournament_enrolls_roster_and_generates_first_round(db, make_players, rng, consistent):
    player_ids = make_players(8)

    tournament = _create(db, player_ids, rng, matches_per_player=4, modality=Modality.GAMES_4)

    assert tournament.status == TournamentStatus.IN_PROGRESS
    assert tournament.matches_per_player == 4
    assert tournament.modality == Modality.GAMES_4
    assert db.query(Enrollment).filter(Enrollment.tournament_id == tournament.id).count() == 8
    matches = db.query(Match).filter(Match.tournament_id == tournament.id).all()
    assert sorted(m.court_number for m in matches) == [1, 2]
    assert {m.round_number for m in matches} == {1}
    consistent(db, tournament.id)


def test_create_tournament_uses_default_target(db, make_players, rng):
    tournament = _create(db, make_players(8), rng)
    assert tournament.matches_per_player == 3


def test_create_tournament_rejects_small_roster(db, make_players, rng):
    with pytest.raises(InsufficientPlayers):
        _create(db, make_players(5), rng)
    assert db.query(Tournament).count() == 0


def test_create_tournament_ignores_duplicate_ids(db, make_players, rng):
    player_ids = make_players(7)
    with pytest.raises(InsufficientPlayers):
        _create(db, player_ids + player_ids[:2], rng)


def test_create_tournament_rejects_unknown_player(db, make_players, rng):
    with pytest.raises(PlayerNotFound):
        _create(db, make_players(7) + [9999], rng)
    assert db.query(Tournament).count() == 0


def test_update_roster_adds_and_removes_resting_players(db, make_players, rng, consistent):
    player_ids = make_players(9)
    tournament = _create(db, player_ids, rng)
    played = {p.player_id for p in db.query(MatchParticipation).all()}
    resting = (set(player_ids) - played).pop()
    newcomer = make_players(1)[0]

    roster = [pid for pid in player_ids if pid != resting] + [newcomer]
    TournamentManager.update_roster(db, tournament.id, roster, location="Club Sur", courts_available=3)

    db.expire_all()
    enrolled = {e.player_id for e in db.query(Enrollment).filter(Enrollment.tournament_id == tournament.id)}
    assert enrolled == set(roster)
    refreshed = db.get(Tournament, tournament.id)
    assert refreshed.location == "Club Sur"
    assert refreshed.courts_available == 3
    consistent(db, tournament.id)


def test_update_roster_refuses_removing_scheduled_player(db, make_players, rng):
    player_ids = make_players(9)
    tournament = _create(db, player_ids, rng)
    scheduled = db.query(MatchParticipation).first().player_id
    roster = [pid for pid in player_ids if pid != scheduled]

    with pytest.raises(RosterLocked):
        TournamentManager.update_roster(db, tournament.id, roster)

    assert db.query(Enrollment).filter(Enrollment.tournament_id == tournament.id).count() == 9


def test_modality_change_renormalizes_results(db, make_tournament, rng, consistent):
    tournament = make_tournament(player_count=8, courts=2, modality=Modality.POINTS_16)
    match = ScheduleManager.generate_round(db, tournament.id, rng=rng)[0]
    match_id = match.id
    ScheduleManager.submit_score(db, match_id, 3, 1)

    TournamentManager.update_tournament(db, tournament.id, modality=Modality.GAMES_4)

    db.expire_all()
    rows = db.query(MatchParticipation).filter(MatchParticipation.match_id == match_id).all()
    assert {(p.team, p.raw_score, p.points) for p in rows} == {(1, 3, 12), (2, 1, 4)}
    scores = sorted(e.current_score for e in db.query(Enrollment).all())
    assert scores == [0, 0, 0, 0, 4, 4, 12, 12]
    consistent(db, tournament.id)


def test_schedule_state_follows_the_tournament(db, make_tournament, rng):
    tournament = make_tournament(player_count=8, courts=2, matches_per_player=2)
    tid = tournament.id
    assert TournamentManager.get_schedule_state(db, tid) == ScheduleState.NEEDS_FIRST_ROUND

    ScheduleManager.generate_round(db, tid, rng=rng)
    assert TournamentManager.get_schedule_state(db, tid) == ScheduleState.IN_PROGRESS

    ScheduleManager.generate_plan(db, tid, rng=rng)
    assert TournamentManager.get_schedule_state(db, tid) == ScheduleState.FULLY_SCHEDULED

    TournamentManager.update_tournament(db, tid, status=TournamentStatus.COMPLETED)
    assert TournamentManager.get_schedule_state(db, tid) == ScheduleState.COMPLETED


def test_standings_and_listing(db, make_tournament, rng):
    tournament = make_tournament(player_count=8, courts=2)
    matches = ScheduleManager.generate_round(db, tournament.id, rng=rng)
    ScheduleManager.submit_score(db, matches[0].id, 12, 4)

    standings = TournamentManager.get_standings(db, tournament.id)
    assert [row["current_score"] for row in standings] == [12, 12, 4, 4, 0, 0, 0, 0]
    assert [row["games_played"] for row in standings] == [1, 1, 1, 1, 0, 0, 0, 0]
    assert all(row["name"].startswith("Player") for row in standings)

    listing = TournamentManager.list_tournaments(db)
    assert len(listing) == 1
    assert listing[0]["total_matches"] == 2
    assert listing[0]["completed_matches"] == 1

    ordered = TournamentManager.get_matches(db, tournament.id)
    assert [m.court_number for m in ordered] == [1, 2]


def test_delete_tournament_removes_schedule(db, make_tournament, rng):
    tournament = make_tournament(player_count=8, courts=2)
    tid = tournament.id
    ScheduleManager.generate_plan(db, tid, rng=rng)

    TournamentManager.delete_tournament(db, tid)

    assert db.query(Tournament).count() == 0
    assert db.query(Match).count() == 0
    assert db.query(MatchParticipation).count() == 0
    assert db.query(Enrollment).count() == 0

    with pytest.raises(TournamentNotFound):
        TournamentManager.get_tournament(db, tid)
