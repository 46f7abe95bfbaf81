import pytest
from sqlalchemy.exc import SQLAlchemyError

from matchday.core.config import MatchPolicy
from matchday.core.errors import ConflictError, NotFoundError, StorageError, ValidationError
from matchday.models import Match, MatchPlayer, MvpVote
from matchday.schemas.matches import CompositionPayload, MatchCreate, MatchUpdate, ScorePayload
from matchday.schemas.mvp import VotePayload
from matchday.services import match_service, mvp_service


def _create(db, policy, players, **extra):
    payload = MatchCreate(played_at="2024-05-01T19:00:00", location="Campo 3", players=players, **extra)
    return match_service.create_match(payload, db, policy)


def _snapshot(db, match_id):
    match_row = (
        db.query(Match.status, Match.team_a_score, Match.team_b_score, Match.location, Match.played_at)
        .filter(Match.id == match_id)
        .one()
    )
    roster = sorted(
        db.query(MatchPlayer.player_id, MatchPlayer.team, MatchPlayer.position)
        .filter(MatchPlayer.match_id == match_id)
        .all()
    )
    return tuple(match_row), roster


def test_create_match_is_scheduled_with_unassigned_roster(db, policy, three_players):
    match = _create(db, policy, list(three_players))
    assert match.status == "scheduled"
    assert match.team_a_score is None and match.team_b_score is None
    assert {entry.id for entry in match.roster} == set(three_players)
    assert all(entry.team is None and entry.position is None for entry in match.roster)
    assert match.compo_ready is False


def test_create_match_validates_input(db, policy, three_players):
    with pytest.raises(ValidationError):
        match_service.create_match(MatchCreate(played_at="ieri", location="Campo"), db, policy)
    with pytest.raises(ValidationError):
        match_service.create_match(MatchCreate(played_at="2024-05-01T19:00:00", location="  "), db, policy)
    with pytest.raises(ValidationError):
        _create(db, policy, [three_players[0], three_players[0]])
    assert db.query(Match).count() == 0


def test_create_match_with_unknown_player_is_not_found(db, policy, three_players):
    with pytest.raises(NotFoundError) as exc:
        _create(db, policy, [three_players[0], "ghost"])
    assert exc.value.details == {"player_ids": ["ghost"]}
    assert db.query(Match).count() == 0


def test_create_match_rolls_back_everything_on_storage_failure(db, policy, three_players, monkeypatch):
    # Saltando il controllo applicativo, la FK sul giocatore fallisce dopo l'insert del match.
    monkeypatch.setattr(match_service, "_ensure_players_exist", lambda ids, db: None)
    with pytest.raises(StorageError):
        _create(db, policy, [three_players[0], "ghost"])
    assert db.query(Match).count() == 0
    assert db.query(MatchPlayer).count() == 0


def test_create_match_respects_roster_capacity(db, three_players):
    small = MatchPolicy(roster_capacity=2)
    with pytest.raises(ValidationError):
        _create(db, small, list(three_players))


def test_full_teams_profile_requires_complete_teams(db, make_player):
    policy = MatchPolicy(roster_capacity=4, require_full_teams_at_creation=True)
    ids = [make_player(f"N{i}", f"C{i}") for i in range(4)]

    with pytest.raises(ValidationError):
        _create(db, policy, ids)
    with pytest.raises(ValidationError):
        _create(
            db, policy, None,
            teamA=[{"player_id": ids[0], "position": 1}],
            teamB=[{"player_id": ids[1], "position": 1}],
        )

    match = _create(
        db, policy, None,
        teamA=[{"player_id": ids[0], "position": 1}, {"player_id": ids[1], "position": 2}],
        teamB=[{"player_id": ids[2], "position": 1}, {"player_id": ids[3], "position": 2}],
    )
    assert len(match.roster) == 4
    assert [e.id for e in match.teamA] == ids[:2]
    assert [e.id for e in match.teamB] == ids[2:]
    assert match.compo_ready is True


def test_composition_at_creation_must_match_roster(db, policy, three_players):
    p1, p2, p3 = three_players
    with pytest.raises(ValidationError):
        _create(db, policy, [p1, p2], teamA=[{"player_id": p3, "position": 1}])


def test_update_roster_uses_set_difference(db, policy, make_player, three_players):
    p1, p2, p3 = three_players
    p4 = make_player("Paolo", "Neri")
    match = _create(db, policy, [p1, p2, p3])
    match_service.assign_composition(
        match.id,
        CompositionPayload(teamA=[{"player_id": p1, "position": 2}], teamB=[{"player_id": p2, "position": 1}]),
        db,
    )

    updated = match_service.update_match(
        match.id,
        MatchUpdate(played_at="2024-05-02T20:00:00", location="Campo 5", players=[p1, p2, p4]),
        db,
        policy,
    )

    by_id = {entry.id: entry for entry in updated.roster}
    assert set(by_id) == {p1, p2, p4}
    assert (by_id[p1].team, by_id[p1].position) == ("A", 2)
    assert (by_id[p2].team, by_id[p2].position) == ("B", 1)
    assert (by_id[p4].team, by_id[p4].position) == (None, None)
    assert updated.location == "Campo 5"


def test_update_without_players_keeps_roster(db, policy, three_players):
    match = _create(db, policy, list(three_players))
    updated = match_service.update_match(
        match.id, MatchUpdate(played_at="2024-05-02T20:00:00", location="Altro campo"), db, policy,
    )
    assert len(updated.roster) == 3
    assert updated.reservation_url is None


def test_update_with_explicit_null_players_clears_roster(db, policy, three_players):
    match = _create(db, policy, list(three_players))
    updated = match_service.update_match(
        match.id, MatchUpdate(played_at="2024-05-02T20:00:00", location="Campo", players=None), db, policy,
    )
    assert updated.roster == []


def test_composition_replaces_previous_assignments(db, policy, three_players):
    p1, p2, p3 = three_players
    match = _create(db, policy, [p1, p2, p3])
    match_service.assign_composition(
        match.id,
        CompositionPayload(teamA=[{"player_id": p1, "position": 1}, {"player_id": p2, "position": 2}]),
        db,
    )
    result = match_service.assign_composition(
        match.id,
        CompositionPayload(teamA=[{"player_id": p2, "position": 1}], teamB=[{"player_id": p1, "position": 1}]),
        db,
    )
    assert [e.id for e in result.teamA] == [p2]
    assert [e.id for e in result.teamB] == [p1]
    unassigned = [e for e in result.roster if e.team is None]
    assert [e.id for e in unassigned] == [p3]


def test_composition_rejects_players_outside_roster(db, policy, make_player, three_players):
    p1, p2, _ = three_players
    outsider = make_player("Gianni", "Esterno")
    match = _create(db, policy, [p1, p2])
    before = _snapshot(db, match.id)
    with pytest.raises(ValidationError):
        match_service.assign_composition(
            match.id,
            CompositionPayload(teamA=[{"player_id": p1, "position": 1}], teamB=[{"player_id": outsider, "position": 1}]),
            db,
        )
    assert _snapshot(db, match.id) == before


def test_enter_score_requires_roster(db, policy):
    match = _create(db, policy, [])
    with pytest.raises(ValidationError):
        match_service.enter_score(match.id, ScorePayload(team_a_score=1, team_b_score=0), db)
    assert match_service.get_match(match.id, db).status == "scheduled"


def test_enter_score_rejects_negative_scores(db, policy, three_players):
    match = _create(db, policy, list(three_players))
    with pytest.raises(ValidationError):
        match_service.enter_score(match.id, ScorePayload(team_a_score=-1, team_b_score=0), db)


def test_played_match_always_has_both_scores(db, played_match):
    match = match_service.get_match(played_match, db)
    assert match.status == "played"
    assert (match.team_a_score, match.team_b_score) == (2, 1)


def test_played_match_is_frozen(db, policy, played_match, three_players):
    p1, p2, p3 = three_players
    before = _snapshot(db, played_match)

    with pytest.raises(ConflictError):
        match_service.update_match(
            played_match,
            MatchUpdate(played_at="2024-06-01T19:00:00", location="Altrove", players=[p1]),
            db,
            policy,
        )
    with pytest.raises(ConflictError):
        match_service.assign_composition(
            played_match,
            CompositionPayload(teamA=[{"player_id": p3, "position": 1}], teamB=[{"player_id": p1, "position": 1}]),
            db,
        )
    assert _snapshot(db, played_match) == before


def test_score_can_be_corrected_on_played_match(db, played_match):
    match = match_service.enter_score(played_match, ScorePayload(team_a_score="3", team_b_score="3"), db)
    assert match.status == "played"
    assert (match.team_a_score, match.team_b_score) == (3, 3)


def test_reset_score_returns_to_scheduled_and_retracts_votes(db, played_match, three_players):
    p1, p2, p3 = three_players
    mvp_service.cast_vote(played_match, VotePayload(voter_id=p1, voted_for_id=p3), db)

    match = match_service.reset_score(played_match, db)

    assert match.status == "scheduled"
    assert match.team_a_score is None and match.team_b_score is None
    assert [e.id for e in match.teamA] == [p1]
    assert len(match.teamB) == 2
    assert db.query(MvpVote).filter(MvpVote.match_id == played_match).count() == 0


def test_delete_match_removes_roster_and_votes(db, played_match, three_players):
    p1, _, p3 = three_players
    mvp_service.cast_vote(played_match, VotePayload(voter_id=p1, voted_for_id=p3), db)

    assert match_service.delete_match(played_match, db) == played_match
    assert db.query(Match).count() == 0
    assert db.query(MatchPlayer).count() == 0
    assert db.query(MvpVote).count() == 0
    with pytest.raises(NotFoundError):
        match_service.delete_match(played_match, db)


def test_operations_on_missing_match_are_not_found(db, policy):
    with pytest.raises(NotFoundError):
        match_service.get_match("missing", db)
    with pytest.raises(NotFoundError):
        match_service.enter_score("missing", ScorePayload(team_a_score=1, team_b_score=1), db)
    with pytest.raises(NotFoundError):
        match_service.reset_score("missing", db)


def test_list_played_matches_paginates_and_reports_winner(db, policy, played_match, three_players):
    p1, p2, p3 = three_players
    draw = _create(db, policy, [p1, p2])
    match_service.enter_score(draw.id, ScorePayload(team_a_score=1, team_b_score=1), db)
    _create(db, policy, [p3])  # scheduled, escluso

    page = match_service.list_played_matches(db, limit=10, offset=0)
    assert page.pagination.total == 2
    winners = {item.id: item.winner for item in page.items}
    assert winners == {played_match: "A", draw.id: "UNKNOWN"}

    filtered = match_service.list_played_matches(db, player_id=p3)
    assert [item.id for item in filtered.items] == [played_match]

    second_page = match_service.list_played_matches(db, limit=1, offset=1)
    assert len(second_page.items) == 1
    assert second_page.pagination.total == 2

    with pytest.raises(ValidationError):
        match_service.list_played_matches(db, limit=0)


def test_storage_failure_during_composition_leaves_previous_lineup(db, policy, three_players, monkeypatch):
    p1, p2, p3 = three_players
    match = _create(db, policy, [p1, p2, p3])
    match_service.assign_composition(
        match.id, CompositionPayload(teamA=[{"player_id": p1, "position": 1}]), db,
    )
    before = _snapshot(db, match.id)

    original = match_service._apply_composition

    def _fail_after_clear(rows, team_a, team_b, session):
        original(rows, team_a, team_b, session)
        raise SQLAlchemyError("connessione persa")

    monkeypatch.setattr(match_service, "_apply_composition", _fail_after_clear)
    with pytest.raises(StorageError):
        match_service.assign_composition(
            match.id, CompositionPayload(teamB=[{"player_id": p2, "position": 1}]), db,
        )
    assert _snapshot(db, match.id) == before
