import pytest

from matchday.core.errors import ConflictError, NotFoundError, ValidationError
from matchday.models import MvpVote
from matchday.schemas.matches import MatchCreate, ScorePayload
from matchday.schemas.mvp import VotePayload
from matchday.services import match_service, mvp_service
from matchday.services.mvp_service import VoteCount, rank_vote_counts


def _vote(db, match_id, voter, voted_for):
    return mvp_service.cast_vote(match_id, VotePayload(voter_id=voter, voted_for_id=voted_for), db)


def _played(db, policy, players, score=(1, 0)):
    match = match_service.create_match(
        MatchCreate(played_at="2024-05-08T19:00:00", location="Campo 1", players=list(players)), db, policy,
    )
    match_service.enter_score(match.id, ScorePayload(team_a_score=score[0], team_b_score=score[1]), db)
    return match.id


def test_rank_uses_competition_ranking_and_last_name_tiebreak():
    results = rank_vote_counts([
        VoteCount("p3", "Luca", "Zeta", 1),
        VoteCount("p2", "Marco", "rossi", 3),
        VoteCount("p1", "Andrea", "Bianchi", 3),
    ])
    assert [(r.player_id, r.rank, r.is_mvp) for r in results] == [
        ("p1", 1, True),
        ("p2", 1, True),
        ("p3", 3, False),
    ]


def test_rank_last_name_comparison_is_case_insensitive():
    results = rank_vote_counts([VoteCount("x", "A", "bruno", 2), VoteCount("y", "B", "Alberti", 2)])
    assert [r.player_id for r in results] == ["y", "x"]


def test_rank_empty():
    assert rank_vote_counts([]) == []


def test_scenario_votes_elect_single_mvp(db, played_match, three_players):
    p1, p2, p3 = three_players
    _vote(db, played_match, p1, p3)
    _vote(db, played_match, p2, p3)

    tally = mvp_service.match_tally(played_match, db)

    assert tally.total_votes == 2
    assert tally.eligible_voters == 3
    assert [(r.player_id, r.votes, r.rank) for r in tally.results] == [(p3, 2, 1)]
    assert tally.mvp.player_id == p3
    assert [m.player_id for m in tally.mvps] == [p3]


def test_tie_at_top_yields_multiple_mvps(db, policy, make_player):
    voters = [make_player(f"V{i}", f"Votante{i}") for i in range(7)]
    bianchi = make_player("Andrea", "Bianchi")
    rossi = make_player("Marco", "Rossi")
    verdi = make_player("Luca", "Verdi")
    match_id = _played(db, policy, voters + [bianchi, rossi, verdi])

    for voter in voters[:3]:
        _vote(db, match_id, voter, rossi)
    for voter in voters[3:6]:
        _vote(db, match_id, voter, bianchi)
    _vote(db, match_id, voters[6], verdi)

    tally = mvp_service.match_tally(match_id, db)

    assert [(r.player_id, r.rank) for r in tally.results] == [(bianchi, 1), (rossi, 1), (verdi, 3)]
    assert [m.player_id for m in tally.mvps] == [bianchi, rossi]
    assert tally.mvp.player_id == bianchi
    assert {m.player_id for m in tally.mvps} == {r.player_id for r in tally.results if r.rank == 1}


def test_tally_without_votes(db, played_match):
    tally = mvp_service.match_tally(played_match, db)
    assert tally.results == [] and tally.mvps == []
    assert tally.mvp is None


def test_second_vote_by_same_voter_is_conflict(db, played_match, three_players):
    p1, p2, p3 = three_players
    _vote(db, played_match, p1, p3)
    with pytest.raises(ConflictError):
        _vote(db, played_match, p1, p2)
    assert db.query(MvpVote).filter(MvpVote.match_id == played_match).count() == 1
    assert mvp_service.match_tally(played_match, db).results[0].player_id == p3


def test_unique_constraint_guards_against_racing_votes(db, played_match, three_players, monkeypatch):
    p1, p2, p3 = three_players
    _vote(db, played_match, p1, p3)
    # Simula la seconda richiesta concorrente che ha passato il controllo preventivo.
    monkeypatch.setattr(mvp_service, "_find_vote", lambda match_id, voter_id, session: None)

    with pytest.raises(ConflictError):
        _vote(db, played_match, p1, p2)
    assert db.query(MvpVote).count() == 1


def test_vote_requires_played_match(db, policy, three_players):
    p1, p2, _ = three_players
    match = match_service.create_match(
        MatchCreate(played_at="2024-05-08T19:00:00", location="Campo", players=[p1, p2]), db, policy,
    )
    with pytest.raises(ValidationError):
        _vote(db, match.id, p1, p2)


def test_vote_requires_roster_members(db, played_match, make_player, three_players):
    p1, _, _ = three_players
    outsider = make_player("Gianni", "Esterno")
    with pytest.raises(ValidationError, match="votante"):
        _vote(db, played_match, outsider, p1)
    with pytest.raises(ValidationError, match="votato"):
        _vote(db, played_match, p1, outsider)
    with pytest.raises(ValidationError):
        _vote(db, played_match, "", p1)
    with pytest.raises(NotFoundError):
        _vote(db, "missing", p1, p1)


def test_retract_then_vote_again(db, played_match, three_players):
    p1, p2, p3 = three_players
    _vote(db, played_match, p1, p3)

    retracted = mvp_service.retract_vote(played_match, p1, db)
    assert retracted.voter_id == p1
    with pytest.raises(NotFoundError):
        mvp_service.retract_vote(played_match, p1, db)

    vote = _vote(db, played_match, p1, p2)
    assert vote.voted_for_id == p2


def test_vote_status(db, played_match, three_players):
    p1, p2, p3 = three_players
    assert mvp_service.vote_status(played_match, p1, db).has_voted is False
    _vote(db, played_match, p1, p3)
    status = mvp_service.vote_status(played_match, p1, db)
    assert status.has_voted is True
    assert status.voted_for_id == p3
    with pytest.raises(ValidationError):
        mvp_service.vote_status(played_match, None, db)


def test_leaderboard_counts_mvp_titles_and_votes(db, policy, played_match, three_players, make_player):
    p1, p2, p3 = three_players
    extra = make_player("Zeno", "Abate")  # nessun voto

    _vote(db, played_match, p1, p3)
    _vote(db, played_match, p2, p3)
    _vote(db, played_match, p3, p1)

    second = _played(db, policy, [p1, p2, p3])
    _vote(db, second, p1, p2)
    _vote(db, second, p3, p1)

    board = mvp_service.mvp_leaderboard(db)
    rows = [(row.player.id, row.mvp_count, row.total_votes) for row in board]

    # p3: 1 titolo, 2 voti; p1 e p2 vincono a pari merito il secondo match.
    assert rows == [
        (p1, 1, 2),
        (p3, 1, 2),
        (p2, 1, 1),
        (extra, 0, 0),
    ]
