import os

# Prima di importare matchday: l'engine viene creato all'import del modulo database.
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient

import matchday.models  # noqa: F401
from matchday.core.config import MatchPolicy
from matchday.core.database import Base, SessionLocal, engine
from matchday.core.idempotency import IdempotencyGate, InMemoryIdempotencyStore, get_idempotency_gate
from matchday.main import app
from matchday.schemas.matches import CompositionPayload, MatchCreate, ScorePayload
from matchday.schemas.players import PlayerPayload
from matchday.services import match_service, player_service


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def policy():
    return MatchPolicy(roster_capacity=10, require_full_teams_at_creation=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def gate(clock):
    return IdempotencyGate(InMemoryIdempotencyStore(ttl_seconds=60, clock=clock))


@pytest.fixture
def client(gate):
    app.dependency_overrides[get_idempotency_gate] = lambda: gate
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_player(db):
    def _make(first_name: str, last_name: str, email: str | None = None) -> str:
        payload = PlayerPayload(first_name=first_name, last_name=last_name, email=email)
        return player_service.create_player(payload, db).id

    return _make


@pytest.fixture
def three_players(make_player):
    """p1, p2, p3 con cognomi in ordine alfabetico."""
    return (
        make_player("Andrea", "Bianchi"),
        make_player("Marco", "Rossi"),
        make_player("Luca", "Verdi"),
    )


@pytest.fixture
def played_match(db, policy, three_players):
    """Scenario base: A=[p1@1], B=[p2@1, p3@2], punteggio 2-1."""
    p1, p2, p3 = three_players
    match = match_service.create_match(
        MatchCreate(played_at="2024-05-01T19:00:00", location="Campo 3", players=[p1, p2, p3]),
        db,
        policy,
    )
    match_service.assign_composition(
        match.id,
        CompositionPayload(
            teamA=[{"player_id": p1, "position": 1}],
            teamB=[{"player_id": p2, "position": 1}, {"player_id": p3, "position": 2}],
        ),
        db,
    )
    match_service.enter_score(match.id, ScorePayload(team_a_score=2, team_b_score=1), db)
    return match.id
