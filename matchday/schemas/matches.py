"""Pydantic schemas per API Matches (roster, composizione, punteggio)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# --- Request ---


class MatchCreate(BaseModel):
    """
    players/teamA/teamB restano Any: la forma (lista, duplicati, posizioni)
    è verificata dai validatori di dominio, che restituiscono messaggi specifici.
    """
    played_at: str | None = None
    location: str | None = None
    reservation_url: str | None = None
    players: Any = None
    teamA: Any = None
    teamB: Any = None


class MatchUpdate(BaseModel):
    played_at: str | None = None
    location: str | None = None
    reservation_url: str | None = None
    players: Any = None


class CompositionPayload(BaseModel):
    teamA: Any = Field(default_factory=list)
    teamB: Any = Field(default_factory=list)


class ScorePayload(BaseModel):
    team_a_score: Any = None
    team_b_score: Any = None


# --- Response ---


class RosterEntryOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    team: str | None = None  # "A" | "B" | None
    position: int | None = None


class MatchOut(BaseModel):
    id: str
    played_at: datetime
    location: str
    reservation_url: str | None = None
    status: str  # "scheduled" | "played"
    team_a_score: int | None = None
    team_b_score: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    roster: list[RosterEntryOut]
    teamA: list[RosterEntryOut]
    teamB: list[RosterEntryOut]
    compo_ready: bool


class PlayedMatchOut(MatchOut):
    winner: str  # "A" | "B" | "D" | "UNKNOWN"


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int


class PlayedMatchesPage(BaseModel):
    items: list[PlayedMatchOut]
    pagination: Pagination
