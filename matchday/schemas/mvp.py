"""Pydantic schemas per il voto MVP e le classifiche."""

from datetime import datetime

from pydantic import BaseModel

from matchday.schemas.players import PlayerRef


class VotePayload(BaseModel):
    voter_id: str | int | None = None
    voted_for_id: str | int | None = None


class VoteOut(BaseModel):
    id: str
    match_id: str
    voter_id: str
    voted_for_id: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class VoteRetracted(BaseModel):
    match_id: str
    voter_id: str


class VoteStatus(BaseModel):
    match_id: str
    voter_id: str
    has_voted: bool
    voted_for_id: str | None = None
    created_at: datetime | None = None


class MvpPick(BaseModel):
    player_id: str
    first_name: str
    last_name: str
    votes: int


class MvpResultRow(MvpPick):
    rank: int
    is_mvp: bool


class MvpTally(BaseModel):
    """mvps = tutte le righe con rank 1; mvp = la prima di queste (o None)."""
    match_id: str
    total_votes: int
    eligible_voters: int
    results: list[MvpResultRow]
    mvp: MvpPick | None = None
    mvps: list[MvpPick]


class MvpLeaderboardRow(BaseModel):
    player: PlayerRef
    mvp_count: int
    total_votes: int
