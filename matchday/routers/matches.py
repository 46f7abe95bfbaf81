"""
API Matches: ciclo di vita del match (roster, composizione, punteggio).
La logica e le transazioni sono nel match_service; qui solo mapping HTTP.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session

from matchday.core.config import MatchPolicy, get_match_policy
from matchday.core.database import get_db
from matchday.core.errors import DomainError
from matchday.core.idempotency import IDEMPOTENCY_HEADER, IdempotencyGate, get_idempotency_gate
from matchday.core.responses import domain_error_response, parse_payload, success_response
from matchday.schemas.matches import CompositionPayload, MatchCreate, MatchUpdate, ScorePayload
from matchday.schemas.players import DeletedRef
from matchday.services import match_service

router = APIRouter(prefix="/api/matches", tags=["matches"])


@router.get("")
def list_matches(db: Session = Depends(get_db)):
    return success_response(match_service.list_matches(db))


@router.get("/played")
def list_played_matches(
    limit: int = 10,
    offset: int = 0,
    player_id: str | None = None,
    db: Session = Depends(get_db),
):
    """Storico paginato dei match giocati, con vincitore (A, B, D o UNKNOWN)."""
    page = match_service.list_played_matches(db, limit=limit, offset=offset, player_id=player_id)
    return success_response(page)


@router.get("/{match_id}")
def get_match(match_id: str, db: Session = Depends(get_db)):
    return success_response(match_service.get_match(match_id, db))


@router.post("")
def create_match(
    body: Any = Body(default=None),
    db: Session = Depends(get_db),
    policy: MatchPolicy = Depends(get_match_policy),
    gate: IdempotencyGate = Depends(get_idempotency_gate),
    idempotency_key: str | None = Header(default=None, alias=IDEMPOTENCY_HEADER),
):
    """
    Crea un match scheduled con il roster (max ROSTER_CAPACITY giocatori).
    Idempotente se il client invia Idempotency-Key: anche gli errori vengono riprodotti,
    compresi i 400 di schema (il body è validato dentro il gate). Un body che
    non è JSON valido viene rifiutato prima del gate e non è memorizzato.
    """
    def _operation():
        try:
            payload = parse_payload(MatchCreate, body)
            match = match_service.create_match(payload, db, policy)
        except DomainError as e:
            return domain_error_response(e)
        return success_response(match, status_code=201)

    return gate.execute(idempotency_key, _operation)


@router.put("/{match_id}")
def update_match(
    match_id: str,
    payload: MatchUpdate,
    db: Session = Depends(get_db),
    policy: MatchPolicy = Depends(get_match_policy),
):
    """Aggiorna dettagli e roster. 409 se il punteggio è già stato inserito."""
    return success_response(match_service.update_match(match_id, payload, db, policy))


@router.delete("/{match_id}")
def delete_match(match_id: str, db: Session = Depends(get_db)):
    return success_response(DeletedRef(id=match_service.delete_match(match_id, db)))


@router.post("/{match_id}/compo")
def assign_composition(match_id: str, payload: CompositionPayload, db: Session = Depends(get_db)):
    return success_response(match_service.assign_composition(match_id, payload, db))


@router.post("/{match_id}/score")
def enter_score(match_id: str, payload: ScorePayload, db: Session = Depends(get_db)):
    return success_response(match_service.enter_score(match_id, payload, db))


@router.delete("/{match_id}/score")
def reset_score(match_id: str, db: Session = Depends(get_db)):
    """Torna a scheduled; i voti MVP del match vengono ritirati."""
    return success_response(match_service.reset_score(match_id, db))
