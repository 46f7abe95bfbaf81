"""
API Players: anagrafica giocatori (CRUD).
La creazione passa dal gate idempotente (header Idempotency-Key).
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Header
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.errors import DomainError
from matchday.core.idempotency import IDEMPOTENCY_HEADER, IdempotencyGate, get_idempotency_gate
from matchday.core.responses import domain_error_response, parse_payload, success_response
from matchday.schemas.players import DeletedRef, PlayerOut, PlayerPayload
from matchday.services import player_service

router = APIRouter(prefix="/api/players", tags=["players"])


@router.get("")
def list_players(db: Session = Depends(get_db)):
    players = player_service.list_players(db)
    return success_response([PlayerOut.model_validate(p) for p in players])


@router.get("/{player_id}")
def get_player(player_id: str, db: Session = Depends(get_db)):
    return success_response(PlayerOut.model_validate(player_service.get_player(player_id, db)))


@router.post("")
def create_player(
    body: Any = Body(default=None),
    db: Session = Depends(get_db),
    gate: IdempotencyGate = Depends(get_idempotency_gate),
    idempotency_key: str | None = Header(default=None, alias=IDEMPOTENCY_HEADER),
):
    """
    Crea un giocatore. Con Idempotency-Key, un retry entro la finestra di
    conservazione riceve la stessa identica risposta senza creare duplicati.
    Il body viene validato dentro il gate, quindi anche un 400 di schema viene
    riprodotto; resta fuori solo un body che non è JSON valido.
    """
    def _operation():
        try:
            payload = parse_payload(PlayerPayload, body)
            player = player_service.create_player(payload, db)
        except DomainError as e:
            return domain_error_response(e)
        return success_response(PlayerOut.model_validate(player), status_code=201)

    return gate.execute(idempotency_key, _operation)


@router.put("/{player_id}")
def update_player(player_id: str, payload: PlayerPayload, db: Session = Depends(get_db)):
    player = player_service.update_player(player_id, payload, db)
    return success_response(PlayerOut.model_validate(player))


@router.delete("/{player_id}")
def delete_player(player_id: str, db: Session = Depends(get_db)):
    return success_response(DeletedRef(id=player_service.delete_player(player_id, db)))
