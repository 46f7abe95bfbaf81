"""
Servizio anagrafica giocatori: CRUD diretto, nessun invariante oltre la validazione input.
La cancellazione di un giocatore ancora referenziato (roster o voti) è bloccata dal DB.
"""

import logging
import re
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from matchday.core.database import transaction
from matchday.core.errors import ConflictError, NotFoundError, ValidationError
from matchday.models import Player
from matchday.schemas.players import PlayerPayload

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$", re.IGNORECASE)


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_player_payload(payload: PlayerPayload) -> dict[str, str | None]:
    """Nome e cognome obbligatori; email facoltativa ma con formato valido."""
    first_name = _clean(payload.first_name)
    last_name = _clean(payload.last_name)
    email = _clean(payload.email)
    phone = _clean(payload.phone)

    if not first_name or not last_name:
        raise ValidationError("Nome e cognome sono obbligatori.")
    if email and not EMAIL_RE.match(email):
        raise ValidationError("L'email non è valida.", details=email)

    return {
        "first_name": first_name,
        "last_name": last_name,
        "email": email or None,
        "phone": phone or None,
    }


def list_players(db: Session) -> list[Player]:
    return db.query(Player).order_by(Player.created_at.desc(), Player.last_name.asc()).all()


def get_player(player_id: str, db: Session) -> Player:
    player = db.get(Player, str(player_id))
    if player is None:
        raise NotFoundError("Giocatore non trovato.")
    return player


def create_player(payload: PlayerPayload, db: Session) -> Player:
    fields = validate_player_payload(payload)
    with transaction(db, "la creazione del giocatore"):
        player = Player(**fields)
        db.add(player)
    db.refresh(player)
    logger.info("Creato giocatore id=%s (%s %s)", player.id, player.first_name, player.last_name)
    return player


def update_player(player_id: str, payload: PlayerPayload, db: Session) -> Player:
    fields = validate_player_payload(payload)
    with transaction(db, "l'aggiornamento del giocatore"):
        player = get_player(player_id, db)
        for key, value in fields.items():
            setattr(player, key, value)
    db.refresh(player)
    return player


def delete_player(player_id: str, db: Session) -> str:
    with transaction(db, "la cancellazione del giocatore"):
        player = get_player(player_id, db)
        db.delete(player)
        try:
            db.flush()
        except IntegrityError as e:
            logger.warning("Cancellazione giocatore id=%s rifiutata: ancora referenziato", player_id)
            raise ConflictError(
                "Il giocatore è ancora presente in un match o in un voto MVP.",
                details=str(e.orig)[:300],
            ) from e
    logger.info("Eliminato giocatore id=%s", player_id)
    return str(player_id)
