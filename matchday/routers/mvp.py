"""API MVP: voto post-partita, stato del voto, risultati per match e classifica globale."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.responses import success_response
from matchday.schemas.mvp import VoteOut, VotePayload
from matchday.services import mvp_service

router = APIRouter(prefix="/api", tags=["mvp"])


@router.post("/matches/{match_id}/mvp/vote")
def cast_vote(match_id: str, payload: VotePayload, db: Session = Depends(get_db)):
    """Un voto per votante. 409 se il votante ha già votato: per cambiare idea va prima ritirato."""
    vote = mvp_service.cast_vote(match_id, payload, db)
    return success_response(VoteOut.model_validate(vote))


@router.delete("/matches/{match_id}/mvp/vote")
def retract_vote(match_id: str, voter_id: str | None = None, db: Session = Depends(get_db)):
    return success_response(mvp_service.retract_vote(match_id, voter_id, db))


@router.get("/matches/{match_id}/mvp/status")
def vote_status(match_id: str, voter_id: str | None = None, db: Session = Depends(get_db)):
    return success_response(mvp_service.vote_status(match_id, voter_id, db))


@router.get("/matches/{match_id}/mvp")
def match_tally(match_id: str, db: Session = Depends(get_db)):
    """Risultati ricalcolati ad ogni richiesta: results, mvp (primo rank 1), mvps (tutti i rank 1)."""
    return success_response(mvp_service.match_tally(match_id, db))


@router.get("/players/mvp-stats")
def mvp_leaderboard(db: Session = Depends(get_db)):
    return success_response(mvp_service.mvp_leaderboard(db))
