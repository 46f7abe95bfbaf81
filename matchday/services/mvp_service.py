"""
Voto MVP post-partita e classifiche.

Regole di ammissione: match giocato con punteggio, votante e votato nel roster,
un solo voto per votante. Il controllo preventivo sul voto esistente è solo un
percorso veloce: la garanzia è il vincolo unico (match_id, voter_id) sul DB.

Classifica: ranking "competition" (1, 1, 3) per numero di voti decrescente;
a parità di voti ordine per cognome (case-insensitive) e poi id.
mvps = tutte le righe con rank 1, mvp = la prima di queste.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from matchday.core.database import transaction
from matchday.core.errors import ConflictError, NotFoundError, ValidationError
from matchday.models import STATUS_PLAYED, MatchPlayer, MvpVote, Player
from matchday.schemas.mvp import (
    MvpLeaderboardRow,
    MvpPick,
    MvpResultRow,
    MvpTally,
    VotePayload,
    VoteRetracted,
    VoteStatus,
)
from matchday.schemas.players import PlayerRef
from matchday.services.match_service import load_match

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteCount:
    player_id: str
    first_name: str
    last_name: str
    votes: int


def _normalize_id(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def rank_vote_counts(counts: Iterable[VoteCount]) -> list[MvpResultRow]:
    """Ordina e assegna i rank: pari voti = pari rank, il rank successivo salta."""
    ordered = sorted(counts, key=lambda c: (-c.votes, (c.last_name or "").lower(), c.player_id))
    results: list[MvpResultRow] = []
    rank = 0
    previous_votes = None
    for index, count in enumerate(ordered, start=1):
        if count.votes != previous_votes:
            rank = index
            previous_votes = count.votes
        results.append(
            MvpResultRow(
                player_id=count.player_id,
                first_name=count.first_name,
                last_name=count.last_name,
                votes=count.votes,
                rank=rank,
                is_mvp=rank == 1,
            )
        )
    return results


def _pick(row: MvpResultRow) -> MvpPick:
    return MvpPick(player_id=row.player_id, first_name=row.first_name, last_name=row.last_name, votes=row.votes)


def _roster_ids(match_id: str, db: Session) -> set[str]:
    return {pid for (pid,) in db.query(MatchPlayer.player_id).filter(MatchPlayer.match_id == match_id).all()}


def _find_vote(match_id: str, voter_id: str, db: Session) -> MvpVote | None:
    return (
        db.query(MvpVote)
        .filter(MvpVote.match_id == match_id, MvpVote.voter_id == voter_id)
        .first()
    )


def cast_vote(match_id: str, payload: VotePayload, db: Session) -> MvpVote:
    """Registra il voto di un giocatore del roster per un altro giocatore del roster."""
    voter_id = _normalize_id(payload.voter_id)
    voted_for_id = _normalize_id(payload.voted_for_id)
    if not voter_id or not voted_for_id:
        raise ValidationError("Votante e giocatore votato sono obbligatori.")

    already_voted = ConflictError(
        "Questo giocatore ha già votato per questo match.",
        details={"match_id": str(match_id), "voter_id": voter_id},
    )

    with transaction(db, "la registrazione del voto"):
        match = load_match(match_id, db)
        if match.status != STATUS_PLAYED or match.team_a_score is None or match.team_b_score is None:
            raise ValidationError("Il match deve essere concluso per votare.")

        roster = _roster_ids(match.id, db)
        if voter_id not in roster:
            raise ValidationError("Il votante deve appartenere al roster del match.")
        if voted_for_id not in roster:
            raise ValidationError("Il giocatore votato deve appartenere al roster del match.")

        if _find_vote(match.id, voter_id, db) is not None:
            logger.warning("Voto doppio rifiutato match id=%s voter=%s", match.id, voter_id)
            raise already_voted

        vote = MvpVote(match_id=match.id, voter_id=voter_id, voted_for_id=voted_for_id)
        db.add(vote)
        try:
            db.flush()
        except IntegrityError as e:
            # Due richieste concorrenti hanno superato entrambe il controllo preventivo.
            logger.warning("Voto doppio bloccato dal vincolo unico match id=%s voter=%s", match.id, voter_id)
            raise already_voted from e

    db.refresh(vote)
    logger.info("Voto MVP match id=%s: %s -> %s", vote.match_id, voter_id, voted_for_id)
    return vote


def retract_vote(match_id: str, voter_id: Any, db: Session) -> VoteRetracted:
    """Ritira il voto: unico modo per cambiare preferenza (mai sovrascrittura)."""
    voter = _normalize_id(voter_id)
    if not voter:
        raise ValidationError("Il votante è obbligatorio.")

    with transaction(db, "la cancellazione del voto"):
        deleted = (
            db.query(MvpVote)
            .filter(MvpVote.match_id == str(match_id), MvpVote.voter_id == voter)
            .delete(synchronize_session=False)
        )
        if not deleted:
            raise NotFoundError("Voto non trovato.")

    logger.info("Voto MVP ritirato match id=%s voter=%s", match_id, voter)
    return VoteRetracted(match_id=str(match_id), voter_id=voter)


def vote_status(match_id: str, voter_id: Any, db: Session) -> VoteStatus:
    voter = _normalize_id(voter_id)
    if not voter:
        raise ValidationError("Il votante è obbligatorio.")
    match = load_match(match_id, db)
    vote = _find_vote(match.id, voter, db)
    return VoteStatus(
        match_id=match.id,
        voter_id=voter,
        has_voted=vote is not None,
        voted_for_id=vote.voted_for_id if vote else None,
        created_at=vote.created_at if vote else None,
    )


def match_tally(match_id: str, db: Session) -> MvpTally:
    """Risultati MVP del match, ricalcolati ad ogni lettura."""
    match = load_match(match_id, db)

    rows = (
        db.query(MvpVote.voted_for_id, Player.first_name, Player.last_name, func.count(MvpVote.id))
        .join(Player, Player.id == MvpVote.voted_for_id)
        .filter(MvpVote.match_id == match.id)
        .group_by(MvpVote.voted_for_id, Player.first_name, Player.last_name)
        .all()
    )
    results = rank_vote_counts(
        VoteCount(player_id=pid, first_name=first, last_name=last, votes=int(votes))
        for pid, first, last, votes in rows
    )
    mvps = [_pick(row) for row in results if row.rank == 1]
    eligible = db.query(func.count(MatchPlayer.id)).filter(MatchPlayer.match_id == match.id).scalar() or 0

    return MvpTally(
        match_id=match.id,
        total_votes=sum(row.votes for row in results),
        eligible_voters=int(eligible),
        results=results,
        mvp=mvps[0] if mvps else None,
        mvps=mvps,
    )


def mvp_leaderboard(db: Session) -> list[MvpLeaderboardRow]:
    """
    Classifica MVP su tutti i match: mvp_count = match con rank 1, total_votes = voti ricevuti.
    Ordine: mvp_count desc, total_votes desc, cognome asc.
    """
    rows = (
        db.query(MvpVote.match_id, MvpVote.voted_for_id, Player.first_name, Player.last_name, func.count(MvpVote.id))
        .join(Player, Player.id == MvpVote.voted_for_id)
        .group_by(MvpVote.match_id, MvpVote.voted_for_id, Player.first_name, Player.last_name)
        .all()
    )
    per_match: dict[str, list[VoteCount]] = defaultdict(list)
    for match_id, pid, first, last, votes in rows:
        per_match[match_id].append(VoteCount(player_id=pid, first_name=first, last_name=last, votes=int(votes)))

    mvp_count: dict[str, int] = defaultdict(int)
    total_votes: dict[str, int] = defaultdict(int)
    for counts in per_match.values():
        for result in rank_vote_counts(counts):
            total_votes[result.player_id] += result.votes
            if result.rank == 1:
                mvp_count[result.player_id] += 1

    players = db.query(Player).all()
    players.sort(key=lambda p: (-mvp_count[p.id], -total_votes[p.id], (p.last_name or "").lower(), p.id))
    return [
        MvpLeaderboardRow(
            player=PlayerRef(id=p.id, first_name=p.first_name, last_name=p.last_name),
            mvp_count=mvp_count[p.id],
            total_votes=total_votes[p.id],
        )
        for p in players
    ]
