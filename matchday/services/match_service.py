"""
Macchina a stati del match: scheduled <-> played.

Gestisce roster, composizione e punteggio. Ogni operazione di scrittura è una
singola transazione (tutto-o-niente); una volta inserito il punteggio roster,
composizione e dettagli del match sono congelati finché il punteggio non viene resettato.
"""

import logging
from collections import defaultdict
from typing import Iterable

from sqlalchemy import exists, func
from sqlalchemy.orm import Session

from matchday.core.config import MatchPolicy
from matchday.core.database import transaction
from matchday.core.errors import ConflictError, NotFoundError, ValidationError
from matchday.models import (
    STATUS_PLAYED,
    STATUS_SCHEDULED,
    TEAM_A,
    TEAM_B,
    Match,
    MatchPlayer,
    MvpVote,
    Player,
)
from matchday.schemas.matches import (
    CompositionPayload,
    MatchCreate,
    MatchOut,
    MatchUpdate,
    Pagination,
    PlayedMatchesPage,
    PlayedMatchOut,
    RosterEntryOut,
    ScorePayload,
)
from matchday.services.validators import (
    CompositionSlot,
    coerce_score,
    parse_played_at,
    validate_composition,
    validate_roster,
)

logger = logging.getLogger(__name__)


# --- Lettura ---


def _roster_sort_key(row: MatchPlayer):
    # Squadra A, poi B, poi non assegnati; dentro la squadra per posizione.
    return (
        row.team is None,
        row.team or "",
        row.position is None,
        row.position or 0,
        (row.player.last_name or "").lower(),
        row.player_id,
    )


def _entry(row: MatchPlayer) -> RosterEntryOut:
    return RosterEntryOut(
        id=row.player_id,
        first_name=row.player.first_name,
        last_name=row.player.last_name,
        team=row.team,
        position=row.position,
    )


def build_match_view(match: Match, rows: Iterable[MatchPlayer]) -> MatchOut:
    roster = [_entry(row) for row in sorted(rows, key=_roster_sort_key)]
    team_a = [entry for entry in roster if entry.team == TEAM_A]
    team_b = [entry for entry in roster if entry.team == TEAM_B]
    return MatchOut(
        id=match.id,
        played_at=match.played_at,
        location=match.location,
        reservation_url=match.reservation_url,
        status=match.status,
        team_a_score=match.team_a_score,
        team_b_score=match.team_b_score,
        created_at=match.created_at,
        updated_at=match.updated_at,
        roster=roster,
        teamA=team_a,
        teamB=team_b,
        compo_ready=(len(team_a) + len(team_b)) > 0,
    )


def _roster_rows(match_id: str, db: Session) -> list[MatchPlayer]:
    return db.query(MatchPlayer).filter(MatchPlayer.match_id == match_id).all()


def _rows_by_match(match_ids: list[str], db: Session) -> dict[str, list[MatchPlayer]]:
    grouped: dict[str, list[MatchPlayer]] = defaultdict(list)
    if not match_ids:
        return grouped
    for row in db.query(MatchPlayer).filter(MatchPlayer.match_id.in_(match_ids)).all():
        grouped[row.match_id].append(row)
    return grouped


def load_match(match_id: str, db: Session, for_update: bool = False) -> Match:
    query = db.query(Match).filter(Match.id == str(match_id))
    if for_update:
        query = query.with_for_update()
    match = query.first()
    if match is None:
        raise NotFoundError("Match non trovato.")
    return match


def get_match(match_id: str, db: Session) -> MatchOut:
    match = load_match(match_id, db)
    return build_match_view(match, _roster_rows(match.id, db))


def list_matches(db: Session) -> list[MatchOut]:
    """Tutti i match, dal più recente. Roster caricati con una sola query."""
    matches = db.query(Match).order_by(Match.played_at.desc(), Match.created_at.desc()).all()
    grouped = _rows_by_match([m.id for m in matches], db)
    return [build_match_view(m, grouped.get(m.id, [])) for m in matches]


def _winner(view: MatchOut) -> str:
    if not view.compo_ready:
        return "UNKNOWN"
    if view.team_a_score == view.team_b_score:
        return "D"
    return TEAM_A if view.team_a_score > view.team_b_score else TEAM_B


def list_played_matches(
    db: Session,
    limit: int = 10,
    offset: int = 0,
    player_id: str | None = None,
) -> PlayedMatchesPage:
    """
    Storico match giocati, paginato. Con player_id solo i match a cui il giocatore ha partecipato.
    winner: A | B | D (pareggio) | UNKNOWN (nessuna composizione).
    """
    if limit <= 0:
        raise ValidationError("Il parametro limit deve essere un intero positivo.")
    if offset < 0:
        raise ValidationError("Il parametro offset deve essere un intero positivo o nullo.")

    query = db.query(Match).filter(Match.status == STATUS_PLAYED)
    if player_id:
        query = query.filter(
            exists().where(MatchPlayer.match_id == Match.id, MatchPlayer.player_id == str(player_id))
        )

    total = query.count()
    matches = (
        query.order_by(Match.played_at.desc(), Match.created_at.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    grouped = _rows_by_match([m.id for m in matches], db)

    items = []
    for match in matches:
        view = build_match_view(match, grouped.get(match.id, []))
        items.append(PlayedMatchOut(**view.model_dump(), winner=_winner(view)))
    return PlayedMatchesPage(items=items, pagination=Pagination(limit=limit, offset=offset, total=total))


# --- Validazione comune ---


def _required_location(value: str | None) -> str:
    location = (value or "").strip()
    if not location:
        raise ValidationError("Il luogo è obbligatorio.")
    return location


def _ensure_players_exist(player_ids: list[str], db: Session) -> None:
    if not player_ids:
        return
    found = {pid for (pid,) in db.query(Player.id).filter(Player.id.in_(player_ids)).all()}
    missing = [pid for pid in player_ids if pid not in found]
    if missing:
        raise NotFoundError("Giocatore non trovato.", details={"player_ids": missing})


def _ensure_in_roster(slots: list[CompositionSlot], roster_ids: Iterable[str]) -> None:
    roster_set = set(roster_ids)
    outside = [slot.player_id for slot in slots if slot.player_id not in roster_set]
    if outside:
        raise ValidationError(
            "La composizione deve corrispondere al roster del match.",
            details={"player_ids": outside},
        )


def _ensure_scheduled(match: Match, what: str) -> None:
    if match.status == STATUS_PLAYED:
        logger.warning("Match id=%s giocato: modifica %s rifiutata", match.id, what)
        raise ConflictError(
            f"Match già giocato: modifica {what} non consentita. Resettare prima il punteggio.",
            details={"status": match.status},
        )


def _apply_composition(
    rows: list[MatchPlayer],
    team_a: list[CompositionSlot],
    team_b: list[CompositionSlot],
    db: Session,
) -> None:
    """Azzera tutte le assegnazioni e applica la nuova formazione (dentro la transazione del chiamante)."""
    for row in rows:
        row.team = None
        row.position = None
    db.flush()

    by_player = {row.player_id: row for row in rows}
    for team, slots in ((TEAM_A, team_a), (TEAM_B, team_b)):
        for slot in slots:
            row = by_player[slot.player_id]
            row.team = team
            row.position = slot.position
    db.flush()


# --- Scrittura ---


def create_match(payload: MatchCreate, db: Session, policy: MatchPolicy) -> MatchOut:
    """
    Crea un match in stato scheduled con il suo roster (ed eventualmente la formazione).
    Match e righe di roster vengono salvati insieme o per niente.
    """
    played_at = parse_played_at(payload.played_at)
    location = _required_location(payload.location)
    reservation_url = (payload.reservation_url or "").strip() or None

    has_teams = payload.teamA is not None or payload.teamB is not None
    if policy.require_full_teams_at_creation and not has_teams:
        raise ValidationError("Le squadre A e B sono obbligatorie alla creazione del match.")

    team_a: list[CompositionSlot] = []
    team_b: list[CompositionSlot] = []
    if has_teams:
        team_a, team_b = validate_composition(
            payload.teamA if payload.teamA is not None else [],
            payload.teamB if payload.teamB is not None else [],
        )
        if policy.require_full_teams_at_creation and (
            len(team_a) != policy.team_size or len(team_b) != policy.team_size
        ):
            raise ValidationError(
                f"Ogni squadra deve contenere esattamente {policy.team_size} giocatori.",
            )

    if payload.players is not None or not has_teams:
        roster_ids = validate_roster(payload.players, policy.roster_capacity)
    else:
        roster_ids = validate_roster([slot.player_id for slot in team_a + team_b], policy.roster_capacity)
    if has_teams:
        _ensure_in_roster(team_a + team_b, roster_ids)

    with transaction(db, "la creazione del match"):
        _ensure_players_exist(roster_ids, db)
        match = Match(
            played_at=played_at,
            location=location,
            reservation_url=reservation_url,
            status=STATUS_SCHEDULED,
        )
        db.add(match)
        db.flush()
        rows = [MatchPlayer(match_id=match.id, player_id=pid, team=None, position=None) for pid in roster_ids]
        db.add_all(rows)
        db.flush()
        if has_teams:
            _apply_composition(rows, team_a, team_b, db)

    logger.info(
        "Creato match id=%s luogo=%s roster=%s compo=%s",
        match.id, location, len(roster_ids), len(team_a) + len(team_b),
    )
    return get_match(match.id, db)


def update_match(match_id: str, payload: MatchUpdate, db: Session, policy: MatchPolicy) -> MatchOut:
    """
    Aggiorna data, luogo, prenotazione e (se presente nel body) il roster.
    Il roster è aggiornato per differenza: i giocatori mantenuti conservano squadra e posizione.
    """
    played_at = parse_played_at(payload.played_at)
    location = _required_location(payload.location)
    reservation_url = (payload.reservation_url or "").strip() or None
    replace_roster = "players" in payload.model_fields_set
    incoming_ids = validate_roster(payload.players, policy.roster_capacity) if replace_roster else []

    with transaction(db, "l'aggiornamento del match"):
        match = load_match(match_id, db, for_update=True)
        _ensure_scheduled(match, "del match")
        match.played_at = played_at
        match.location = location
        match.reservation_url = reservation_url

        if replace_roster:
            rows = _roster_rows(match.id, db)
            existing_ids = {row.player_id for row in rows}
            incoming_set = set(incoming_ids)
            to_delete = [row for row in rows if row.player_id not in incoming_set]
            to_insert = [pid for pid in incoming_ids if pid not in existing_ids]
            _ensure_players_exist(to_insert, db)

            logger.info(
                "Roster match id=%s: in arrivo=%s esistenti=%s da rimuovere=%s da inserire=%s",
                match.id, len(incoming_ids), len(existing_ids), len(to_delete), len(to_insert),
            )
            for row in to_delete:
                db.delete(row)
            db.flush()
            db.add_all(MatchPlayer(match_id=match.id, player_id=pid) for pid in to_insert)

    return get_match(match_id, db)


def assign_composition(match_id: str, payload: CompositionPayload, db: Session) -> MatchOut:
    """Sostituisce l'intera formazione A/B. Solo giocatori del roster, match non ancora giocato."""
    team_a, team_b = validate_composition(payload.teamA, payload.teamB)

    with transaction(db, "il salvataggio della composizione"):
        match = load_match(match_id, db, for_update=True)
        _ensure_scheduled(match, "della composizione")
        rows = _roster_rows(match.id, db)
        _ensure_in_roster(team_a + team_b, (row.player_id for row in rows))
        _apply_composition(rows, team_a, team_b, db)

    logger.info("Composizione match id=%s: A=%s B=%s", match_id, len(team_a), len(team_b))
    return get_match(match_id, db)


def enter_score(match_id: str, payload: ScorePayload, db: Session) -> MatchOut:
    """
    Unica transizione verso played. Richiede almeno un giocatore nel roster.
    Su un match già giocato corregge il punteggio senza toccare i voti.
    """
    score_a = coerce_score(payload.team_a_score)
    score_b = coerce_score(payload.team_b_score)
    if score_a is None or score_b is None:
        raise ValidationError("I punteggi devono essere interi positivi o zero.")

    with transaction(db, "l'aggiornamento del punteggio"):
        match = load_match(match_id, db, for_update=True)
        roster_size = db.query(func.count(MatchPlayer.id)).filter(MatchPlayer.match_id == match.id).scalar() or 0
        if roster_size < 1:
            raise ValidationError("Il punteggio non può essere inserito senza giocatori nel roster.")
        previous_status = match.status
        match.team_a_score = score_a
        match.team_b_score = score_b
        match.status = STATUS_PLAYED

    logger.info(
        "Punteggio match id=%s: %s-%s (%s -> %s)",
        match_id, score_a, score_b, previous_status, STATUS_PLAYED,
    )
    return get_match(match_id, db)


def reset_score(match_id: str, db: Session) -> MatchOut:
    """
    Riporta il match a scheduled e azzera i punteggi. Roster e composizione restano.
    I voti MVP del match vengono ritirati nella stessa transazione: un nuovo
    punteggio apre una nuova votazione.
    """
    with transaction(db, "il reset del punteggio"):
        match = load_match(match_id, db, for_update=True)
        retracted = (
            db.query(MvpVote)
            .filter(MvpVote.match_id == match.id)
            .delete(synchronize_session=False)
        )
        match.team_a_score = None
        match.team_b_score = None
        match.status = STATUS_SCHEDULED

    logger.info("Reset punteggio match id=%s: voti MVP ritirati=%s", match_id, retracted)
    return get_match(match_id, db)


def delete_match(match_id: str, db: Session) -> str:
    """Elimina voti, roster e match in un'unica transazione."""
    with transaction(db, "la cancellazione del match"):
        match = load_match(match_id, db, for_update=True)
        votes = db.query(MvpVote).filter(MvpVote.match_id == match.id).delete(synchronize_session=False)
        entries = db.query(MatchPlayer).filter(MatchPlayer.match_id == match.id).delete(synchronize_session=False)
        db.delete(match)

    logger.info("Eliminato match id=%s (roster=%s, voti=%s)", match_id, entries, votes)
    return str(match_id)
