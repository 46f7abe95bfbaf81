"""
Validatori puri per roster e composizione.
Nessun accesso al DB: l'appartenenza al roster del match è verificata dal match_service.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from matchday.core.errors import ValidationError

DEFAULT_ROSTER_CAPACITY = 10
# limite della colonna INTEGER
MAX_INT = 2**31 - 1


@dataclass(frozen=True)
class CompositionSlot:
    player_id: str
    position: int


def _normalize_id(value: Any) -> str:
    if value is None or isinstance(value, bool):
        return ""
    return str(value).strip()


def _coerce_int(value: Any) -> int | None:
    """Intero da int, float intero o stringa numerica ("3", "1.0", "1e0"). None se non convertibile o fuori INTEGER."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        raw = value.strip()
        try:
            value = int(raw)
        except ValueError:
            try:
                value = float(raw)
            except ValueError:
                return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if not isinstance(value, int):
        return None
    return value if abs(value) <= MAX_INT else None


def _coerce_positive_int(value: Any) -> int | None:
    number = _coerce_int(value)
    return number if number is not None and number >= 1 else None


def coerce_score(value: Any) -> int | None:
    """Punteggio: intero >= 0."""
    number = _coerce_int(value)
    return number if number is not None and number >= 0 else None


def parse_played_at(value: Any) -> datetime:
    """Data/ora ISO-8601 obbligatoria."""
    raw = value.strip() if isinstance(value, str) else ""
    if not raw:
        raise ValidationError("La data/ora non è valida.")
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError("La data/ora non è valida.", details=raw)


def validate_roster(candidate_ids: Any, max_size: int = DEFAULT_ROSTER_CAPACITY) -> list[str]:
    """
    Valida la lista dei giocatori di un match.
    None = roster vuoto. Ritorna gli id come stringhe, nell'ordine ricevuto.
    """
    if candidate_ids is None:
        return []
    if not isinstance(candidate_ids, list):
        raise ValidationError("La lista dei giocatori deve essere un array.")
    if len(candidate_ids) > max_size:
        raise ValidationError(f"Il match non può contenere più di {max_size} giocatori.")

    ids = [_normalize_id(value) for value in candidate_ids]
    if any(not player_id for player_id in ids):
        raise ValidationError("Ogni giocatore deve essere selezionato.")
    if len(set(ids)) != len(ids):
        raise ValidationError("I giocatori devono essere distinti.")
    return ids


def _normalize_slot(entry: Any) -> tuple[str, int | None]:
    if not isinstance(entry, dict):
        return "", None
    return _normalize_id(entry.get("player_id")), _coerce_positive_int(entry.get("position"))


def _check_positions(slots: list[tuple[str, int | None]], team_label: str) -> None:
    positions = [position for _, position in slots]
    if any(position is None for position in positions):
        raise ValidationError(f"Le posizioni della squadra {team_label} devono essere interi positivi.")
    if len(set(positions)) != len(positions):
        raise ValidationError(f"Le posizioni della squadra {team_label} devono essere uniche.")


def validate_composition(team_a: Any, team_b: Any) -> tuple[list[CompositionSlot], list[CompositionSlot]]:
    """
    Valida una formazione A/B: id distinti su entrambe le squadre,
    posizioni intere positive e uniche per squadra (A3 e B3 non collidono).
    """
    if not isinstance(team_a, list) or not isinstance(team_b, list):
        raise ValidationError("Le squadre A e B devono essere liste di giocatori.")
    if len(team_a) + len(team_b) < 1:
        raise ValidationError("La composizione deve contenere almeno un giocatore.")

    slots_a = [_normalize_slot(entry) for entry in team_a]
    slots_b = [_normalize_slot(entry) for entry in team_b]
    all_ids = [player_id for player_id, _ in slots_a + slots_b]

    if any(not player_id for player_id in all_ids):
        raise ValidationError("Ogni giocatore deve essere selezionato.")
    if len(set(all_ids)) != len(all_ids):
        raise ValidationError("I giocatori devono essere distinti.")

    _check_positions(slots_a, "A")
    _check_positions(slots_b, "B")

    return (
        [CompositionSlot(player_id=pid, position=pos) for pid, pos in slots_a],
        [CompositionSlot(player_id=pid, position=pos) for pid, pos in slots_b],
    )
