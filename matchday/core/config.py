"""Application configuration. Load from environment."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _get_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} deve essere un intero (ricevuto {raw!r})")
    if value < minimum:
        raise RuntimeError(f"{name} deve essere >= {minimum} (ricevuto {value})")
    return value


def get_database_url() -> str:
    """Return DATABASE_URL from environment. Raises if missing."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is required")
    return url


def get_cors_origin() -> str:
    return os.environ.get("CORS_ORIGIN") or "*"


def get_log_level() -> str:
    return (os.environ.get("LOG_LEVEL") or "INFO").upper()


def get_idempotency_ttl_seconds() -> int:
    """Finestra di conservazione delle risposte idempotenti (default 60s)."""
    return _get_int("IDEMPOTENCY_TTL_SECONDS", 60, minimum=1)


@dataclass(frozen=True)
class MatchPolicy:
    """
    Profilo di configurazione della macchina a stati dei match.

    roster_capacity: numero massimo di giocatori per match.
    require_full_teams_at_creation: se True il match va creato con le due
    squadre già complete (roster_capacity // 2 giocatori per parte, es. 5v5).
    """
    roster_capacity: int = 10
    require_full_teams_at_creation: bool = False

    @property
    def team_size(self) -> int:
        return self.roster_capacity // 2


def get_match_policy() -> MatchPolicy:
    """Legge ROSTER_CAPACITY e REQUIRE_FULL_TEAMS_AT_CREATION."""
    full_teams = (os.environ.get("REQUIRE_FULL_TEAMS_AT_CREATION") or "").strip().lower()
    return MatchPolicy(
        roster_capacity=_get_int("ROSTER_CAPACITY", 10, minimum=1),
        require_full_teams_at_creation=full_teams in _TRUE_VALUES,
    )
