from matchday.core.config import MatchPolicy, get_database_url, get_match_policy
from matchday.core.database import Base, SessionLocal, engine, get_db, init_db, transaction
from matchday.core.errors import ConflictError, DomainError, NotFoundError, StorageError, ValidationError

__all__ = [
    "get_database_url",
    "get_match_policy",
    "MatchPolicy",
    "Base",
    "SessionLocal",
    "engine",
    "get_db",
    "init_db",
    "transaction",
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
]
