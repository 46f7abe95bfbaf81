"""SQLAlchemy engine, session, dependency e transazioni."""

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from matchday.core.config import get_database_url
from matchday.core.errors import DomainError, StorageError

logger = logging.getLogger(__name__)


def _build_engine(url: str):
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True, echo=False)

    # SQLite (test e sviluppo locale): connessione condivisa tra thread,
    # in-memory su una sola connessione altrimenti ogni sessione vede un DB vuoto.
    kwargs = {"connect_args": {"check_same_thread": False}, "echo": False}
    if parsed.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    sqlite_engine = create_engine(url, **kwargs)

    @event.listens_for(sqlite_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = _build_engine(get_database_url())

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Dependency that yields a DB session. Caller must close."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, label: str):
    """
    Unità di lavoro tutto-o-niente: commit a fine blocco, rollback completo
    su qualsiasi errore. Gli errori SQLAlchemy diventano StorageError.
    """
    try:
        yield db
        db.commit()
    except DomainError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Transazione '%s' annullata: %s", label, e)
        raise StorageError(f"Errore database durante {label}.", details=str(e)[:300]) from e
    except Exception:
        db.rollback()
        raise


def describe_database_target() -> str:
    """Target del DB senza credenziali, per i log di avvio."""
    url = engine.url
    return (
        f"driver={url.get_backend_name()} user={url.username or 'unknown'} "
        f"host={url.host or 'local'} port={url.port or 'default'} db={url.database or 'memory'}"
    )


def init_db() -> None:
    """
    Crea tutte le tabelle.
    I modelli devono essere importati prima per registrare i metadata.
    """
    from matchday.models import match, match_player, mvp_vote, player  # noqa: F401

    logger.info("DB target -> %s", describe_database_target())
    Base.metadata.create_all(bind=engine)
    logger.info("create_all completato")
