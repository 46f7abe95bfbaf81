"""
Gate idempotente per le operazioni di creazione (giocatori, match).

Il client invia un token opaco nell'header Idempotency-Key: se per quel token
esiste una risposta ancora valida, viene restituita identica (status + body)
senza rieseguire l'operazione. Le risposte scadono dopo una finestra fissa e
vengono eliminate in modo lazy ad ogni invocazione del gate.
I token sono globali al processo, non per tipo di risorsa.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from fastapi import Request
from fastapi.responses import Response

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


@dataclass(frozen=True)
class StoredResponse:
    status_code: int
    body: bytes
    stored_at: float


class IdempotencyStore(Protocol):
    """Interfaccia dello store: sostituibile con una cache distribuita."""

    def get(self, token: str) -> StoredResponse | None: ...

    def put_if_absent(self, token: str, status_code: int, body: bytes) -> StoredResponse: ...

    def sweep(self) -> int: ...

    def clear(self) -> None: ...


class InMemoryIdempotencyStore:
    """Store in memoria di processo, thread-safe."""

    def __init__(self, ttl_seconds: float = 60, clock: Callable[[], float] = time.monotonic):
        self._ttl = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[str, StoredResponse] = {}

    def _is_live(self, record: StoredResponse, now: float) -> bool:
        return now - record.stored_at < self._ttl

    def get(self, token: str) -> StoredResponse | None:
        with self._lock:
            record = self._records.get(token)
            if record is None:
                return None
            if not self._is_live(record, self._clock()):
                del self._records[token]
                return None
            return record

    def put_if_absent(self, token: str, status_code: int, body: bytes) -> StoredResponse:
        """Salva la risposta se non esiste già un record valido; ritorna quello vincente."""
        with self._lock:
            now = self._clock()
            existing = self._records.get(token)
            if existing is not None and self._is_live(existing, now):
                return existing
            record = StoredResponse(status_code=status_code, body=body, stored_at=now)
            self._records[token] = record
            return record

    def sweep(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [token for token, rec in self._records.items() if not self._is_live(rec, now)]
            for token in expired:
                del self._records[token]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class IdempotencyGate:
    """
    Esegue un'operazione di creazione al più una volta per token.
    Richieste concorrenti con lo stesso token vengono serializzate: la seconda
    attende la prima e ne riceve la risposta.
    """

    def __init__(self, store: IdempotencyStore):
        self.store = store
        self._guard = threading.Lock()
        self._token_locks: dict[str, list] = {}

    def _acquire(self, token: str) -> threading.Lock:
        with self._guard:
            entry = self._token_locks.setdefault(token, [threading.Lock(), 0])
            entry[1] += 1
        entry[0].acquire()
        return entry[0]

    def _release(self, token: str) -> None:
        with self._guard:
            entry = self._token_locks[token]
            entry[0].release()
            entry[1] -= 1
            if entry[1] == 0:
                del self._token_locks[token]

    def execute(self, token: str | None, operation: Callable[[], Response]) -> Response:
        swept = self.store.sweep()
        if swept:
            logger.info("idempotency: eliminati %s record scaduti", swept)

        token = (token or "").strip()
        if not token:
            return operation()

        self._acquire(token)
        try:
            cached = self.store.get(token)
            if cached is not None:
                logger.info("idempotency: replay token=%s status=%s", token, cached.status_code)
                return _replay(cached)
            response = operation()
            stored = self.store.put_if_absent(token, response.status_code, bytes(response.body))
            return _replay(stored)
        finally:
            self._release(token)


def _replay(record: StoredResponse) -> Response:
    return Response(content=record.body, status_code=record.status_code, media_type="application/json")


def get_idempotency_gate(request: Request) -> IdempotencyGate:
    """Dependency: gate creato all'avvio e agganciato ad app.state."""
    return request.app.state.idempotency_gate
