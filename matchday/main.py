"""Matchday, API per partite amatoriali: roster, composizione, punteggio e voto MVP."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from matchday.core.config import get_cors_origin, get_idempotency_ttl_seconds, get_log_level
from matchday.core.database import init_db
from matchday.core.errors import DomainError
from matchday.core.idempotency import IdempotencyGate, InMemoryIdempotencyStore
from matchday.core.responses import domain_error_response, error_body, json_response
from matchday.routers import health_router, matches_router, mvp_router, players_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Matchday",
    description="Match lifecycle & MVP voting API for recreational football.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[get_cors_origin()],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
# mvp prima di players: /api/players/mvp-stats non deve finire su /api/players/{player_id}
app.include_router(mvp_router)
app.include_router(players_router)
app.include_router(matches_router)


@app.exception_handler(DomainError)
def handle_domain_error(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s: %s (%s)", request.method, request.url.path, exc.status_code, exc.message, exc.details)
    return domain_error_response(exc)


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    return json_response(400, error_body("Richiesta non valida.", exc.errors()))


@app.exception_handler(StarletteHTTPException)
def handle_http_exception(request: Request, exc: StarletteHTTPException):
    message = "Route non trovata." if exc.status_code == 404 else str(exc.detail)
    return json_response(exc.status_code, error_body(message))


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Errore imprevisto %s %s: %s", request.method, request.url.path, exc)
    return json_response(500, error_body("Errore del server.", str(exc)[:300]))


@app.on_event("startup")
def on_startup():
    """Logging, tabelle e store idempotente (uno per processo)."""
    logging.basicConfig(level=get_log_level(), format="%(levelname)s [%(name)s] %(message)s")
    init_db()
    ttl = get_idempotency_ttl_seconds()
    app.state.idempotency_gate = IdempotencyGate(InMemoryIdempotencyStore(ttl_seconds=ttl))
    logger.info("Gate idempotente attivo (ttl=%ss)", ttl)


@app.on_event("shutdown")
def on_shutdown():
    gate = getattr(app.state, "idempotency_gate", None)
    if gate is not None:
        gate.store.clear()
        logger.info("Store idempotente svuotato")
