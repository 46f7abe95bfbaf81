"""Envelope JSON comune a tutte le risposte API: {success, data} / {success, error}."""

import json
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import Response
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from matchday.core.errors import DomainError, ValidationError


def success_body(data: Any) -> dict[str, Any]:
    return {"success": True, "data": jsonable_encoder(data)}


def error_body(message: str, details: Any = None) -> dict[str, Any]:
    error: dict[str, Any] = {"message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return {"success": False, "error": error}


def encode_body(body: dict[str, Any]) -> bytes:
    """Serializzazione deterministica, usata anche per il replay idempotente."""
    return json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def json_response(status_code: int, body: dict[str, Any]) -> Response:
    return Response(content=encode_body(body), status_code=status_code, media_type="application/json")


def success_response(data: Any, status_code: int = 200) -> Response:
    return json_response(status_code, success_body(data))


def domain_error_response(exc: DomainError) -> Response:
    return json_response(exc.status_code, error_body(exc.message, exc.details))


def parse_payload(model: type[BaseModel], body: Any) -> BaseModel:
    """Body grezzo -> schema. Stesso 400 dell'handler di RequestValidationError."""
    try:
        return model.model_validate(body)
    except PydanticValidationError as e:
        details = [{"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in e.errors()]
        raise ValidationError("Richiesta non valida.", details) from e
