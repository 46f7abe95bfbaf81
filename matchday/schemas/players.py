"""Pydantic schemas per API Players."""

from datetime import datetime

from pydantic import BaseModel


class PlayerPayload(BaseModel):
    """Body di creazione/modifica. La validazione vera è nel service layer."""
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None


class PlayerOut(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str | None = None
    phone: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class PlayerRef(BaseModel):
    id: str
    first_name: str
    last_name: str


class DeletedRef(BaseModel):
    id: str
