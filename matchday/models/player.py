"""Player ORM model. Anagrafica e contatti del giocatore."""

from uuid import uuid4

from sqlalchemy import Column, DateTime, String
from sqlalchemy.sql import func

from matchday.core.database import Base


class Player(Base):
    __tablename__ = "players"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
