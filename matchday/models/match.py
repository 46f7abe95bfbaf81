"""Match ORM model: aggregate root di roster, composizione, punteggio e voti MVP."""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from matchday.core.database import Base

STATUS_SCHEDULED = "scheduled"
STATUS_PLAYED = "played"


class Match(Base):
    __tablename__ = "matches"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    played_at = Column(DateTime(timezone=True), nullable=False, index=True)
    location = Column(String(255), nullable=False)
    reservation_url = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default=STATUS_SCHEDULED, index=True)
    team_a_score = Column(Integer, nullable=True)
    team_b_score = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # --- Vincoli ---
    # Punteggi valorizzati se e solo se il match è giocato.
    __table_args__ = (
        CheckConstraint(
            "(status = 'played' AND team_a_score IS NOT NULL AND team_b_score IS NOT NULL) "
            "OR (status = 'scheduled' AND team_a_score IS NULL AND team_b_score IS NULL)",
            name="ck_matches_score_status",
        ),
    )
