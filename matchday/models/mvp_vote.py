"""
Voti MVP: un voto per (match, votante).
Il vincolo unico è la vera garanzia contro il doppio voto concorrente.
"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.sql import func

from matchday.core.database import Base


class MvpVote(Base):
    __tablename__ = "match_mvp_votes"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    match_id = Column(
        String(36), ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    voter_id = Column(String(36), ForeignKey("players.id"), nullable=False)
    voted_for_id = Column(String(36), ForeignKey("players.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("uq_match_mvp_votes_match_voter", "match_id", "voter_id", unique=True),
    )
