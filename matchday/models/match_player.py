"""
Roster del match: un record per ogni giocatore iscritto.
team/position null = iscritto ma non ancora assegnato a una squadra.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from matchday.core.database import Base

TEAM_A = "A"
TEAM_B = "B"


class MatchPlayer(Base):
    __tablename__ = "match_players"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(
        String(36), ForeignKey("matches.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    player_id = Column(
        String(36), ForeignKey("players.id"),
        nullable=False, index=True,
    )
    team = Column(String(1), nullable=True)
    position = Column(Integer, nullable=True)

    # --- Relazioni ---
    player = relationship("Player", lazy="joined")

    # --- Vincoli ---
    __table_args__ = (
        Index("uq_match_players_match_player", "match_id", "player_id", unique=True),
        Index("uq_match_players_match_team_position", "match_id", "team", "position", unique=True),
        CheckConstraint("team IS NULL OR team IN ('A', 'B')", name="ck_match_players_team"),
        CheckConstraint("position IS NULL OR position >= 1", name="ck_match_players_position"),
    )
