from matchday.models.match import STATUS_PLAYED, STATUS_SCHEDULED, Match
from matchday.models.match_player import TEAM_A, TEAM_B, MatchPlayer
from matchday.models.mvp_vote import MvpVote
from matchday.models.player import Player

__all__ = [
    "Player",
    "Match",
    "MatchPlayer",
    "MvpVote",
    "STATUS_SCHEDULED",
    "STATUS_PLAYED",
    "TEAM_A",
    "TEAM_B",
]
