from matchday.routers.health import router as health_router
from matchday.routers.matches import router as matches_router
from matchday.routers.mvp import router as mvp_router
from matchday.routers.players import router as players_router

__all__ = ["health_router", "matches_router", "mvp_router", "players_router"]
