"""API routers, one module per resource."""

from psychic_homily.api.routes.admin import router as admin_router
from psychic_homily.api.routes.artists import router as artists_router
from psychic_homily.api.routes.auth import router as auth_router
from psychic_homily.api.routes.health import router as health_router
from psychic_homily.api.routes.me import router as me_router
from psychic_homily.api.routes.shows import router as shows_router
from psychic_homily.api.routes.venues import router as venues_router

ROUTERS = (
    health_router,
    auth_router,
    shows_router,
    venues_router,
    artists_router,
    me_router,
    admin_router,
)

__all__ = ["ROUTERS"]
