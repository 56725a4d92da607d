"""API routers."""

from civica.routers.health import router as health_router
from civica.routers.insights import router as insights_router
from civica.routers.issues import router as issues_router

__all__ = ["health_router", "insights_router", "issues_router"]
