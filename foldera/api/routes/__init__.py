"""
API Routes

Modular route definitions for the Foldera detection API.
"""
from foldera.api.routes.health import router as health_router
from foldera.api.routes.conflicts import router as conflicts_router

__all__ = [
    "health_router",
    "conflicts_router",
]
