"""
app/api/routers package marker.
"""

from app.api.routers.cron_router import router as cron_router
from app.api.routers.pages_router import router as pages_router

__all__ = [
    "cron_router",
    "pages_router",
]
