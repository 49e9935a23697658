"""
app/api/routers package marker.
"""

from app.api.routers.import_jobs import router as import_jobs_router

__all__ = [
    "import_jobs_router",
]
