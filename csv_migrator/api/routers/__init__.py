"""API routers."""

from .config import router as config_router
from .health import router as health_router
from .jobs import router as jobs_router
from .preview import router as preview_router
from .progress import router as progress_router
from .uploads import router as uploads_router

__all__ = [
    "config_router",
    "health_router",
    "jobs_router",
    "preview_router",
    "progress_router",
    "uploads_router",
]
