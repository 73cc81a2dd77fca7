"""API routers."""

from .documents import router as documents_router
from .projects import router as projects_router
from .versions import router as versions_router

__all__ = [
    "documents_router",
    "projects_router",
    "versions_router",
]
