"""API routes."""

from .auth import router as auth_router
from .data import router as data_router
from .entries import router as entries_router
from .images import router as images_router
from .migrate import router as migrate_router

__all__ = [
    "auth_router",
    "data_router",
    "entries_router",
    "images_router",
    "migrate_router",
]
