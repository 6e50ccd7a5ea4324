"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .audit import router as audit_router
from .requests import router as requests_router
from .cards import router as cards_router
from .logs import router as logs_router

__all__ = [
    "audit_router",
    "requests_router",
    "cards_router",
    "logs_router",
]
