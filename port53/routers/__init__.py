"""
API Routers for port53
"""

from .backends import router as backends_router
from .zones import router as zones_router
from .records import router as records_router
from .health import router as health_router

__all__ = [
    "backends_router",
    "zones_router",
    "records_router",
    "health_router",
]
