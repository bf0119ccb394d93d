"""
Routers Package
"""

from app.routers.broadcasts import router as broadcasts_router
from app.routers.instances import router as instances_router

__all__ = [
    "broadcasts_router",
    "instances_router",
]
