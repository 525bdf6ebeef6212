"""
Routers for the vehicles app.
"""

from carintel.apps.vehicles.routers.vehicles import fallback_router
from carintel.apps.vehicles.routers.vehicles import router as vehicles_router

__all__ = [
    "fallback_router",
    "vehicles_router",
]
