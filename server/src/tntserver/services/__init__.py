"""Service layer utilities."""

from .api_keys import ApiKeyStore
from .geofence import haversine_m, is_final_destination
from .recalculation import CoordsUpdateResult, CoordsUpdateService

__all__ = [
    "ApiKeyStore",
    "haversine_m",
    "is_final_destination",
    "CoordsUpdateResult",
    "CoordsUpdateService",
]
