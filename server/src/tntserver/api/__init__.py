"""API blueprint package for the TnT server."""

from .scans import scans_bp
from .boxes import boxes_bp

__all__ = [
    "scans_bp",
    "boxes_bp",
]
