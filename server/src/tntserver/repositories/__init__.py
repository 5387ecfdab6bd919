"""Repository interfaces and implementations."""

from .scans import ScanRepository, InMemoryScanRepository
from .boxes import BoxRepository, InMemoryBoxRepository

__all__ = [
    "ScanRepository",
    "InMemoryScanRepository",
    "BoxRepository",
    "InMemoryBoxRepository",
]
