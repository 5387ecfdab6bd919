"""
Repository abstraction for scans.

Only an in-memory implementation exists; the interface keeps the API layer
independent of the storage backend.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Protocol


class ScanRepository(Protocol):
    """Protocol defining scan repository behavior."""

    def save(self, scan: Dict) -> None:  # noqa: D401
        """Persist a scan."""

    def find_by_box_ids(self, box_ids: Iterable[str]) -> List[Dict]:
        """Return scans belonging to any of the given boxes, oldest first."""

    def set_final_destination(self, scan_id: str, value: bool) -> bool:
        """Update one scan's finalDestination flag."""

    def delete_by_box_ids(self, box_ids: Iterable[str]) -> int:
        """Drop every scan of the given boxes."""


class InMemoryScanRepository:
    """Simple in-memory storage for development/testing."""

    def __init__(self) -> None:
        self._items: List[Dict] = []
        self._lock = threading.Lock()

    def save(self, scan: Dict) -> None:
        with self._lock:
            self._items.append(dict(scan))

    def find_by_box_ids(self, box_ids: Iterable[str]) -> List[Dict]:
        wanted = set(box_ids)
        with self._lock:
            return [dict(s) for s in self._items if s.get("boxId") in wanted]

    def set_final_destination(self, scan_id: str, value: bool) -> bool:
        with self._lock:
            for scan in self._items:
                if scan.get("id") == scan_id:
                    scan["finalDestination"] = value
                    return True
        return False

    def delete_by_box_ids(self, box_ids: Iterable[str]) -> int:
        wanted = set(box_ids)
        with self._lock:
            kept = [s for s in self._items if s.get("boxId") not in wanted]
            removed = len(self._items) - len(kept)
            self._items = kept
        return removed
