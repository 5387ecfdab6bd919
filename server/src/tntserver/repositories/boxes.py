"""Repositories for boxes (one document per physical box, scoped by admin)."""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional, Protocol, Tuple


class BoxRepository(Protocol):
    """Protocol for box storage."""

    def insert_many(self, boxes: Iterable[Dict]) -> int:  # noqa: D401
        """Store new boxes and return how many were inserted."""

    def get(self, admin_id: str, box_id: str) -> Optional[Dict]:
        """Return one box or None."""

    def count(self, admin_id: str, filters: Optional[Dict] = None) -> int:
        """Count boxes matching equality filters."""

    def query(self, admin_id: str, filters: Optional[Dict] = None, skip: int = 0, limit: int = 0) -> List[Dict]:
        """Return matching boxes in insertion order; ``limit`` 0 means no limit."""

    def distinct(self, admin_id: str, field: str, filters: Optional[Dict] = None) -> List:
        """Return the distinct values of ``field`` among matching boxes."""

    def update_school_coords(
        self, admin_id: str, school: str, district: str, latitude: float, longitude: float
    ) -> Tuple[int, int]:
        """Set school coordinates on matching boxes; return (matched, modified)."""

    def find_by_schools(self, admin_id: str, schools: Iterable[Tuple[str, str]]) -> List[Dict]:
        """Return boxes whose (school, district) pair is listed."""

    def delete_many(self, admin_id: str, conditions: Dict) -> List[str]:
        """Delete matching boxes and return their ids."""


def _matches(box: Dict, admin_id: str, filters: Dict) -> bool:
    if box.get("adminId") != admin_id:
        return False
    return all(box.get(key) == value for key, value in filters.items())


class InMemoryBoxRepository:
    """Simple in-memory box storage for development/testing."""

    def __init__(self) -> None:
        self._items: List[Dict] = []
        self._lock = threading.Lock()

    def insert_many(self, boxes: Iterable[Dict]) -> int:
        new_items = [dict(b) for b in boxes]
        with self._lock:
            self._items.extend(new_items)
        return len(new_items)

    def get(self, admin_id: str, box_id: str) -> Optional[Dict]:
        with self._lock:
            for box in self._items:
                if box.get("id") == box_id and box.get("adminId") == admin_id:
                    return dict(box)
        return None

    def count(self, admin_id: str, filters: Optional[Dict] = None) -> int:
        with self._lock:
            return sum(1 for box in self._items if _matches(box, admin_id, filters or {}))

    def update_school_coords(
        self, admin_id: str, school: str, district: str, latitude: float, longitude: float
    ) -> Tuple[int, int]:
        matched = modified = 0
        with self._lock:
            for box in self._items:
                if not _matches(box, admin_id, {"school": school, "district": district}):
                    continue
                matched += 1
                if box.get("schoolLatitude") != latitude or box.get("schoolLongitude") != longitude:
                    box["schoolLatitude"] = latitude
                    box["schoolLongitude"] = longitude
                    modified += 1
        return matched, modified

    def find_by_schools(self, admin_id: str, schools: Iterable[Tuple[str, str]]) -> List[Dict]:
        wanted = set(schools)
        with self._lock:
            return [
                dict(box)
                for box in self._items
                if box.get("adminId") == admin_id and (box.get("school"), box.get("district")) in wanted
            ]

    def delete_many(self, admin_id: str, conditions: Dict) -> List[str]:
        with self._lock:
            removed = [box for box in self._items if _matches(box, admin_id, conditions)]
            self._items = [box for box in self._items if not _matches(box, admin_id, conditions)]
        return [box.get("id") for box in removed]

    def query(self, admin_id: str, filters: Optional[Dict] = None, skip: int = 0, limit: int = 0) -> List[Dict]:
        with self._lock:
            found = [dict(box) for box in self._items if _matches(box, admin_id, filters or {})]
        found = found[max(skip, 0):]
        return found[:limit] if limit > 0 else found

    def distinct(self, admin_id: str, field: str, filters: Optional[Dict] = None) -> List:
        values: List = []
        with self._lock:
            for box in self._items:
                if field not in box or not _matches(box, admin_id, filters or {}):
                    continue
                if box[field] not in values:
                    values.append(box[field])
        return values
