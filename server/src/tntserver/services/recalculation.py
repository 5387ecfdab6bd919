"""Bulk school-coordinate updates followed by geofence recalculation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable

from tntserver.repositories import BoxRepository, ScanRepository

from .geofence import DEFAULT_RADIUS_M, is_final_destination, scan_coords, school_coords

logger = logging.getLogger(__name__)


@dataclass
class CoordsUpdateResult:
    updated: int = 0
    matched: int = 0
    recalculated: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"updated": self.updated, "matched": self.matched, "recalculated": self.recalculated}


class CoordsUpdateService:
    """Apply new school coordinates and refresh finalDestination on affected scans."""

    def __init__(
        self,
        boxes: BoxRepository,
        scans: ScanRepository,
        radius_m: float = DEFAULT_RADIUS_M,
    ) -> None:
        self.boxes = boxes
        self.scans = scans
        self.radius_m = radius_m

    def apply(self, admin_id: str, coords: Iterable[Dict]) -> CoordsUpdateResult:
        result = CoordsUpdateResult()
        schools = []
        for entry in coords:
            key = (entry["school"], entry["district"])
            matched, modified = self.boxes.update_school_coords(
                admin_id, key[0], key[1], entry["schoolLatitude"], entry["schoolLongitude"]
            )
            result.matched += matched
            result.updated += modified
            schools.append(key)

        if result.updated == 0:
            return result

        boxes = {box["id"]: box for box in self.boxes.find_by_schools(admin_id, schools)}
        for scan in self.scans.find_by_box_ids(boxes):
            reached = is_final_destination(
                school_coords(boxes.get(scan.get("boxId"))),
                scan_coords(scan),
                self.radius_m,
            )
            if reached != scan.get("finalDestination"):
                self.scans.set_final_destination(scan["id"], reached)
                result.recalculated += 1

        logger.info(
            "Coordinates updated for admin=%s: matched=%s updated=%s recalculated=%s",
            admin_id,
            result.matched,
            result.updated,
            result.recalculated,
        )
        return result
