from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ScanRecord:
    box_id: str
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    operator_id: Optional[str] = None
    scanned_at: int = field(default_factory=_now_ms)
    comment: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    @classmethod
    def capture(
        cls,
        box_id: str,
        latitude: float,
        longitude: float,
        *,
        accuracy: Optional[float] = None,
        operator_id: Optional[str] = None,
        comment: Optional[str] = None,
    ) -> "ScanRecord":
        """Build a record stamped with the current time and a fresh scan_id."""
        return cls(
            box_id=box_id,
            latitude=latitude,
            longitude=longitude,
            accuracy=accuracy,
            operator_id=operator_id,
            comment=comment,
            metadata={"scan_id": str(uuid.uuid4())},
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "boxId": self.box_id,
            "operatorId": self.operator_id,
            "comment": self.comment,
            "time": self.scanned_at,
            "location": {
                "coords": {
                    "latitude": self.latitude,
                    "longitude": self.longitude,
                    "accuracy": self.accuracy,
                },
                "timestamp": self.scanned_at,
            },
            "metadata": dict(self.metadata),
        }
