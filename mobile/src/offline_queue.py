from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, Iterable, List, Optional

from .storage import LocalStore

logger = logging.getLogger(__name__)

OFFLINE_KEY = "offlineData"
FAILED_KEY = "offlineFailedData"


def _as_payload(record: Any) -> Dict:
    if hasattr(record, "to_payload"):
        return record.to_payload()
    if is_dataclass(record) and not isinstance(record, type):
        return asdict(record)
    return record


def encode(records: Iterable[Any]) -> str:
    return json.dumps([_as_payload(r) for r in records], ensure_ascii=False)


def decode(raw: Optional[str]) -> List[Dict]:
    """Decode a stored queue; absent or malformed values yield an empty list."""
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Discarding malformed offline queue value (%d bytes)", len(raw))
        return []
    if not isinstance(data, list):
        logger.warning("Discarding non-array offline queue value")
        return []
    return data


class OfflineQueue:
    """
    Owner of one serialized queue value in the local store.

    Every read-modify-write of the key goes through this object and runs under
    a single lock, so a capture appending records and a drain removing them
    cannot overwrite each other's changes.
    """

    def __init__(self, store: LocalStore, key: str = OFFLINE_KEY) -> None:
        self.store = store
        self.key = key
        self._lock = threading.RLock()

    def load(self) -> List[Dict]:
        with self._lock:
            return decode(self.store.get(self.key))

    def save(self, records: Iterable[Any]) -> bool:
        with self._lock:
            ok = self.store.set(self.key, encode(records))
        if not ok:
            logger.error("Error updating offline data (key=%s)", self.key)
        return ok

    def append(self, new_records: Iterable[Any]) -> bool:
        additions = [_as_payload(r) for r in new_records]
        with self._lock:
            queue = self.load() + additions
            if not self.save(queue):
                logger.error("Error storing offline data: %d record(s) not persisted", len(additions))
                return False
        logger.info("Queued %d scan(s) offline (queue size=%d, key=%s)", len(additions), len(queue), self.key)
        return True

    def discard(self, record: Dict) -> bool:
        """Remove the first persisted record equal to ``record``."""
        with self._lock:
            queue = self.load()
            try:
                queue.remove(record)
            except ValueError:
                return True
            return self.save(queue)

    def move_to(self, target: "OfflineQueue") -> int:
        """Append every record to ``target``; this queue is emptied only once they are stored there."""
        with self._lock:
            records = self.load()
            if not records:
                return 0
            if not target.append(records):
                logger.error("Could not move %d record(s) from %s to %s", len(records), self.key, target.key)
                return 0
            if not self.save([]):
                logger.error("Moved records are still present under %s", self.key)
        return len(records)

    def clear(self) -> bool:
        with self._lock:
            return self.save([])

    def size(self) -> int:
        return len(self.load())
