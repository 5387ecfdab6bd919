"""
Replays the offline scan queue against the scan-ingest endpoint.

A drain pass walks a snapshot of the queue head first. Each record is
attempted exactly once: it leaves the persisted queue whether or not the
upload worked, and the ones that failed are handed back to the caller in a
single batch at the end of the pass.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .api_client import IngestError
from .offline_queue import OfflineQueue

logger = logging.getLogger(__name__)

FAILURE_TITLE = "Error sending offline data"
FAILURE_MESSAGE = "Offline data will be sent when connection is restored"

PendingUpdater = Callable[[List[Dict]], List[Dict]]
PendingSink = Callable[[PendingUpdater], None]


class DrainState(str, enum.Enum):
    IDLE = "idle"
    DRAINING = "draining"
    RECONCILING = "reconciling"


@dataclass
class DrainResult:
    attempted: int = 0
    sent: int = 0
    failed: List[Dict] = field(default_factory=list)


class PendingScans:
    """In-memory list of scans the user still has to see delivered."""

    def __init__(self, items: Optional[List[Dict]] = None) -> None:
        self._items: List[Dict] = list(items or [])
        self._lock = threading.Lock()

    def update(self, updater: PendingUpdater) -> None:
        with self._lock:
            self._items = updater(list(self._items))

    @property
    def items(self) -> List[Dict]:
        with self._lock:
            return list(self._items)


def _log_notification(title: str, message: str) -> None:
    logger.warning("%s: %s", title, message)


class SyncEngine:
    def __init__(
        self,
        queue: OfflineQueue,
        send: Callable[[Dict], bool],
        *,
        notify: Optional[Callable[[str, str], None]] = None,
        failed_queue: Optional[OfflineQueue] = None,
    ) -> None:
        self.queue = queue
        self.send = send
        self.notify = notify or _log_notification
        self.failed_queue = failed_queue
        self.state = DrainState.IDLE
        self._running = threading.Lock()

    def _attempt(self, record: Dict) -> bool:
        try:
            return bool(self.send(record))
        except IngestError as exc:
            logger.error("Error sending offline data: %s", exc)
            return False

    def drain(
        self,
        pending_sink: Optional[PendingSink] = None,
        records: Optional[List[Dict]] = None,
    ) -> DrainResult:
        if not self._running.acquire(blocking=False):
            logger.info("Drain already in progress; skipping")
            return DrainResult()
        try:
            return self._drain(pending_sink, records)
        finally:
            self.state = DrainState.IDLE
            self._running.release()

    def _drain(self, pending_sink: Optional[PendingSink], records: Optional[List[Dict]]) -> DrainResult:
        remaining = list(self.queue.load() if records is None else records)
        result = DrainResult()
        if not remaining:
            return result

        self.state = DrainState.DRAINING
        logger.info("Draining %d offline scan(s)", len(remaining))
        while remaining:
            record = remaining.pop(0)
            result.attempted += 1
            if self._attempt(record):
                result.sent += 1
            else:
                result.failed.append(record)
            if not self.queue.discard(record):
                # the on-disk queue now lags this pass; the record is retried next time
                logger.error("Error updating offline data after attempt %d", result.attempted)

        logger.info(
            "Drain finished: attempted=%d sent=%d failed=%d",
            result.attempted,
            result.sent,
            len(result.failed),
        )
        if result.failed:
            self.state = DrainState.RECONCILING
            self._reconcile(result.failed, pending_sink)
        return result

    def _reconcile(self, failed: List[Dict], pending_sink: Optional[PendingSink]) -> None:
        batch = list(failed)
        if self.failed_queue is not None:
            self.failed_queue.append(batch)
        if pending_sink is not None:
            pending_sink(lambda prev: [*prev, *batch])
        try:
            self.notify(FAILURE_TITLE, FAILURE_MESSAGE)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failure notification could not be shown: %s", exc)

    def requeue_failed(self) -> int:
        """Move records kept in the failed slot back to the tail of the queue."""
        if self.failed_queue is None:
            return 0
        moved = self.failed_queue.move_to(self.queue)
        if moved:
            logger.info("Requeued %d failed scan(s)", moved)
        return moved
