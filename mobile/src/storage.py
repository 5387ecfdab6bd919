"""
File-backed key/value store for the field device.

Every value is a string stored under a string key in one JSON document.
Failures never leave this module: they are logged and reported as ``None``
(reads) or ``False`` (writes) so callers can stay simple.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path(
    os.environ.get("TNT_STORE_PATH", "~/.tnt/offline_store.json")
).expanduser()


class StoreError(Exception):
    """Base error for local store I/O."""


class StoreReadError(StoreError):
    """The backing file exists but could not be read or parsed."""


class StoreWriteError(StoreError):
    """The backing file could not be written."""


class LocalStore:
    def __init__(self, path: Path = DEFAULT_STORE_PATH) -> None:
        self.path = Path(path).expanduser()
        # every key lives in the same document, so all access is serialized here
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise StoreReadError(f"cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StoreReadError(f"unexpected content in {self.path}")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise StoreWriteError(f"cannot write {self.path}: {exc}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            with self._lock:
                value = self._read_all().get(key)
        except StoreReadError as exc:
            logger.error("Store read failed (key=%s): %s", key, exc)
            return None
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> bool:
        with self._lock:
            try:
                data = self._read_all()
            except StoreReadError as exc:
                # unreadable documents are replaced on the next write
                logger.error("Store read failed before write (key=%s): %s", key, exc)
                data = {}
            data[key] = value
            try:
                self._write_all(data)
            except StoreWriteError as exc:
                logger.error("Store write failed (key=%s): %s", key, exc)
                return False
        return True

    def remove(self, key: str) -> bool:
        try:
            with self._lock:
                data = self._read_all()
                if key in data:
                    del data[key]
                    self._write_all(data)
        except StoreError as exc:
            logger.error("Store remove failed (key=%s): %s", key, exc)
            return False
        logger.info("Removed %s.", key)
        return True

    def keys(self) -> List[str]:
        try:
            with self._lock:
                return sorted(self._read_all())
        except StoreReadError as exc:
            logger.error("Store read failed: %s", exc)
            return []
