"""Simple file-based per-admin API key store."""

from __future__ import annotations

import json
import logging
import secrets
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _mask(key: Optional[str]) -> Optional[str]:
    if not key:
        return None
    if len(key) <= 6:
        return key[0] + "***"
    return f"{key[:4]}***{key[-2:]}"


class ApiKeyStore:
    def __init__(self, path: Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _load_file(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                data = json.load(fh)
            if isinstance(data, list):
                return data
        except (OSError, ValueError) as exc:
            logger.warning("Failed to read API key file %s: %s", self.path, exc)
        return []

    def _save_file(self, entries: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8") as fh:
            json.dump(entries, fh, ensure_ascii=False, indent=2)

    def list_keys(self, with_key: bool = False) -> List[Dict[str, Any]]:
        entries = []
        for entry in self._load_file():
            filtered = {
                "admin_id": entry.get("admin_id"),
                "created_at": entry.get("created_at"),
                "revoked_at": entry.get("revoked_at"),
                "note": entry.get("note"),
            }
            if with_key:
                filtered["key"] = entry.get("key")
            else:
                filtered["key_preview"] = _mask(entry.get("key"))
            entries.append(filtered)
        return entries

    def issue_key(
        self,
        admin_id: str,
        key: Optional[str] = None,
        keep_existing: bool = True,
        note: Optional[str] = None,
    ) -> Dict[str, Any]:
        key_value = key or secrets.token_urlsafe(32)
        with self._lock:
            entries = self._load_file()
            if not keep_existing:
                for entry in entries:
                    if not entry.get("revoked_at") and entry.get("admin_id") == admin_id:
                        entry["revoked_at"] = _now_iso()

            entry = {
                "admin_id": admin_id,
                "key": key_value,
                "note": note,
                "created_at": _now_iso(),
                "revoked_at": None,
            }
            entries.append(entry)
            self._save_file(entries)
        logger.info("Issued API key %s for admin %s", _mask(key_value), admin_id)
        return entry

    def revoke_key(self, key: str) -> bool:
        with self._lock:
            entries = self._load_file()
            changed = False
            for entry in entries:
                if entry.get("key") == key and not entry.get("revoked_at"):
                    entry["revoked_at"] = _now_iso()
                    changed = True
            if changed:
                self._save_file(entries)
        return changed

    def resolve(self, key: Optional[str]) -> Optional[str]:
        """Return the admin id owning an active key."""
        if not key:
            return None
        for entry in self._load_file():
            if entry.get("revoked_at"):
                continue
            stored = entry.get("key")
            if stored and secrets.compare_digest(str(stored), key):
                return entry.get("admin_id")
        return None
