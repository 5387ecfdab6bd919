"""Minimal HTTP client for the TnT scan-ingest endpoint."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class IngestError(Exception):
    """The scan could not be delivered."""


class IngestAuthError(IngestError):
    """The API key was rejected."""


class IngestConfigError(IngestError):
    """Base URL missing."""


@dataclass
class ScanIngestClient:
    base_url: str
    api_key: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls) -> "ScanIngestClient":
        return cls(
            base_url=os.getenv("TNT_API_URL", "").strip(),
            api_key=os.getenv("TNT_API_KEY"),
            timeout=float(os.getenv("TNT_API_TIMEOUT", str(DEFAULT_TIMEOUT))),
        )

    @classmethod
    def from_config(cls, config: dict) -> "ScanIngestClient":
        return cls(
            base_url=str(config.get("api_url") or "").strip(),
            api_key=config.get("api_key"),
            timeout=float(config.get("timeout_seconds", DEFAULT_TIMEOUT)),
        )

    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def post_scan(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured():
            raise IngestConfigError("api_url is not configured")

        url = f"{self.base_url.rstrip('/')}/scan"
        try:
            response = requests.request(
                method="POST",
                url=url,
                json=record,
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise IngestError(str(exc)) from exc

        if response.status_code in (401, 403):
            raise IngestAuthError(response.text or "Unauthorized")
        if not 200 <= response.status_code < 300:
            raise IngestError(f"POST {url} returned {response.status_code}: {response.text}")
        try:
            return response.json()
        except ValueError:
            return {"status": response.text}

    def send_scan(self, record: Dict[str, Any]) -> bool:
        scan_id = (record.get("metadata") or {}).get("scan_id") or record.get("boxId")
        try:
            logger.info("Posting scan %s to %s", scan_id, self.base_url)
            self.post_scan(record)
        except IngestError as exc:
            logger.warning("Failed to post scan %s: %s", scan_id, exc)
            return False
        logger.info("Server accepted scan %s", scan_id)
        return True
