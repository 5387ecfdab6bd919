"""API key gate shared by the REST blueprints."""

from __future__ import annotations

import functools
import logging
from http import HTTPStatus
from typing import Optional

from flask import current_app, g, jsonify, request

from tntserver.services import ApiKeyStore

logger = logging.getLogger(__name__)


def _request_key() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer "):
        return header[7:].strip() or None
    return request.headers.get("X-API-Key") or None


def require_api_key(view):
    """Reject the request unless it carries an active admin API key."""

    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        store: ApiKeyStore = current_app.config["API_KEY_STORE"]
        admin_id = store.resolve(_request_key())
        if admin_id is None:
            logger.info("Rejected request to %s: missing or unknown API key", request.path)
            return jsonify({"error": "Invalid API key"}), HTTPStatus.UNAUTHORIZED
        g.admin_id = admin_id
        return view(*args, **kwargs)

    return wrapper
