"""Blueprint for the /api/scan endpoints (scan ingest)."""

from __future__ import annotations

import logging
import time
import uuid
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, g, jsonify, request

from tntserver.repositories import BoxRepository, ScanRepository
from tntserver.services.geofence import is_final_destination, scan_coords, school_coords

from .auth import require_api_key

logger = logging.getLogger(__name__)

scans_bp = Blueprint("scans", __name__, url_prefix="/api")


@scans_bp.route("/scan", methods=["POST"])
@require_api_key
def create_scan():
    raw_payload = request.get_json(silent=True)
    try:
        scan = _normalize_payload(raw_payload)
    except ValueError as exc:
        box_id = raw_payload.get("boxId") if isinstance(raw_payload, dict) else None
        logger.info("Rejected scan for box %s: %s", box_id, exc)
        return jsonify({"error": str(exc)}), HTTPStatus.BAD_REQUEST

    boxes: BoxRepository = current_app.config["BOX_REPOSITORY"]
    box = boxes.get(g.admin_id, scan["boxId"])
    if box is None:
        logger.warning("Scan received for unknown box %s (admin=%s)", scan["boxId"], g.admin_id)

    scan["id"] = uuid.uuid4().hex
    scan["createdAt"] = int(time.time() * 1000)
    scan["adminId"] = g.admin_id
    scan["finalDestination"] = is_final_destination(
        school_coords(box),
        scan_coords(scan),
        float(current_app.config.get("FINAL_DESTINATION_RADIUS_M", 1000)),
    )

    repo: ScanRepository = current_app.config["SCAN_REPOSITORY"]
    repo.save(scan)
    logger.info("Stored scan %s for box %s (final=%s)", scan["id"], scan["boxId"], scan["finalDestination"])
    return jsonify({"id": scan["id"], "message": "Item created!"}), HTTPStatus.CREATED


@scans_bp.route("/scan/box/<box_id>", methods=["GET"])
@require_api_key
def list_box_scans(box_id: str):
    repo: ScanRepository = current_app.config["SCAN_REPOSITORY"]
    scans = [s for s in repo.find_by_box_ids([box_id]) if s.get("adminId") == g.admin_id]
    return jsonify({"scans": scans}), HTTPStatus.OK


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _normalize_payload(raw_payload: Any) -> Dict[str, Any]:
    if not isinstance(raw_payload, dict):
        raise ValueError("invalid-json")

    box_id = raw_payload.get("boxId")
    if not isinstance(box_id, str) or not box_id.strip():
        raise ValueError("missing-boxId")

    location = raw_payload.get("location")
    coords = location.get("coords") if isinstance(location, dict) else None
    if not isinstance(coords, dict):
        raise ValueError("missing-location")

    latitude = coords.get("latitude")
    longitude = coords.get("longitude")
    if not _is_number(latitude) or not -90 <= latitude <= 90:
        raise ValueError("invalid-latitude")
    if not _is_number(longitude) or not -180 <= longitude <= 180:
        raise ValueError("invalid-longitude")

    normalized: Dict[str, Any] = dict(raw_payload)
    normalized["boxId"] = box_id.strip()
    # client-supplied server fields are always overwritten
    for key in ("id", "adminId", "createdAt", "finalDestination"):
        normalized.pop(key, None)
    return normalized
