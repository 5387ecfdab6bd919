"""Blueprint for the /api/box endpoints."""

from __future__ import annotations

import json
import logging
import time
import uuid
from http import HTTPStatus
from typing import Any, Dict, List

from flask import Blueprint, current_app, g, jsonify, request
from lzstring import LZString

from tntserver.repositories import BoxRepository, ScanRepository
from tntserver.services import CoordsUpdateService

from .auth import require_api_key

logger = logging.getLogger(__name__)

boxes_bp = Blueprint("boxes", __name__, url_prefix="/api")


def _error(reason: str, status: HTTPStatus):
    return jsonify({"error": reason}), status


def _decode_boxes(data: str) -> List[Dict[str, Any]]:
    """Decode the lz-string ``data`` field sent by the admin UI into a list of boxes."""
    try:
        payload = LZString().decompressFromEncodedURIComponent(data)
    except (KeyError, IndexError, TypeError, ValueError):
        payload = None
    if not payload:
        raise ValueError("Could not decompress data")
    try:
        boxes = json.loads(payload)
    except ValueError as exc:
        raise ValueError("Decompressed data is not valid JSON") from exc
    if not isinstance(boxes, list) or not boxes:
        raise ValueError("No data provided")
    if not all(isinstance(b, dict) for b in boxes):
        raise ValueError("Boxes must be objects")
    return boxes


def _query_int(name: str) -> int:
    raw = request.args.get(name, "0")
    try:
        return max(int(raw), 0)
    except ValueError:
        raise ValueError(f"{name} must be an integer") from None


def _filters() -> Dict[str, Any]:
    filters = (request.get_json(silent=True) or {}).get("filters") or {}
    if not isinstance(filters, dict):
        raise ValueError("filters must be an object")
    return filters


@boxes_bp.route("/box", methods=["POST"])
@require_api_key
def create_boxes():
    data = (request.get_json(silent=True) or {}).get("data")
    if not data or not isinstance(data, str):
        return _error("No data provided", HTTPStatus.BAD_REQUEST)
    try:
        boxes = _decode_boxes(data)
    except ValueError as exc:
        logger.info("Rejected box upload from admin %s: %s", g.admin_id, exc)
        return _error(str(exc), HTTPStatus.BAD_REQUEST)

    now = int(time.time() * 1000)
    instances: List[Dict[str, Any]] = []
    for box in boxes:
        instance = dict(box)
        instance["createdAt"] = now
        instance["id"] = uuid.uuid4().hex
        instance["adminId"] = g.admin_id
        instances.append(instance)

    repo: BoxRepository = current_app.config["BOX_REPOSITORY"]
    inserted = repo.insert_many(instances)
    logger.info("Created %s box(es) for admin %s", inserted, g.admin_id)
    return (
        jsonify(
            {
                "message": "Items created!",
                "insertedCount": inserted,
                "ids": [i["id"] for i in instances],
            }
        ),
        HTTPStatus.CREATED,
    )


@boxes_bp.route("/box/one/<box_id>", methods=["GET"])
@require_api_key
def get_box(box_id: str):
    repo: BoxRepository = current_app.config["BOX_REPOSITORY"]
    box = repo.get(g.admin_id, box_id)
    if box is None:
        return _error("Box not found", HTTPStatus.NOT_FOUND)
    return jsonify({"box": box}), HTTPStatus.OK


@boxes_bp.route("/box/query", methods=["POST"])
@require_api_key
def query_boxes():
    try:
        filters = _filters()
        skip = _query_int("skip")
        limit = _query_int("limit")
    except ValueError as exc:
        return _error(str(exc), HTTPStatus.BAD_REQUEST)

    repo: BoxRepository = current_app.config["BOX_REPOSITORY"]
    boxes = repo.query(g.admin_id, filters, skip=skip, limit=limit)
    if not boxes:
        return _error("No boxes available", HTTPStatus.NOT_FOUND)
    for box in boxes:
        box.pop("scans", None)
    return jsonify({"boxes": boxes}), HTTPStatus.OK


@boxes_bp.route("/box/distinct/<field>", methods=["POST"])
@require_api_key
def distinct_values(field: str):
    try:
        filters = _filters()
    except ValueError as exc:
        return _error(str(exc), HTTPStatus.BAD_REQUEST)
    repo: BoxRepository = current_app.config["BOX_REPOSITORY"]
    return jsonify({"distinct": repo.distinct(g.admin_id, field, filters)}), HTTPStatus.OK


@boxes_bp.route("/box/count", methods=["POST"])
@require_api_key
def count_boxes():
    try:
        filters = _filters()
    except ValueError as exc:
        return _error(str(exc), HTTPStatus.BAD_REQUEST)
    repo: BoxRepository = current_app.config["BOX_REPOSITORY"]
    return jsonify({"count": repo.count(g.admin_id, filters)}), HTTPStatus.OK


@boxes_bp.route("/box", methods=["DELETE"])
@require_api_key
def delete_boxes():
    conditions = (request.get_json(silent=True) or {}).get("deleteConditions")
    if not isinstance(conditions, dict):
        return _error("No delete conditions provided", HTTPStatus.BAD_REQUEST)

    boxes: BoxRepository = current_app.config["BOX_REPOSITORY"]
    scans: ScanRepository = current_app.config["SCAN_REPOSITORY"]
    deleted_ids = boxes.delete_many(g.admin_id, conditions)
    scans.delete_by_box_ids(deleted_ids)
    return jsonify({"deletedCount": len(deleted_ids)}), HTTPStatus.OK


@boxes_bp.route("/box/coords", methods=["POST"])
@require_api_key
def update_coords():
    coords = (request.get_json(silent=True) or {}).get("coords")
    if not isinstance(coords, list):
        return _error("No coordinates provided", HTTPStatus.BAD_REQUEST)
    required = ("school", "district", "schoolLatitude", "schoolLongitude")
    for entry in coords:
        if not isinstance(entry, dict) or any(key not in entry for key in required):
            return _error("Each entry needs school, district, schoolLatitude and schoolLongitude", HTTPStatus.BAD_REQUEST)

    service: CoordsUpdateService = current_app.config["COORDS_UPDATE_SERVICE"]
    result = service.apply(g.admin_id, coords)
    return jsonify(result.as_dict()), HTTPStatus.OK
