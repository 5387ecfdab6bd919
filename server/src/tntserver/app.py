"""
TnT server application.

Sets up the Flask app that ingests scans from field devices, stores boxes
and keeps each scan's finalDestination flag in line with the school
coordinates of its box.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify

from tntserver.repositories import InMemoryBoxRepository, InMemoryScanRepository
from tntserver.services import ApiKeyStore, CoordsUpdateService

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_LOG_PATH = REPO_ROOT / "logs" / "app.log"

DEFAULT_CONFIG: Dict[str, Any] = {
    "APP_NAME": "TnTServer",
    "REST_API_PREFIX": "/api",
    "API_KEYS_FILE": str(REPO_ROOT / "config" / "api_keys.json"),
    "FINAL_DESTINATION_RADIUS_M": 1000,
}


def create_app(config_path: Optional[str] = None) -> Flask:
    """Create and configure the Flask application instance."""
    app = Flask(__name__)
    load_configuration(app, config_path)
    configure_logging(app)
    initialize_services(app)
    register_blueprints(app)

    @app.route("/healthz", methods=["GET"])
    def healthz():
        """Return application health information."""
        return (
            jsonify(
                {
                    "status": "ok",
                    "app": app.config.get("APP_NAME"),
                    "api_prefix": app.config.get("REST_API_PREFIX"),
                }
            ),
            200,
        )

    return app


def register_blueprints(app: Flask) -> None:
    """Register Flask blueprints for REST APIs."""
    from tntserver.api import boxes_bp, scans_bp

    app.register_blueprint(scans_bp)
    app.register_blueprint(boxes_bp)


def load_configuration(app: Flask, config_path: Optional[str] = None) -> None:
    """
    Load configuration into the Flask app.

    Preference order:
    1. Explicit `config_path` (pointing to TOML file)
    2. `TNT_SERVER_CONFIG` environment variable
    3. `server/config/default.toml` (if present)
    4. In-memory defaults (`DEFAULT_CONFIG`)
    """
    app.config.from_mapping(DEFAULT_CONFIG)

    explicit_path = config_path or os.environ.get("TNT_SERVER_CONFIG")
    if explicit_path:
        config_file = Path(explicit_path).expanduser()
    else:
        config_file = REPO_ROOT / "config" / "default.toml"

    if config_file.exists():
        try:
            import tomllib

            with config_file.open("rb") as fh:
                data = tomllib.load(fh)
            app.config.update(data)
        except Exception as exc:  # pylint: disable=broad-except
            app.logger.warning("Failed to load config %s: %s", config_file, exc)  # noqa: PLE1205


def configure_logging(app: Flask) -> None:
    """Configure Python logging based on app config."""
    logging_cfg = app.config.get("logging") or {}
    level_name = str(logging_cfg.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    handlers = []

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    log_path = logging_cfg.get("path")
    if log_path:
        try:
            log_file = Path(log_path).expanduser()
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)
        except OSError as exc:
            app.logger.warning("Failed to configure file logging %s: %s", log_path, exc)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in handlers:
        root_logger.addHandler(handler)

    app.logger.setLevel(level)


def initialize_services(app: Flask) -> None:
    """Initialize service instances and attach to the app config."""
    box_repo = app.config.get("BOX_REPOSITORY") or InMemoryBoxRepository()
    scan_repo = app.config.get("SCAN_REPOSITORY") or InMemoryScanRepository()
    app.config["BOX_REPOSITORY"] = box_repo
    app.config["SCAN_REPOSITORY"] = scan_repo

    if not app.config.get("API_KEY_STORE"):
        app.config["API_KEY_STORE"] = ApiKeyStore(Path(app.config["API_KEYS_FILE"]))

    app.config["COORDS_UPDATE_SERVICE"] = CoordsUpdateService(
        box_repo,
        scan_repo,
        radius_m=float(app.config.get("FINAL_DESTINATION_RADIUS_M", 1000)),
    )


def run() -> None:
    """Run the development server (for local testing only)."""
    app = create_app()
    app.run(host="0.0.0.0", port=3000, debug=True, use_reloader=False)


if __name__ == "__main__":
    run()
