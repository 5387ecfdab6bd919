import logging
import pathlib

import pytest
import tomli_w

from tntserver.app import create_app

ADMIN_ID = "admin-1"
API_KEY = "test-key-123456"


@pytest.fixture(autouse=True)
def restore_root_logging():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


@pytest.fixture
def config_path(tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "config.toml"
    with path.open("wb") as fh:
        tomli_w.dump(
            {
                "APP_NAME": "TestServer",
                "API_KEYS_FILE": str(tmp_path / "api_keys.json"),
                "FINAL_DESTINATION_RADIUS_M": 1000,
            },
            fh,
        )
    return path


@pytest.fixture
def app(config_path, monkeypatch):
    monkeypatch.setenv("TNT_SERVER_CONFIG", str(config_path))
    flask_app = create_app()
    flask_app.config["API_KEY_STORE"].issue_key(ADMIN_ID, key=API_KEY)
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {API_KEY}"}
