import json
from pathlib import Path

from tntserver.services import ApiKeyStore


def test_issue_resolve_revoke(tmp_path: Path):
    store = ApiKeyStore(tmp_path / "keys.json")
    entry = store.issue_key("admin-1", note="field team")

    assert store.resolve(entry["key"]) == "admin-1"
    assert store.resolve("wrong") is None
    assert store.resolve(None) is None

    assert store.revoke_key(entry["key"]) is True
    assert store.resolve(entry["key"]) is None
    assert store.revoke_key(entry["key"]) is False


def test_issue_with_replace_revokes_previous(tmp_path: Path):
    store = ApiKeyStore(tmp_path / "keys.json")
    first = store.issue_key("admin-1", key="first-key-0001")
    second = store.issue_key("admin-1", key="second-key-0002", keep_existing=False)

    assert store.resolve(first["key"]) is None
    assert store.resolve(second["key"]) == "admin-1"


def test_list_masks_keys(tmp_path: Path):
    store = ApiKeyStore(tmp_path / "keys.json")
    store.issue_key("admin-1", key="abcdefghijkl")

    (listed,) = store.list_keys()
    assert listed["key_preview"] == "abcd***kl"
    assert "key" not in listed
    assert store.list_keys(with_key=True)[0]["key"] == "abcdefghijkl"


def test_corrupt_file_has_no_keys(tmp_path: Path):
    path = tmp_path / "keys.json"
    path.write_text("{oops", encoding="utf-8")
    store = ApiKeyStore(path)
    assert store.list_keys() == []
    assert store.resolve("anything") is None


def test_manage_api_keys_cli(tmp_path: Path, capsys):
    from server.scripts import manage_api_keys

    keys_file = tmp_path / "keys.json"
    manage_api_keys.main(["--file", str(keys_file), "issue", "--admin-id", "admin-9", "--key", "cli-key-12345"])
    issued = json.loads(capsys.readouterr().out)
    assert issued["entry"]["admin_id"] == "admin-9"

    manage_api_keys.main(["--file", str(keys_file), "revoke", "--key", "cli-key-12345"])
    assert json.loads(capsys.readouterr().out)["message"] == "key revoked"

    manage_api_keys.main(["--file", str(keys_file), "list"])
    listed = json.loads(capsys.readouterr().out)
    assert listed["count"] == 1
    assert listed["keys"][0]["revoked_at"] is not None
