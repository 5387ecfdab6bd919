import json
from pathlib import Path

import pytest

from mobile.scripts import tnt_sync


def _write_config(tmp_path: Path, **overrides) -> Path:
    config = {
        "api_url": "http://example.com/api",
        "api_key": "dummy",
        "operator_id": "OP-TEST",
        "store_path": str(tmp_path / "store.json"),
        "log_dir": str(tmp_path / "logs"),
    }
    config.update(overrides)
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config), encoding="utf-8")
    return path


def test_load_config_missing(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        tnt_sync.load_config(str(tmp_path / "nope.json"))


def test_scan_is_queued_when_offline(tmp_path: Path, monkeypatch, capsys):
    config_path = _write_config(tmp_path)
    monkeypatch.setattr(tnt_sync.ScanIngestClient, "send_scan", lambda self, record: False)

    rc = tnt_sync.main(["--config", str(config_path), "scan", "--box", "BOX-9", "--lat", "-13.9", "--lon", "33.7"])
    assert rc == 0
    assert "queued offline" in capsys.readouterr().out

    session = tnt_sync.SyncSession(tnt_sync.load_config(str(config_path)))
    queued = session.queue.load()
    assert len(queued) == 1
    assert queued[0]["boxId"] == "BOX-9"
    assert queued[0]["operatorId"] == "OP-TEST"
    assert (tmp_path / "logs" / "tnt_sync.log").exists()


def test_drain_moves_failures_to_failed_slot(tmp_path: Path, monkeypatch, capsys):
    config_path = _write_config(tmp_path)
    session = tnt_sync.SyncSession(tnt_sync.load_config(str(config_path)))
    session.queue.append([{"boxId": "ok"}, {"boxId": "bad"}])

    monkeypatch.setattr(
        tnt_sync.ScanIngestClient,
        "send_scan",
        lambda self, record: record["boxId"] == "ok",
    )
    tnt_sync.main(["--config", str(config_path), "drain"])
    assert "attempted=2 sent=1 failed=1" in capsys.readouterr().out

    tnt_sync.main(["--config", str(config_path), "status", "--json"])
    status = json.loads(capsys.readouterr().out)
    assert status["queued"] == 0
    assert status["failed"] == 1

    tnt_sync.main(["--config", str(config_path), "requeue-failed"])
    assert "requeued: 1" in capsys.readouterr().out
    assert session.queue.load() == [{"boxId": "bad"}]


def test_status_without_failed_slot(tmp_path: Path):
    config_path = _write_config(tmp_path, persist_failed=False)
    session = tnt_sync.SyncSession(tnt_sync.load_config(str(config_path)))
    assert session.failed_queue is None
    assert session.status()["failed"] == 0


def test_next_drain_retries_failed_slot(tmp_path: Path, monkeypatch, capsys):
    config_path = _write_config(tmp_path)
    session = tnt_sync.SyncSession(tnt_sync.load_config(str(config_path)))
    session.queue.append([{"boxId": "BOX-1"}])

    monkeypatch.setattr(tnt_sync.ScanIngestClient, "send_scan", lambda self, record: False)
    tnt_sync.main(["--config", str(config_path), "drain"])
    assert "attempted=1 sent=0 failed=1" in capsys.readouterr().out
    assert session.failed_queue.load() == [{"boxId": "BOX-1"}]

    sent = []
    monkeypatch.setattr(
        tnt_sync.ScanIngestClient, "send_scan", lambda self, record: sent.append(record) or True
    )
    tnt_sync.main(["--config", str(config_path), "drain"])
    assert "attempted=1 sent=1 failed=0" in capsys.readouterr().out
    assert sent == [{"boxId": "BOX-1"}]
    assert session.status()["queued"] == 0
    assert session.status()["failed"] == 0


def test_scan_drain_includes_failed_slot(tmp_path: Path, monkeypatch, capsys):
    config_path = _write_config(tmp_path)
    session = tnt_sync.SyncSession(tnt_sync.load_config(str(config_path)))
    session.failed_queue.append([{"boxId": "OLD"}])
    monkeypatch.setattr(tnt_sync.ScanIngestClient, "send_scan", lambda self, record: True)

    rc = tnt_sync.main(["--config", str(config_path), "scan", "--box", "NEW", "--lat", "-13.9", "--lon", "33.7"])

    assert rc == 0
    out = capsys.readouterr().out
    assert "scan sent" in out
    assert "drained: sent=1 failed=0" in out
    assert session.failed_queue.load() == []


def test_main_reports_missing_config(tmp_path: Path, capsys):
    rc = tnt_sync.main(["--config", str(tmp_path / "missing.json"), "status"])

    assert rc == 2
    captured = capsys.readouterr()
    assert "Config file not found" in captured.err
    assert captured.out == ""
