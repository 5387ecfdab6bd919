import json
import threading
from pathlib import Path

from mobile.src.offline_queue import FAILED_KEY, OFFLINE_KEY, OfflineQueue, decode, encode
from mobile.src.storage import LocalStore
from mobile.src.types import ScanRecord


def _queue(tmp_path: Path) -> OfflineQueue:
    return OfflineQueue(LocalStore(tmp_path / "store.json"))


def test_decode_of_encode_keeps_records():
    records = [{"id": "s1", "location": {"coords": {"latitude": -13.9, "longitude": 33.7}}}, {"id": "s2"}]
    assert decode(encode(records)) == records
    assert decode(encode([])) == []


def test_decode_absent_or_malformed_is_empty():
    assert decode(None) == []
    assert decode("") == []
    assert decode("{broken") == []
    assert decode('{"id": "s1"}') == []
    assert decode("null") == []


def test_append_preserves_order(tmp_path: Path):
    queue = _queue(tmp_path)
    queue.append([{"id": "a"}, {"id": "b"}])
    queue.append([{"id": "c"}])

    assert queue.load() == [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    assert decode(queue.store.get(OFFLINE_KEY)) == [{"id": "a"}, {"id": "b"}, {"id": "c"}]


def test_append_to_empty_store(tmp_path: Path):
    queue = _queue(tmp_path)
    assert queue.load() == []
    queue.append([{"id": "s1"}])
    assert decode(queue.store.get(OFFLINE_KEY)) == [{"id": "s1"}]


def test_append_scan_record_dataclass(tmp_path: Path):
    queue = _queue(tmp_path)
    record = ScanRecord.capture("BOX-1", -13.96, 33.77, operator_id="OP-1")
    queue.append([record])

    stored = queue.load()[0]
    assert stored["boxId"] == "BOX-1"
    assert stored["location"]["coords"] == {"latitude": -13.96, "longitude": 33.77, "accuracy": None}
    assert stored["metadata"]["scan_id"]


def test_discard_removes_first_match_only(tmp_path: Path):
    queue = _queue(tmp_path)
    queue.save([{"id": "a"}, {"id": "b"}, {"id": "a"}])

    assert queue.discard({"id": "a"}) is True
    assert queue.load() == [{"id": "b"}, {"id": "a"}]

    assert queue.discard({"id": "zzz"}) is True
    assert queue.load() == [{"id": "b"}, {"id": "a"}]


def test_move_to_and_clear(tmp_path: Path):
    store = LocalStore(tmp_path / "store.json")
    source = OfflineQueue(store, FAILED_KEY)
    target = OfflineQueue(store)
    target.append([{"id": "a"}])
    source.append([{"id": "b"}, {"id": "c"}])

    assert source.move_to(target) == 2
    assert source.size() == 0
    assert target.load() == [{"id": "a"}, {"id": "b"}, {"id": "c"}]
    assert source.move_to(target) == 0

    target.append([{"id": "d"}])
    assert target.clear() is True
    assert target.load() == []


def test_queues_on_separate_keys_do_not_mix(tmp_path: Path):
    store = LocalStore(tmp_path / "store.json")
    main = OfflineQueue(store)
    failed = OfflineQueue(store, "offlineFailedData")

    main.append([{"id": "a"}])
    failed.append([{"id": "x"}])

    assert main.load() == [{"id": "a"}]
    assert failed.load() == [{"id": "x"}]


def test_append_reports_failed_write(tmp_path: Path, monkeypatch):
    queue = _queue(tmp_path)
    monkeypatch.setattr(queue.store, "set", lambda key, value: False)

    assert queue.append([{"id": "a"}]) is False


def test_interleaved_writes_on_two_keys_keep_both(tmp_path: Path, monkeypatch):
    store = LocalStore(tmp_path / "store.json")
    main = OfflineQueue(store)
    failed = OfflineQueue(store, FAILED_KEY)

    original_write = store._write_all
    main_read_done = threading.Event()
    release_main = threading.Event()

    def paused_write(data):
        if OFFLINE_KEY in data and not main_read_done.is_set():
            main_read_done.set()
            release_main.wait(5)
        original_write(data)

    monkeypatch.setattr(store, "_write_all", paused_write)

    main_thread = threading.Thread(target=main.append, args=([{"id": "a"}],))
    main_thread.start()
    assert main_read_done.wait(5)

    # the failed-slot append must wait until the main append has written
    failed_thread = threading.Thread(target=failed.append, args=([{"id": "x"}],))
    failed_thread.start()
    failed_thread.join(0.2)
    assert failed_thread.is_alive()

    release_main.set()
    main_thread.join(5)
    failed_thread.join(5)

    assert main.load() == [{"id": "a"}]
    assert failed.load() == [{"id": "x"}]
    assert json.loads((tmp_path / "store.json").read_text(encoding="utf-8")).keys() == {OFFLINE_KEY, FAILED_KEY}
