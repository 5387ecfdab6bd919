#!/usr/bin/env python3
"""
TnT field-device helper: capture scans, queue them while offline and replay
the queue once the scan API is reachable again.

Examples:
    ./tnt_sync.py scan --box 6f1c2a --lat -13.9626 --lon 33.7741
    ./tnt_sync.py drain
    ./tnt_sync.py status --json
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from mobile.src.api_client import ScanIngestClient  # noqa: E402
from mobile.src.offline_queue import FAILED_KEY, OFFLINE_KEY, OfflineQueue  # noqa: E402
from mobile.src.storage import LocalStore  # noqa: E402
from mobile.src.sync_engine import DrainResult, PendingScans, SyncEngine  # noqa: E402
from mobile.src.types import ScanRecord  # noqa: E402

CONFIG_SEARCH_PATHS = [
    os.environ.get("TNT_CONFIG"),
    "/etc/tnt/config.json",
    str(Path(__file__).resolve().parent.parent / "config" / "config.json"),
]
DEFAULT_STORE_PATH = "~/.tnt/offline_store.json"
DEFAULT_LOG_DIR = "~/.tnt/logs"


def load_config(config_path: Optional[str] = None) -> dict:
    if config_path:
        path = Path(config_path).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)

    for candidate in CONFIG_SEARCH_PATHS:
        if candidate and Path(candidate).expanduser().is_file():
            with open(Path(candidate).expanduser(), "r", encoding="utf-8") as fh:
                return json.load(fh)
    raise FileNotFoundError(
        "Config file not found. Set TNT_CONFIG or create /etc/tnt/config.json"
    )


def configure_logging(config: dict, level_name: str = "INFO") -> None:
    log_dir = Path(config.get("log_dir", DEFAULT_LOG_DIR)).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "tnt_sync.log"

    formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name.upper(), logging.INFO))

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(log_path, maxBytes=1_000_000, backupCount=3)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)


class SyncSession:
    """Wires the store, both queues, the API client and the engine from config."""

    def __init__(self, config: dict) -> None:
        self.config = config
        self.store = LocalStore(Path(config.get("store_path", DEFAULT_STORE_PATH)))
        self.queue = OfflineQueue(self.store, OFFLINE_KEY)
        self.failed_queue = (
            OfflineQueue(self.store, FAILED_KEY) if config.get("persist_failed", True) else None
        )
        self.client = ScanIngestClient.from_config(config)
        self.pending = PendingScans()
        self.engine = SyncEngine(
            self.queue,
            self.client.send_scan,
            failed_queue=self.failed_queue,
        )

    def capture(self, record: ScanRecord) -> bool:
        payload = record.to_payload()
        if self.client.send_scan(payload):
            return True
        self.queue.append([payload])
        return False

    def drain(self) -> DrainResult:
        # scans parked by an earlier pass go back to the tail before this one
        self.engine.requeue_failed()
        return self.engine.drain(self.pending.update)

    def status(self) -> dict:
        return {
            "queued": self.queue.size(),
            "failed": self.failed_queue.size() if self.failed_queue else 0,
            "store_path": str(self.store.path),
        }


def cmd_scan(session: SyncSession, args: argparse.Namespace) -> int:
    record = ScanRecord.capture(
        args.box,
        args.lat,
        args.lon,
        accuracy=args.accuracy,
        operator_id=session.config.get("operator_id"),
        comment=args.comment,
    )
    sent = session.capture(record)
    if not sent:
        print("scan queued offline")
        return 0
    print("scan sent")
    result = session.drain()
    if result.attempted:
        print(f"drained: sent={result.sent} failed={len(result.failed)}")
    return 0


def cmd_drain(session: SyncSession, args: argparse.Namespace) -> int:
    result = session.drain()
    print(f"attempted={result.attempted} sent={result.sent} failed={len(result.failed)}")
    return 0


def cmd_status(session: SyncSession, args: argparse.Namespace) -> int:
    data = session.status()
    if getattr(args, "json", False):
        json.dump(data, sys.stdout, indent=2, ensure_ascii=False)
        sys.stdout.write("\n")
    else:
        print(f"queued scans : {data['queued']}")
        print(f"failed scans : {data['failed']}")
        print(f"store        : {data['store_path']}")
    return 0


def cmd_requeue(session: SyncSession, args: argparse.Namespace) -> int:
    moved = session.engine.requeue_failed()
    print(f"requeued: {moved}")
    return 0


def parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="TnT offline scan queue helper")
    parser.add_argument("--config", help="Path to config.json (overrides TNT_CONFIG/search order)")
    parser.add_argument("--log-level", default="INFO", help="Python logging level (default: INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    scan_cmd = sub.add_parser("scan", help="Capture one scan (sent now or queued offline)")
    scan_cmd.add_argument("--box", required=True, help="Box identifier")
    scan_cmd.add_argument("--lat", type=float, required=True, help="Latitude")
    scan_cmd.add_argument("--lon", type=float, required=True, help="Longitude")
    scan_cmd.add_argument("--accuracy", type=float, help="GPS accuracy in metres")
    scan_cmd.add_argument("--comment", help="Optional free text")
    scan_cmd.set_defaults(func=cmd_scan)

    drain_cmd = sub.add_parser("drain", help="Send queued scans once")
    drain_cmd.set_defaults(func=cmd_drain)

    status_cmd = sub.add_parser("status", help="Show queue sizes")
    status_cmd.add_argument("--json", action="store_true", help="Print JSON output")
    status_cmd.set_defaults(func=cmd_status)

    requeue_cmd = sub.add_parser("requeue-failed", help="Move failed scans back into the queue")
    requeue_cmd.set_defaults(func=cmd_requeue)

    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except FileNotFoundError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    configure_logging(config, args.log_level)
    session = SyncSession(config)
    return args.func(session, args)


if __name__ == "__main__":
    sys.exit(main())
