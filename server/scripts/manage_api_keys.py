#!/usr/bin/env python3
"""CLI helper for managing per-admin API keys."""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from tntserver.services import ApiKeyStore

DEFAULT_KEYS_FILE = Path(__file__).resolve().parents[1] / "config" / "api_keys.json"


def _print(data) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def cmd_list(store: ApiKeyStore, args: argparse.Namespace) -> None:
    keys = store.list_keys(with_key=args.reveal)
    _print({"file": str(store.path), "count": len(keys), "keys": keys})


def cmd_issue(store: ApiKeyStore, args: argparse.Namespace) -> None:
    entry = store.issue_key(
        admin_id=args.admin_id,
        key=args.key,
        keep_existing=not args.replace,
        note=args.note,
    )
    _print({"message": "key issued", "file": str(store.path), "entry": entry})


def cmd_revoke(store: ApiKeyStore, args: argparse.Namespace) -> None:
    revoked = store.revoke_key(args.key)
    _print({"message": "key revoked" if revoked else "key not found", "file": str(store.path)})


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage TnT admin API keys")
    parser.add_argument(
        "--file",
        default=os.environ.get("TNT_API_KEYS_FILE", str(DEFAULT_KEYS_FILE)),
        help="API key file (default: TNT_API_KEYS_FILE env or server/config/api_keys.json)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List keys (masked)")
    list_cmd.add_argument("--reveal", action="store_true", help="Show full keys")
    list_cmd.set_defaults(func=cmd_list)

    issue_cmd = sub.add_parser("issue", help="Issue a key for an admin")
    issue_cmd.add_argument("--admin-id", required=True, help="Admin identifier")
    issue_cmd.add_argument("--key", help="Use this key instead of a random one")
    issue_cmd.add_argument("--replace", action="store_true", help="Revoke the admin's other keys")
    issue_cmd.add_argument("--note", help="Free-form note")
    issue_cmd.set_defaults(func=cmd_issue)

    revoke_cmd = sub.add_parser("revoke", help="Revoke a key")
    revoke_cmd.add_argument("--key", required=True, help="Key to revoke")
    revoke_cmd.set_defaults(func=cmd_revoke)

    return parser.parse_args(argv)


def main(argv=None) -> None:
    args = parse_args(argv)
    args.func(ApiKeyStore(Path(args.file)), args)


if __name__ == "__main__":
    main()
