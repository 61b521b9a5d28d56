#!/usr/bin/env python3
from __future__ import annotations

import argparse

from db.engine import resolve_data_dir
from services.backup import create_encrypted_backup, latest_backup, restore_encrypted_backup


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Encrypted backup and one-command restore for MTrack data")
    parser.add_argument("--data-dir", default=None, help="MTrack data directory")
    parser.add_argument("--passphrase", required=True, help="Backup passphrase")
    parser.add_argument("--create", action="store_true", help="Create a new encrypted backup instead of restoring")
    parser.add_argument("--backup", default="latest", help="Path to encrypted backup file, or 'latest'")
    args = parser.parse_args(argv)

    data_dir = resolve_data_dir(args.data_dir)
    if args.create:
        out = create_encrypted_backup(passphrase=args.passphrase, data_dir=data_dir)
        print(f"Backup written to: {out.path}")
        return 0

    backup_path = latest_backup(data_dir) if args.backup == "latest" else args.backup
    if not backup_path:
        print("No backup found. Create one with --create first.")
        return 1

    result = restore_encrypted_backup(backup_path=backup_path, passphrase=args.passphrase, data_dir=data_dir, snapshot_before_restore=True)
    print(f"Restored {len(result['files'])} files to: {result['restored_to']}")
    if result.get("snapshot"):
        print(f"Pre-restore snapshot: {result['snapshot']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
