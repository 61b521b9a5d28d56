from __future__ import annotations

import base64
import io
import os
import shutil
import zipfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from cryptography.fernet import Fernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from db.engine import DATA_FILES, LEDGER_FILES, atomic_write_bytes, lock_for, resolve_data_dir
from services.logs import get_logger

logger = get_logger(__name__)

SNAPSHOT_DIR_NAME = "snapshots"
BACKUP_DIR_NAME = "backups"


@dataclass
class BackupResult:
    path: str
    bytes_written: int
    created_at: str


def _stamp() -> str:
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def _present_files(directory: Path) -> list[Path]:
    return [directory / name for name in DATA_FILES if (directory / name).is_file()]


def _derive_fernet(passphrase: str, salt: bytes) -> Fernet:
    kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=390000)
    key = base64.urlsafe_b64encode(kdf.derive(passphrase.encode("utf-8")))
    return Fernet(key)


def export_data(dest_dir: str | Path, data_dir: str | Path | None = None) -> list[str]:
    source = resolve_data_dir(data_dir)
    target = Path(dest_dir)
    target.mkdir(parents=True, exist_ok=True)

    copied = []
    for path in _present_files(source):
        with lock_for(path):
            shutil.copyfile(path, target / path.name)
        copied.append(path.name)
    return copied


def create_data_snapshot(reason: str = "manual", data_dir: str | Path | None = None) -> BackupResult:
    source = resolve_data_dir(data_dir)
    if not source.exists():
        raise FileNotFoundError(f"Data directory not found: {source}")

    stamp = _stamp()
    out = source / SNAPSHOT_DIR_NAME / f"snapshot-{stamp}-{reason}"
    out.mkdir(parents=True, exist_ok=True)
    written = 0
    for path in _present_files(source):
        with lock_for(path):
            data = path.read_bytes()
        (out / path.name).write_bytes(data)
        written += len(data)
    return BackupResult(path=str(out), bytes_written=written, created_at=stamp)


def _install(files: dict[str, bytes], target: Path) -> list[str]:
    target.mkdir(parents=True, exist_ok=True)
    installed = []
    for name in DATA_FILES:
        if name not in files:
            continue
        path = target / name
        with lock_for(path):
            atomic_write_bytes(path, files[name])
        installed.append(name)
    return installed


def import_data(src_dir: str | Path, data_dir: str | Path | None = None, snapshot_before_import: bool = True) -> dict:
    source = Path(src_dir)
    if not any((source / name).is_file() for name in LEDGER_FILES.values()):
        raise FileNotFoundError(f"No valid MTrack data found in {source}")

    target = resolve_data_dir(data_dir)
    snapshot = None
    if snapshot_before_import and target.exists():
        snapshot = create_data_snapshot(reason="before_import", data_dir=target)

    imported = _install({path.name: path.read_bytes() for path in _present_files(source)}, target)
    logger.info("data_imported", source=str(source), files=imported, snapshot=snapshot.path if snapshot else None)
    return {
        "imported": imported,
        "snapshot": snapshot.path if snapshot else None,
    }


def _archive(source: Path) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for path in _present_files(source):
            with lock_for(path):
                archive.writestr(path.name, path.read_bytes())
    return buffer.getvalue()


def create_encrypted_backup(passphrase: str, label: str = "manual", data_dir: str | Path | None = None) -> BackupResult:
    if not passphrase:
        raise ValueError("passphrase is required")

    source = resolve_data_dir(data_dir)
    if not source.exists():
        raise FileNotFoundError(f"Data directory not found: {source}")

    raw = _archive(source)
    salt = os.urandom(16)
    token = _derive_fernet(passphrase, salt).encrypt(raw)

    backup_dir = source / BACKUP_DIR_NAME
    backup_dir.mkdir(parents=True, exist_ok=True)
    stamp = _stamp()
    out = backup_dir / f"mtrack-backup-{stamp}-{label}.enc"
    out.write_bytes(salt + token)
    return BackupResult(path=str(out), bytes_written=len(token) + len(salt), created_at=stamp)


def restore_encrypted_backup(
    backup_path: str | Path,
    passphrase: str,
    data_dir: str | Path | None = None,
    snapshot_before_restore: bool = True,
):
    if not passphrase:
        raise ValueError("passphrase is required")

    source = Path(backup_path)
    if not source.exists():
        raise FileNotFoundError(f"Backup file not found: {source}")

    payload = source.read_bytes()
    if len(payload) <= 16:
        raise ValueError("Invalid backup payload")
    salt, token = payload[:16], payload[16:]
    plain = _derive_fernet(passphrase, salt).decrypt(token)

    with zipfile.ZipFile(io.BytesIO(plain)) as archive:
        files = {name: archive.read(name) for name in archive.namelist() if name in DATA_FILES}

    target = resolve_data_dir(data_dir)
    snapshot = None
    if snapshot_before_restore and target.exists():
        snapshot = create_data_snapshot(reason="before_restore", data_dir=target)

    restored = _install(files, target)
    return {
        "restored_to": str(target),
        "files": restored,
        "bytes_restored": sum(len(files[name]) for name in restored),
        "snapshot": snapshot.path if snapshot else None,
    }


def list_backups(data_dir: str | Path | None = None, limit: int = 20) -> list[str]:
    backup_dir = resolve_data_dir(data_dir) / BACKUP_DIR_NAME
    if not backup_dir.exists():
        return []
    files = sorted(backup_dir.glob("*.enc"), key=lambda p: p.stat().st_mtime, reverse=True)
    return [str(p) for p in files[:limit]]


def latest_backup(data_dir: str | Path | None = None) -> str | None:
    items = list_backups(data_dir, limit=1)
    return items[0] if items else None
