from __future__ import annotations

import json
import os
import stat
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path

DATA_DIR = Path(os.environ.get("MTRACK_DATA_DIR") or Path.home() / "Documents" / "MTrack")

LEDGER_FILES = {
    "income": "income.csv",
    "expense": "expenses.csv",
    "investment": "investments.csv",
}

BASE_HEADERS = ["id", "date", "amount", "category", "description", "type", "timestamp"]
LEDGER_HEADERS = {
    "income": BASE_HEADERS,
    "expense": BASE_HEADERS,
    "investment": BASE_HEADERS + ["investmentType"],
}

AUTOMATION_FILE = "automation.json"
GOALS_FILE = "goals.json"
SETTINGS_FILE = "settings.json"

DATA_FILES = list(LEDGER_FILES.values()) + [AUTOMATION_FILE, GOALS_FILE, SETTINGS_FILE]

_LOCKS: dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(taken=()) -> str:
    while True:
        candidate = str(uuid.uuid4())
        if candidate not in taken:
            return candidate


def resolve_data_dir(data_dir: str | Path | None = None) -> Path:
    return Path(data_dir).expanduser() if data_dir else DATA_DIR


def lock_for(path: str | Path) -> threading.RLock:
    key = str(Path(path).resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


def _process_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


NEW_FILE_MODE = 0o666 & ~_process_umask()


def _file_mode(target: Path) -> int:
    try:
        return stat.S_IMODE(target.stat().st_mode)
    except FileNotFoundError:
        return NEW_FILE_MODE


def _fsync_dir(directory: Path) -> None:
    if os.name == "nt":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def atomic_write_text(path: str | Path, text: str) -> None:
    atomic_write_bytes(path, text.encode("utf-8"))


def atomic_write_bytes(path: str | Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` so readers see either the old or the new file.

    The content goes to a temp file in the same directory, is fsynced, and is
    then renamed over the target with ``os.replace``. The replacement keeps the
    target's permission bits; new files get the umask default instead of
    ``mkstemp``'s owner-only mode.
    """
    target = Path(path)
    mode = _file_mode(target)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
        _fsync_dir(target.parent)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_json_document(path: str | Path, payload: dict) -> None:
    atomic_write_text(path, json.dumps(payload, indent=2) + "\n")


def read_json_document(path: str | Path) -> dict:
    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return payload


def quarantine(path: str | Path) -> Path:
    source = Path(path)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    out = source.with_name(f"{source.name}.corrupt-{stamp}")
    os.replace(source, out)
    return out
