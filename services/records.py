from __future__ import annotations

from pathlib import Path

import pandas as pd
from pydantic import BaseModel

from db.engine import LEDGER_FILES, LEDGER_HEADERS, atomic_write_text, lock_for, new_id, resolve_data_dir, utc_now
from schemas.domain import LedgerType, MutationResult, RecordPatch, Transaction, TransactionDraft
from services.errors import LedgerParseError
from services.logs import get_logger

logger = get_logger(__name__)


def ledger_key(ledger) -> str:
    return LedgerType(ledger).value


def _to_csv(frame: pd.DataFrame) -> str:
    return frame.to_csv(index=False, lineterminator="\n")


class RecordStore:
    """CRUD over the income, expense and investment CSV ledgers.

    Every mutation re-reads the whole ledger under the file's lock, changes it in
    memory and rewrites the file atomically. Reads for display fail soft; reads
    that feed a rewrite are strict so a damaged ledger is never overwritten with
    an empty snapshot.
    """

    def __init__(self, base_path: str | Path | None = None):
        self.base_path = resolve_data_dir(base_path)

    def path_for(self, ledger) -> Path:
        return self.base_path / LEDGER_FILES[ledger_key(ledger)]

    def initialize(self) -> None:
        self.base_path.mkdir(parents=True, exist_ok=True)
        for ledger, headers in LEDGER_HEADERS.items():
            path = self.path_for(ledger)
            with lock_for(path):
                if path.exists():
                    continue
                atomic_write_text(path, _to_csv(pd.DataFrame(columns=headers)))
                logger.info("ledger_initialized", ledger=ledger, path=str(path))

    def list_records(self, ledger) -> list[Transaction]:
        try:
            return self._read(ledger)
        except LedgerParseError as exc:
            logger.error("ledger_read_failed", ledger=exc.ledger, path=str(exc.path), error=str(exc.cause))
            return []

    def add_record(self, ledger, draft: TransactionDraft | dict) -> Transaction:
        key = ledger_key(ledger)
        if not isinstance(draft, TransactionDraft):
            draft = TransactionDraft.model_validate(draft)

        with lock_for(self.path_for(key)):
            records = self._read(key)
            record = Transaction(
                id=new_id({r.id for r in records}),
                date=draft.date.isoformat(),
                amount=draft.amount,
                category=draft.category,
                description=draft.description,
                type=draft.type or key,
                timestamp=utc_now().isoformat(timespec="milliseconds"),
                investment_type=draft.investment_type if key == LedgerType.INVESTMENT.value else None,
            )
            records.append(record)
            self._write(key, records)
        return record

    def update_record(self, ledger, record: BaseModel | dict) -> MutationResult:
        key = ledger_key(ledger)
        if not isinstance(record, BaseModel):
            record = RecordPatch.model_validate(record)
        changes = {k: v for k, v in record.model_dump(mode="json", by_alias=True, exclude_unset=True).items() if v is not None}
        record_id = changes.pop("id", None)
        if not record_id:
            raise ValueError("Record updates need an id")

        with lock_for(self.path_for(key)):
            records = self._read(key)
            for idx, existing in enumerate(records):
                if existing.id != record_id:
                    continue
                records[idx] = Transaction.model_validate({**existing.to_document(), **changes, "id": existing.id})
                self._write(key, records)
                return MutationResult.UPDATED
        return MutationResult.NOT_FOUND

    def delete_record(self, ledger, record_id: str) -> MutationResult:
        key = ledger_key(ledger)
        with lock_for(self.path_for(key)):
            records = self._read(key)
            kept = [r for r in records if r.id != record_id]
            if len(kept) == len(records):
                return MutationResult.NOT_FOUND
            self._write(key, kept)
        return MutationResult.DELETED

    def _read(self, ledger) -> list[Transaction]:
        key = ledger_key(ledger)
        path = self.path_for(key)
        if not path.exists():
            return []
        try:
            frame = pd.read_csv(path, dtype=str, keep_default_na=False)
            if "amount" in frame.columns:
                frame["amount"] = pd.to_numeric(frame["amount"], errors="raise")
                if frame["amount"].isna().any():
                    raise ValueError("amount column has empty values")
            return [Transaction.model_validate(row) for row in frame.to_dict(orient="records")]
        except (OSError, ValueError) as exc:
            raise LedgerParseError(key, path, exc) from exc

    def _write(self, key: str, records: list[Transaction]) -> None:
        frame = pd.DataFrame([r.to_document() for r in records], columns=LEDGER_HEADERS[key])
        atomic_write_text(self.path_for(key), _to_csv(frame))
