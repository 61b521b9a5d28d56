from __future__ import annotations

import pandas as pd

from db.engine import LEDGER_HEADERS
from schemas.domain import LedgerType
from services.goals import GoalStore
from services.records import RecordStore, ledger_key

LEDGERS = [ledger.value for ledger in LedgerType]


def ledger_frame(records: RecordStore, ledger) -> pd.DataFrame:
    key = ledger_key(ledger)
    rows = [r.to_document() for r in records.list_records(key)]
    frame = pd.DataFrame(rows, columns=LEDGER_HEADERS[key])
    frame["amount"] = pd.to_numeric(frame["amount"]).astype(float)
    return frame


def ledger_totals(records: RecordStore) -> dict:
    totals = {ledger: round(float(ledger_frame(records, ledger)["amount"].sum()), 2) for ledger in LEDGERS}
    totals["balance"] = round(totals["income"] - totals["expense"] - totals["investment"], 2)
    return totals


def liquid_cash(records: RecordStore, total_allocated: float) -> float:
    """Cash that is neither spent, invested nor already set aside for a goal."""
    balance = ledger_totals(records)["balance"]
    return round(max(0.0, balance - float(total_allocated)), 2)


def category_breakdown(records: RecordStore, ledger) -> pd.DataFrame:
    frame = ledger_frame(records, ledger)
    if frame.empty:
        return pd.DataFrame(columns=["category", "amount", "share"])

    grouped = frame.assign(category=frame["category"].replace("", "Uncategorized"))
    grouped = grouped.groupby("category", as_index=False)["amount"].sum()
    total = grouped["amount"].sum()
    grouped["share"] = (grouped["amount"] / total).round(4) if total else 0.0
    return grouped.sort_values(["amount", "category"], ascending=[False, True]).reset_index(drop=True)


def monthly_cashflow(records: RecordStore) -> pd.DataFrame:
    frames = []
    for ledger in LEDGERS:
        frame = ledger_frame(records, ledger)
        frames.append(pd.DataFrame({"month": frame["date"].astype(str).str[:7], "ledger": ledger, "amount": frame["amount"]}))
    combined = pd.concat(frames, ignore_index=True)
    if combined.empty:
        return pd.DataFrame(columns=["month", *LEDGERS, "net"])

    table = combined.pivot_table(index="month", columns="ledger", values="amount", aggfunc="sum", fill_value=0.0)
    table = table.reindex(columns=LEDGERS, fill_value=0.0).reset_index()
    table.columns.name = None
    table["net"] = (table["income"] - table["expense"] - table["investment"]).round(2)
    return table.sort_values("month").reset_index(drop=True)


def dashboard_summary(records: RecordStore, goals: GoalStore) -> dict:
    totals = ledger_totals(records)
    allocated = round(goals.get_total_allocated(), 2)
    liquid = round(max(0.0, totals["balance"] - allocated), 2)
    return {
        **totals,
        "savings": round(max(0.0, totals["balance"]), 2),
        "allocated": allocated,
        "liquid_cash": liquid,
        "total_funds": round(liquid + allocated, 2),
    }
