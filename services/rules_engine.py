from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from schemas.domain import AutomationRule, Frequency, LedgerType, Transaction, TransactionDraft
from services.automation_rules import RuleStore
from services.logs import get_logger
from services.records import RecordStore

logger = get_logger(__name__)

PERIOD_MONTHS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}
AUTOMATED_PREFIX = "Automated: "
AUTOMATED_INVESTMENT_TYPE = "SIP/Automated"


@dataclass
class RunSummary:
    fired: list[str] = field(default_factory=list)
    deactivated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    records: list[Transaction] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.fired)


def period_index(moment: date | datetime) -> int:
    return moment.year * 12 + (moment.month - 1)


def _on_clock_of(moment: datetime, now: datetime) -> datetime:
    """Express ``moment`` in the same timezone as ``now`` so calendar fields compare."""
    if now.tzinfo is None:
        return moment.astimezone().replace(tzinfo=None) if moment.tzinfo else moment
    return moment.astimezone(now.tzinfo) if moment.tzinfo else moment.replace(tzinfo=now.tzinfo)


def is_expired(rule: AutomationRule, today: date) -> bool:
    return rule.expiry_date is not None and today > rule.expiry_date


def is_due(rule: AutomationRule, now: datetime) -> bool:
    anchor = _on_clock_of(rule.last_run_date, now) if rule.last_run_date else rule.start_date
    elapsed = period_index(now) - period_index(anchor)
    return elapsed >= PERIOD_MONTHS[Frequency(rule.frequency)] and now.day >= rule.day_of_month


def build_draft(rule: AutomationRule, today: date) -> TransactionDraft:
    return TransactionDraft(
        date=today,
        amount=rule.amount,
        category=rule.category,
        description=f"{AUTOMATED_PREFIX}{rule.description}",
        type=rule.type,
        investment_type=AUTOMATED_INVESTMENT_TYPE if rule.type == LedgerType.INVESTMENT else None,
    )


class AutomationEngine:
    """Turns due automation rules into ledger records, at most once per period.

    The rule store's lock is held for the whole pass. A rule's cursor
    (``last_run_date``) only moves when its record was written, so a failed
    write is retried on the next run while the other rules carry on.
    """

    def __init__(self, rules: RuleStore, records: RecordStore):
        self.rules = rules
        self.records = records

    def run(self, now: datetime | None = None) -> RunSummary:
        now = now or datetime.now().astimezone()
        today = now.date()
        summary = RunSummary()
        changed: list[AutomationRule] = []

        with self.rules.lock:
            for rule in self.rules.list_rules():
                if not rule.is_active:
                    continue

                if is_expired(rule, today):
                    rule.is_active = False
                    changed.append(rule)
                    summary.deactivated.append(rule.id)
                    logger.info("automation_rule_expired", rule_id=rule.id, name=rule.name, expiry_date=rule.expiry_date.isoformat())
                    continue

                if today < rule.start_date or not is_due(rule, now):
                    continue

                try:
                    record = self.records.add_record(rule.type, build_draft(rule, today))
                except Exception as exc:
                    summary.failed.append(rule.id)
                    logger.error("automation_record_failed", rule_id=rule.id, ledger=rule.type.value, error=str(exc), exc_info=True)
                    continue

                rule.last_run_date = now
                changed.append(rule)
                summary.fired.append(rule.id)
                summary.records.append(record)
                logger.info("automation_rule_fired", rule_id=rule.id, name=rule.name, ledger=rule.type.value, record_id=record.id, amount=record.amount)

            if changed:
                self.rules.update_many(changed)

        logger.info(
            "automation_run_complete",
            fired=summary.count,
            deactivated=len(summary.deactivated),
            failed=len(summary.failed),
        )
        return summary
