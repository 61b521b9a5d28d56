from __future__ import annotations

import math
from datetime import date, datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError

from db.engine import resolve_data_dir
from schemas.domain import (
    AppSettings,
    AutomationRule,
    AutomationRuleDraft,
    Goal,
    GoalDraft,
    GoalPatch,
    LedgerType,
    MutationResult,
    RecordPatch,
    SettingsPatch,
    Transaction,
    TransactionDraft,
)
from services import backup
from services.automation_rules import RuleStore
from services.errors import ValidationFailure
from services.goals import GoalStore
from services.records import RecordStore
from services.rules_engine import AutomationEngine
from services.scheduler import start_local_scheduler
from services.summary import dashboard_summary, liquid_cash
from services.user_settings import SettingsStore

GOAL_PURCHASE_CATEGORY = "Goal"


def _validate(model: type[BaseModel], payload):
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ValidationFailure(f"Invalid {model.__name__} payload", errors=exc.errors(include_url=False)) from exc


def _ledger(ledger) -> LedgerType:
    try:
        return LedgerType(ledger)
    except ValueError as exc:
        raise ValidationFailure(f"Unknown ledger: {ledger!r}") from exc


def _check_type(ledger: LedgerType, declared: LedgerType | None) -> None:
    if declared is not None and declared != ledger:
        raise ValidationFailure(f"A {declared.value} record cannot be stored in the {ledger.value} ledger")


class Workspace:
    """The command surface the host calls into.

    Payloads from the outside are validated here before they reach a store, and
    flows that touch more than one store (goal allocation against liquid cash,
    goal purchase plus its expense) are orchestrated here so the stores stay
    independent of each other.
    """

    def __init__(self, data_dir: str | Path | None = None):
        self.data_dir = resolve_data_dir(data_dir)
        self.records = RecordStore(self.data_dir)
        self.rules = RuleStore(self.data_dir)
        self.goals = GoalStore(self.data_dir)
        self.settings = SettingsStore(self.data_dir)
        self.engine = AutomationEngine(self.rules, self.records)

    @classmethod
    def open(cls, data_dir: str | Path | None = None, run_automation: bool = True, now: datetime | None = None):
        workspace = cls(data_dir)
        workspace.initialize()
        if run_automation:
            workspace.run_automation(now=now)
        return workspace

    def initialize(self) -> None:
        self.records.initialize()
        self.settings.initialize()
        self.rules.initialize()
        self.goals.initialize()

    # Records

    def get_records(self, ledger) -> list[Transaction]:
        return self.records.list_records(_ledger(ledger))

    def add_record(self, ledger, payload) -> Transaction:
        key = _ledger(ledger)
        draft = _validate(TransactionDraft, payload)
        _check_type(key, draft.type)
        return self.records.add_record(key, draft)

    def update_record(self, ledger, payload) -> MutationResult:
        key = _ledger(ledger)
        patch = _validate(RecordPatch, payload)
        _check_type(key, patch.type)
        return self.records.update_record(key, patch)

    def delete_record(self, ledger, record_id: str) -> MutationResult:
        return self.records.delete_record(_ledger(ledger), record_id)

    # Automation rules

    def get_rules(self) -> list[AutomationRule]:
        return self.rules.list_rules()

    def add_rule(self, payload) -> AutomationRule:
        return self.rules.add_rule(_validate(AutomationRuleDraft, payload))

    def update_rule(self, payload) -> MutationResult:
        return self.rules.update_rule(_validate(AutomationRule, payload))

    def delete_rule(self, rule_id: str) -> MutationResult:
        return self.rules.delete_rule(rule_id)

    def run_automation(self, now: datetime | None = None) -> int:
        return self.engine.run(now=now).count

    def start_scheduler(self, minutes: int = 60):
        return start_local_scheduler(self.engine, minutes=minutes)

    # Goals

    def get_goals(self) -> list[Goal]:
        return self.goals.list_goals()

    def add_goal(self, payload) -> Goal:
        return self.goals.add_goal(_validate(GoalDraft, payload))

    def update_goal(self, goal_id: str, updates) -> Goal | None:
        return self.goals.update_goal(goal_id, _validate(GoalPatch, updates))

    def delete_goal(self, goal_id: str) -> MutationResult:
        return self.goals.delete_goal(goal_id)

    def get_total_allocated(self) -> float:
        return self.goals.get_total_allocated()

    def liquid_cash(self) -> float:
        return liquid_cash(self.records, self.goals.get_total_allocated())

    def allocate_to_goal(self, goal_id: str, amount: float) -> Goal | None:
        try:
            amount = float(amount)
        except (TypeError, ValueError) as exc:
            raise ValidationFailure(f"Allocation amount must be a number, got {amount!r}") from exc
        if not math.isfinite(amount):
            raise ValidationFailure(f"Allocation amount must be finite, got {amount!r}")

        with self.goals.lock:
            if amount > 0:
                available = self.liquid_cash()
                if amount > available:
                    raise ValidationFailure(f"Cannot allocate {amount:.2f}; only {available:.2f} liquid cash is available")
            return self.goals.allocate_funds(goal_id, amount)

    def complete_goal_purchase(self, goal_id: str, today: date | None = None) -> bool:
        with self.goals.lock:
            goal = self.goals.get_goal(goal_id)
            if goal is None or self.goals.complete_goal_purchase(goal_id) is not MutationResult.UPDATED:
                return False
            try:
                self.records.add_record(
                    LedgerType.EXPENSE,
                    TransactionDraft(
                        date=today or date.today(),
                        amount=goal.target_amount,
                        category=GOAL_PURCHASE_CATEGORY,
                        description=f"Purchase: {goal.name}",
                        type=LedgerType.EXPENSE,
                    ),
                )
            except Exception:
                # The purchase stays retryable when the expense could not be written.
                self.goals.reopen_goal(goal_id)
                raise
            return True

    # Settings

    def get_settings(self) -> AppSettings:
        return self.settings.get()

    def update_settings(self, payload) -> AppSettings:
        return self.settings.update(_validate(SettingsPatch, payload))

    # Reporting and data management

    def summary(self) -> dict:
        return dashboard_summary(self.records, self.goals)

    def export_data(self, dest_dir: str | Path) -> list[str]:
        return backup.export_data(dest_dir, data_dir=self.data_dir)

    def import_data(self, src_dir: str | Path) -> dict:
        result = backup.import_data(src_dir, data_dir=self.data_dir)
        self.initialize()
        return result
