import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conftest import salary_draft
from schemas.domain import MutationResult
from services.automation_rules import RuleStore


def test_add_rule_seeds_cursor_and_persists_camel_case(rules, data_dir):
    rule = rules.add_rule(salary_draft())

    assert rule.id
    assert rule.is_active is True
    assert datetime.now(timezone.utc) - rule.last_run_date < timedelta(minutes=1)

    doc = json.loads((data_dir / "automation.json").read_text())
    stored = doc["rules"][0]
    assert stored["id"] == rule.id
    assert stored["dayOfMonth"] == 5
    assert stored["isActive"] is True
    assert "lastRunDate" in stored


def test_rules_reload_from_disk(rules, data_dir):
    rule = rules.add_rule(salary_draft())

    fresh = RuleStore(data_dir)
    fresh.initialize()

    assert fresh.list_rules() == [rule]


def test_update_rule_replaces_wholesale(rules):
    rule = rules.add_rule(salary_draft())
    changed = rule.model_copy(update={"amount": 6000.0, "is_active": False})

    assert rules.update_rule(changed) is MutationResult.UPDATED
    stored = rules.get_rule(rule.id)
    assert stored.amount == 6000.0
    assert stored.is_active is False


def test_update_unknown_rule_is_not_found(rules):
    rule = rules.add_rule(salary_draft())
    ghost = rule.model_copy(update={"id": "ghost"})

    assert rules.update_rule(ghost) is MutationResult.NOT_FOUND
    assert [r.id for r in rules.list_rules()] == [rule.id]


def test_delete_rule(rules):
    rule = rules.add_rule(salary_draft())

    assert rules.delete_rule(rule.id) is MutationResult.DELETED
    assert rules.delete_rule(rule.id) is MutationResult.NOT_FOUND
    assert rules.list_rules() == []


def test_rule_ids_are_unique(rules):
    ids = {rules.add_rule(salary_draft(name=f"R{i}")).id for i in range(20)}
    assert len(ids) == 20


def test_day_of_month_is_limited_to_28(rules):
    with pytest.raises(ValidationError):
        rules.add_rule(salary_draft(dayOfMonth=31))


def test_expiry_before_start_is_rejected(rules):
    with pytest.raises(ValidationError):
        rules.add_rule(salary_draft(startDate="2024-05-01", expiryDate="2024-04-01"))


def test_returned_rules_are_copies(rules):
    rule = rules.add_rule(salary_draft())
    listed = rules.list_rules()[0]
    listed.amount = 1.0

    assert rules.get_rule(rule.id).amount == 5000.0


def test_corrupt_document_is_quarantined(data_dir):
    data_dir.mkdir(parents=True)
    (data_dir / "automation.json").write_text("{not json")

    store = RuleStore(data_dir)
    store.initialize()

    assert store.list_rules() == []
    moved = list(data_dir.glob("automation.json.corrupt-*"))
    assert len(moved) == 1
    assert moved[0].read_text() == "{not json"
    assert json.loads((data_dir / "automation.json").read_text()) == {"rules": []}


def test_failed_save_keeps_cache_and_file(rules, data_dir, monkeypatch):
    rules.add_rule(salary_draft())
    before = (data_dir / "automation.json").read_bytes()

    def fail_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr("db.engine.os.replace", fail_replace)
    with pytest.raises(OSError):
        rules.add_rule(salary_draft(name="Second"))
    monkeypatch.undo()

    assert len(rules.list_rules()) == 1
    assert (data_dir / "automation.json").read_bytes() == before
