from __future__ import annotations

from db.documents import DocumentStore
from db.engine import AUTOMATION_FILE, utc_now
from schemas.domain import AutomationRule, AutomationRuleDraft, MutationResult


class RuleStore(DocumentStore):
    file_name = AUTOMATION_FILE
    collection_key = "rules"
    model = AutomationRule

    def list_rules(self) -> list[AutomationRule]:
        return self.all()

    def get_rule(self, rule_id: str) -> AutomationRule | None:
        return self.get(rule_id)

    def add_rule(self, draft: AutomationRuleDraft | dict) -> AutomationRule:
        if not isinstance(draft, AutomationRuleDraft):
            draft = AutomationRuleDraft.model_validate(draft)
        fields = draft.model_dump(include=set(AutomationRuleDraft.model_fields))
        # A new rule waits for the next period instead of firing for the current one.
        return self._insert(lambda rule_id: AutomationRule(**fields, id=rule_id, is_active=True, last_run_date=utc_now()))

    def update_rule(self, rule: AutomationRule | dict) -> MutationResult:
        if not isinstance(rule, AutomationRule):
            rule = AutomationRule.model_validate(rule)
        return self._replace(rule)

    def update_many(self, rules: list[AutomationRule]) -> int:
        """Replace every rule whose id is known in a single write; returns how many matched."""
        with self.lock:
            by_id = {r.id: r for r in rules}
            items = [by_id.get(existing.id, existing) for existing in self._items]
            matched = sum(1 for existing in self._items if existing.id in by_id)
            if matched:
                self._save(items)
            return matched

    def delete_rule(self, rule_id: str) -> MutationResult:
        return self._remove(rule_id)
