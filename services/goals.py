from __future__ import annotations

import math

from db.documents import DocumentStore
from db.engine import GOALS_FILE, utc_now
from schemas.domain import Goal, GoalDraft, GoalPatch, GoalStatus, MutationResult


class GoalStore(DocumentStore):
    """Savings goals and the money set aside for them.

    Allocation is bookkeeping only: whether the caller can afford an allocation
    is checked against the ledgers by the caller, never here.
    """

    file_name = GOALS_FILE
    collection_key = "goals"
    model = Goal

    def list_goals(self) -> list[Goal]:
        return self.all()

    def get_goal(self, goal_id: str) -> Goal | None:
        return self.get(goal_id)

    def add_goal(self, draft: GoalDraft | dict) -> Goal:
        if not isinstance(draft, GoalDraft):
            draft = GoalDraft.model_validate(draft)
        fields = draft.model_dump(include=set(GoalDraft.model_fields))
        return self._insert(
            lambda goal_id: Goal(
                **fields,
                id=goal_id,
                allocated_amount=0.0,
                created_date=utc_now(),
                status=GoalStatus.ACTIVE,
            )
        )

    def allocate_funds(self, goal_id: str, delta: float) -> Goal | None:
        delta = float(delta)
        if not math.isfinite(delta):
            raise ValueError(f"Allocation delta must be a finite number, got {delta!r}")
        with self.lock:
            goal = self.get(goal_id)
            if goal is None:
                return None
            goal.allocated_amount = max(0.0, float(goal.allocated_amount) + delta)
            self._replace(goal)
            return goal

    def update_goal(self, goal_id: str, changes: GoalPatch | dict) -> Goal | None:
        if not isinstance(changes, GoalPatch):
            changes = GoalPatch.model_validate(changes)
        with self.lock:
            goal = self.get(goal_id)
            if goal is None:
                return None
            updated = goal.model_copy(update=changes.model_dump(exclude_unset=True, exclude_none=True))
            self._replace(updated)
            return updated

    def delete_goal(self, goal_id: str) -> MutationResult:
        return self._remove(goal_id)

    def complete_goal_purchase(self, goal_id: str) -> MutationResult:
        with self.lock:
            goal = self.get(goal_id)
            if goal is None:
                return MutationResult.NOT_FOUND
            if goal.status == GoalStatus.COMPLETED:
                return MutationResult.UNCHANGED
            goal.status = GoalStatus.COMPLETED
            return self._replace(goal)

    def reopen_goal(self, goal_id: str) -> MutationResult:
        with self.lock:
            goal = self.get(goal_id)
            if goal is None:
                return MutationResult.NOT_FOUND
            if goal.status == GoalStatus.ACTIVE:
                return MutationResult.UNCHANGED
            goal.status = GoalStatus.ACTIVE
            return self._replace(goal)

    def get_total_allocated(self) -> float:
        return float(sum(goal.allocated_amount for goal in self.all()))
