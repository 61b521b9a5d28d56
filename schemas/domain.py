from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class LedgerType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    INVESTMENT = "investment"


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class GoalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class Theme(str, Enum):
    DARK = "dark"
    LIGHT = "light"


class MutationResult(str, Enum):
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"

    @property
    def found(self) -> bool:
        return self is not MutationResult.NOT_FOUND


class CamelModel(BaseModel):
    """Python names are snake_case; the files on disk use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]
OptionalDate = Annotated[date | None, BeforeValidator(_blank_to_none)]


class TransactionDraft(CamelModel):
    date: date
    amount: float = Field(ge=0)
    category: str = ""
    description: str = ""
    type: LedgerType | None = None
    investment_type: OptionalText = None


class Transaction(CamelModel):
    id: str
    date: str
    amount: float
    category: str = ""
    description: str = ""
    type: LedgerType
    timestamp: str
    investment_type: OptionalText = None


class RecordPatch(CamelModel):
    id: str
    date: str | None = None
    amount: float | None = Field(default=None, ge=0)
    category: str | None = None
    description: str | None = None
    type: LedgerType | None = None
    investment_type: str | None = None

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value):
        if value is None:
            return value
        return date.fromisoformat(value).isoformat()


class AutomationRuleDraft(CamelModel):
    name: str = Field(min_length=1)
    type: LedgerType
    amount: float = Field(ge=0)
    frequency: Frequency = Frequency.MONTHLY
    day_of_month: int = Field(ge=1, le=28)
    category: str = ""
    description: str = ""
    start_date: date
    expiry_date: OptionalDate = None

    @model_validator(mode="after")
    def _expiry_after_start(self):
        if self.expiry_date is not None and self.expiry_date < self.start_date:
            raise ValueError("expiryDate must not be before startDate")
        return self


class AutomationRule(AutomationRuleDraft):
    id: str
    last_run_date: datetime | None = None
    is_active: bool = True


class GoalDraft(CamelModel):
    name: str = Field(min_length=1)
    target_amount: float = Field(gt=0)
    deadline: date


class Goal(GoalDraft):
    id: str
    allocated_amount: float = Field(default=0.0, ge=0)
    created_date: datetime
    status: GoalStatus = GoalStatus.ACTIVE


class GoalPatch(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    target_amount: float | None = Field(default=None, gt=0)
    deadline: date | None = None


class AppSettings(CamelModel):
    currency: str = "USD"
    currency_locale: str = "en-US"
    theme: Theme = Theme.DARK
    is_first_run: bool = True


class SettingsPatch(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    currency: str | None = None
    currency_locale: str | None = None
    theme: str | None = None
    is_first_run: bool | None = None
