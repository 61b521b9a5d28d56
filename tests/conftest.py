from datetime import date, datetime, timezone

import pytest

from services.automation_rules import RuleStore
from services.goals import GoalStore
from services.records import RecordStore
from services.workspace import Workspace

NOW = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture()
def data_dir(tmp_path):
    return tmp_path / "MTrack"


@pytest.fixture()
def records(data_dir):
    store = RecordStore(data_dir)
    store.initialize()
    return store


@pytest.fixture()
def rules(data_dir):
    store = RuleStore(data_dir)
    store.initialize()
    return store


@pytest.fixture()
def goals(data_dir):
    store = GoalStore(data_dir)
    store.initialize()
    return store


@pytest.fixture()
def workspace(data_dir):
    return Workspace.open(data_dir, run_automation=False)


def salary_draft(**overrides):
    payload = {
        "name": "Salary",
        "type": "income",
        "amount": 5000,
        "frequency": "monthly",
        "dayOfMonth": 5,
        "category": "Salary",
        "description": "Salary credit",
        "startDate": date(2024, 1, 1).isoformat(),
    }
    payload.update(overrides)
    return payload
