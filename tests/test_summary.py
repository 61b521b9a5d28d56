import pytest

from services.summary import category_breakdown, dashboard_summary, ledger_totals, liquid_cash, monthly_cashflow


def seed(records):
    records.add_record("income", {"date": "2024-01-01", "amount": 5000, "category": "Salary"})
    records.add_record("expense", {"date": "2024-01-03", "amount": 1200, "category": "Rent"})
    records.add_record("expense", {"date": "2024-02-04", "amount": 300, "category": "Groceries"})
    records.add_record("investment", {"date": "2024-02-10", "amount": 500, "category": "SIP", "investmentType": "Fund"})


def test_ledger_totals(records):
    seed(records)

    totals = ledger_totals(records)

    assert totals == {"income": 5000.0, "expense": 1500.0, "investment": 500.0, "balance": 3000.0}


def test_totals_on_empty_ledgers(records):
    assert ledger_totals(records)["balance"] == 0.0
    assert category_breakdown(records, "expense").empty
    assert monthly_cashflow(records).empty


def test_liquid_cash_subtracts_allocations_and_floors_at_zero(records):
    seed(records)

    assert liquid_cash(records, 1000) == 2000.0
    assert liquid_cash(records, 5000) == 0.0


def test_category_breakdown_orders_by_amount(records):
    seed(records)

    breakdown = category_breakdown(records, "expense")

    assert list(breakdown["category"]) == ["Rent", "Groceries"]
    assert breakdown.iloc[0]["share"] == pytest.approx(0.8)


def test_monthly_cashflow_pivots_by_month(records):
    seed(records)

    flow = monthly_cashflow(records)

    assert list(flow["month"]) == ["2024-01", "2024-02"]
    january = flow.iloc[0]
    assert january["income"] == 5000.0
    assert january["expense"] == 1200.0
    assert january["net"] == 3800.0
    assert flow.iloc[1]["investment"] == 500.0


def test_dashboard_summary(records, goals):
    seed(records)
    goal = goals.add_goal({"name": "Trip", "targetAmount": 2000, "deadline": "2024-12-01"})
    goals.allocate_funds(goal.id, 750)

    summary = dashboard_summary(records, goals)

    assert summary["allocated"] == 750.0
    assert summary["liquid_cash"] == 2250.0
    assert summary["total_funds"] == 3000.0
    assert summary["savings"] == 3000.0
