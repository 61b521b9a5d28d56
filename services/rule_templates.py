from __future__ import annotations

from datetime import date

CATEGORIES = {
    "income": ["Salary", "Freelance", "Business", "Rental", "Other"],
    "expense": ["EMI", "Subscription", "Rent", "Bills", "Groceries", "Other"],
    "investment": ["SIP", "Stocks", "Crypto", "Mutual Fund", "Gold", "Other"],
}


def list_rule_templates():
    return {
        "Monthly Salary": {
            "name": "Monthly Salary",
            "type": "income",
            "amount": 0.0,
            "frequency": "monthly",
            "dayOfMonth": 1,
            "category": "Salary",
            "description": "Salary credit",
        },
        "Home Loan EMI": {
            "name": "Home Loan EMI",
            "type": "expense",
            "amount": 0.0,
            "frequency": "monthly",
            "dayOfMonth": 5,
            "category": "EMI",
            "description": "Home loan instalment",
        },
        "Mutual Fund SIP": {
            "name": "Mutual Fund SIP",
            "type": "investment",
            "amount": 0.0,
            "frequency": "monthly",
            "dayOfMonth": 10,
            "category": "SIP",
            "description": "Mutual fund SIP",
        },
        "Streaming Subscription": {
            "name": "Streaming Subscription",
            "type": "expense",
            "amount": 0.0,
            "frequency": "monthly",
            "dayOfMonth": 15,
            "category": "Subscription",
            "description": "Streaming plan",
        },
    }


def build_template_payload(
    template_name: str,
    *,
    amount: float | None = None,
    day_of_month: int | None = None,
    start_date: date | None = None,
):
    templates = list_rule_templates()
    if template_name not in templates:
        raise KeyError(f"Unknown template: {template_name}")
    payload = templates[template_name].copy()

    if amount is not None:
        payload["amount"] = float(amount)
    if day_of_month is not None:
        payload["dayOfMonth"] = int(day_of_month)
    payload["startDate"] = (start_date or date.today()).isoformat()
    return payload
