import json

import pytest

from app import main


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("app.configure_logging", lambda level=None: None)


def run(capsys, data_dir, *args):
    code = main(["--data-dir", str(data_dir), "--no-automation", *args])
    out, err = capsys.readouterr()
    return code, out, err


def test_records_add_then_list(capsys, data_dir):
    code, out, _ = run(capsys, data_dir, "records", "add", "income", "5000", "Salary", "--date", "2024-01-15")
    assert code == 0
    added = json.loads(out)
    assert added["amount"] == 5000.0
    assert added["type"] == "income"

    code, out, _ = run(capsys, data_dir, "records", "list", "income")
    listed = json.loads(out)
    assert [row["id"] for row in listed] == [added["id"]]


def test_summary_reports_totals(capsys, data_dir):
    run(capsys, data_dir, "records", "add", "income", "1000", "Salary", "--date", "2024-01-15")
    run(capsys, data_dir, "records", "add", "expense", "250", "Rent", "--date", "2024-01-16")

    code, out, _ = run(capsys, data_dir, "summary")

    summary = json.loads(out)
    assert code == 0
    assert summary["balance"] == 750.0
    assert summary["liquid_cash"] == 750.0


def test_invalid_payload_exits_with_error(capsys, data_dir):
    code, out, err = run(capsys, data_dir, "records", "add", "expense", "10", "Bills", "--date", "yesterday")

    assert code == 2
    assert out == ""
    assert "error:" in err


def test_unknown_template_exits_with_error(capsys, data_dir):
    code, _, err = run(capsys, data_dir, "rules", "from-template", "Nope", "--amount", "10")

    assert code == 2
    assert "Unknown template" in err


def test_delete_missing_record_reports_not_found(capsys, data_dir):
    code, out, _ = run(capsys, data_dir, "records", "delete", "expense", "missing")

    assert code == 0
    assert json.loads(out) == "not_found"


def test_corrupt_ledger_exits_with_error(capsys, data_dir):
    run(capsys, data_dir, "settings", "show")
    damaged = "id,date,amount,category,description,type,timestamp\nx,2024-01-01,lots,Bills,,expense,t\n"
    (data_dir / "expenses.csv").write_text(damaged)

    code, out, err = run(capsys, data_dir, "records", "add", "expense", "10", "Bills", "--date", "2024-01-02")

    assert code == 2
    assert out == ""
    assert "Could not parse expense ledger" in err
    assert (data_dir / "expenses.csv").read_text() == damaged
