import json

import pytest

from services.backup import (
    create_data_snapshot,
    create_encrypted_backup,
    export_data,
    import_data,
    latest_backup,
    restore_encrypted_backup,
)


def test_export_copies_every_data_file(workspace, tmp_path):
    workspace.add_record("income", {"date": "2024-01-01", "amount": 100, "category": "Salary"})
    workspace.add_goal({"name": "Bike", "targetAmount": 800, "deadline": "2024-09-01"})

    copied = export_data(tmp_path / "export", data_dir=workspace.data_dir)

    assert set(copied) == {
        "income.csv",
        "expenses.csv",
        "investments.csv",
        "automation.json",
        "goals.json",
        "settings.json",
    }
    goals = json.loads((tmp_path / "export" / "goals.json").read_text())
    assert goals["goals"][0]["name"] == "Bike"


def test_import_requires_a_ledger_file(workspace, tmp_path):
    empty = tmp_path / "empty"
    empty.mkdir()
    (empty / "settings.json").write_text("{}")

    with pytest.raises(FileNotFoundError):
        import_data(empty, data_dir=workspace.data_dir)


def test_import_snapshots_existing_data_first(workspace, tmp_path):
    workspace.add_record("expense", {"date": "2024-01-02", "amount": 40, "category": "Bills"})
    before = (workspace.data_dir / "expenses.csv").read_bytes()

    source = tmp_path / "incoming"
    source.mkdir()
    (source / "income.csv").write_text(
        "id,date,amount,category,description,type,timestamp\n"
        "abc,2024-02-01,900,Salary,,income,2024-02-01T00:00:00.000Z\n"
    )

    result = import_data(source, data_dir=workspace.data_dir)

    assert result["imported"] == ["income.csv"]
    assert result["snapshot"] is not None
    snapshot_dir = workspace.data_dir / "snapshots"
    saved = next(snapshot_dir.iterdir()) / "expenses.csv"
    assert saved.read_bytes() == before
    # files missing from the source are left alone
    assert (workspace.data_dir / "expenses.csv").read_bytes() == before


def test_snapshot_of_missing_directory_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        create_data_snapshot(data_dir=tmp_path / "nowhere")


def test_encrypted_backup_roundtrip(workspace):
    workspace.add_record("income", {"date": "2024-01-01", "amount": 250, "category": "Salary"})
    original = (workspace.data_dir / "income.csv").read_bytes()

    result = create_encrypted_backup("correct horse", data_dir=workspace.data_dir)
    assert latest_backup(workspace.data_dir) == result.path

    workspace.delete_record("income", workspace.get_records("income")[0].id)
    restored = restore_encrypted_backup(result.path, "correct horse", data_dir=workspace.data_dir)

    assert "income.csv" in restored["files"]
    assert restored["snapshot"] is not None
    assert (workspace.data_dir / "income.csv").read_bytes() == original


def test_restore_with_wrong_passphrase_fails(workspace):
    from cryptography.fernet import InvalidToken

    result = create_encrypted_backup("right", data_dir=workspace.data_dir)

    with pytest.raises(InvalidToken):
        restore_encrypted_backup(result.path, "wrong", data_dir=workspace.data_dir)


def test_backup_requires_passphrase(workspace):
    with pytest.raises(ValueError):
        create_encrypted_backup("", data_dir=workspace.data_dir)
