"""
Integration tests for the replica-builder command line.
"""

import json
import os
import time

import pytest
from rich.console import Console

from replica_builder.cli import latest_export, load_catalog, locate_exports, main
from replica_builder.schema import ColumnType
from replica_builder.storage import ReplicaStore


@pytest.fixture
def console():
    return Console(record=True, width=200)


@pytest.fixture
def export_dir(tmp_path):
    directory = tmp_path / "output"
    directory.mkdir()
    return directory


def touch(path, text, mtime):
    path.write_text(text)
    os.utime(path, (mtime, mtime))
    return path


class TestExportDiscovery:
    """Tests for locating exports in the export directory."""

    def test_latest_export_picks_newest(self, export_dir):
        now = time.time()
        touch(export_dir / "account_query_20240101_000000.csv", "Id\n1\n", now - 100)
        newest = touch(export_dir / "account_query_20240102_000000.csv", "Id\n2\n", now)

        assert latest_export(export_dir, "Account", "query", ".csv") == newest

    def test_locate_missing(self, export_dir):
        assert locate_exports(export_dir, ["Lead"]) == {"Lead": None}

    def test_load_catalog(self, export_dir):
        payload = {"result": {"fields": [{"name": "HasDiscount", "type": "string"}]}}
        (export_dir / "account_describe_20240101_000000.json").write_text(json.dumps(payload))
        (export_dir / "lead_describe_20240101_000000.json").write_text("not json")

        catalog = load_catalog(export_dir, ["Account", "Lead", "User"])

        assert catalog.lookup("Account", "HasDiscount") == ColumnType.TEXT
        assert "Lead" not in catalog

    def test_load_catalog_tolerates_null_result(self, export_dir):
        (export_dir / "account_describe_20240101_000000.json").write_text('{"status": 1, "result": null}')

        catalog = load_catalog(export_dir, ["Account"])

        assert catalog.lookup("Account", "Name") is None


class TestCommands:
    """Tests for CLI commands."""

    def test_init(self, tmp_path, console):
        db = tmp_path / "replica.db"
        assert main(["-d", str(db), "init"], console=console) == 0
        assert db.exists()

    def test_import_csv(self, tmp_path, export_dir, console):
        db = tmp_path / "replica.db"
        csv_file = export_dir / "account_query_20240101_000000.csv"
        csv_file.write_text("Id,Name,IsActive\n001,Acme,true\n002,Globex,false\n")

        code = main(["-d", str(db), "import-csv", "account", str(csv_file)], console=console)

        assert code == 0
        with ReplicaStore(db) as store:
            assert store.row_count("account") == 2
            assert store.list_indexes("account") == ["idx_account_isactive", "idx_account_name"]

    def test_import_csv_failure_exit_code(self, tmp_path, export_dir, console):
        db = tmp_path / "replica.db"
        csv_file = export_dir / "bad.csv"
        csv_file.write_text("Id,Name\n001\n")

        assert main(["-d", str(db), "import-csv", "Account", str(csv_file)], console=console) == 1

    def test_optimize(self, tmp_path, console):
        assert main(["-d", str(tmp_path / "replica.db"), "optimize"], console=console) == 0

    def test_build(self, tmp_path, export_dir, console):
        db = tmp_path / "replica.db"
        (export_dir / "account_query_20240101_000000.csv").write_text("Id,Name\n001,Acme\n")
        (export_dir / "lead_query_20240101_000000.csv").write_text("Id,Status\nL1,Open\n")

        code = main(
            ["-d", str(db), "build", "--export-dir", str(export_dir), "Account", "Lead"],
            console=console,
        )

        assert code == 0
        output = console.export_text()
        assert "Replica Build Summary" in output
        assert "Database optimized" in output
        with ReplicaStore(db) as store:
            assert store.list_tables() == ["Account", "Lead"]

    def test_build_missing_export_fails(self, tmp_path, export_dir, console):
        db = tmp_path / "replica.db"
        (export_dir / "account_query_20240101_000000.csv").write_text("Id,Name\n001,Acme\n")

        code = main(
            ["-d", str(db), "build", "--export-dir", str(export_dir), "--no-optimize", "Account", "Contact"],
            console=console,
        )

        assert code == 1
        output = console.export_text()
        assert "No export found for 'Contact'" in output
        assert "Optimization skipped" in output
