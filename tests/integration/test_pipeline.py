"""
Integration tests for the full replica build pipeline.

Tests the complete flow:
1. Infer schema from an export header
2. Create the table idempotently
3. Import rows in one transaction
4. Index non-key columns
5. Optimize the store once
"""

import io

import pytest

from replica_builder import (
    BulkImportError,
    ColumnType,
    MetadataCatalog,
    ReplicaBuilder,
    ReplicaConfig,
    ReplicaStore,
    SchemaError,
)


@pytest.fixture
def store(tmp_path):
    store = ReplicaStore(tmp_path / "sfdc-replica.db")
    yield store
    store.close()


@pytest.fixture
def builder(store) -> ReplicaBuilder:
    return ReplicaBuilder(store, ReplicaConfig())


def write_export(directory, name, text):
    path = directory / name
    path.write_text(text)
    return path


class TestImportEntity:
    """Tests for single-entity imports."""

    def test_account_scenario(self, builder, store):
        """Id,Name,IsActive with two rows into an empty store."""
        source = io.StringIO("Id,Name,IsActive\n001,Acme,true\n002,Globex,false\n")

        result = builder.import_entity("account", source)

        assert result.success
        assert result.rows_imported == 2
        assert store.row_count("account") == 2
        assert store.primary_key_columns("account") == ["Id"]
        types = {c.name: c.declared_type for c in store.describe_table("account")}
        assert types["IsActive"] == "BOOLEAN"
        assert store.list_indexes("account") == ["idx_account_isactive", "idx_account_name"]
        assert "idx_account_id" not in store.list_indexes("account")
        assert result.warnings == []

    def test_no_primary_key_scenario(self, builder, store):
        result = builder.import_entity("Case", io.StringIO("Name,Status\nA,Open\nB,Closed\n"))

        assert result.success
        assert store.primary_key_columns("Case") == []
        assert sorted(store.list_indexes("Case")) == ["idx_case_name", "idx_case_status"]
        assert any("primary key" in w for w in result.warnings)

    def test_import_from_path(self, builder, store, tmp_path):
        path = write_export(tmp_path, "contact_query.csv", "Id,LastName,Email\nc1,Doe,doe@example.com\n")

        result = builder.import_entity("Contact", path)

        assert result.rows_imported == 1
        assert store.list_indexes("Contact") == ["idx_contact_email", "idx_contact_lastname"]

    def test_missing_file_is_import_error(self, builder, tmp_path):
        with pytest.raises(BulkImportError):
            builder.import_entity("Contact", tmp_path / "nope.csv")

    def test_empty_source_is_schema_error(self, builder, store):
        with pytest.raises(SchemaError):
            builder.import_entity("Account", io.StringIO(""))
        assert not store.table_exists("Account")

    def test_reimport_keeps_column_set(self, builder, store):
        builder.import_entity("Account", io.StringIO("Id,Name\n001,Acme\n"))

        result = builder.import_entity("Account", io.StringIO("Id,Name\n002,Globex\n"))
        assert result.rows_imported == 1
        assert store.row_count("Account") == 2

        with pytest.raises(BulkImportError):
            builder.import_entity("Account", io.StringIO("Id,Name,Industry\n003,Initech,Software\n"))

        assert store.list_columns("Account") == ["Id", "Name"]
        assert store.row_count("Account") == 2

    def test_reimport_with_subset_header(self, builder, store):
        builder.import_entity("Account", io.StringIO("Id,Name,Industry\n001,Acme,Retail\n"))

        result = builder.import_entity("Account", io.StringIO("Id,Name\n002,Globex\n"))

        assert result.success
        assert store.list_columns("Account") == ["Id", "Name", "Industry"]
        assert any("already exists" in w for w in result.warnings)

    def test_mismatched_row_leaves_prior_data(self, builder, store):
        builder.import_entity("Account", io.StringIO("Id,Name\n001,Acme\n"))

        with pytest.raises(BulkImportError):
            builder.import_entity("Account", io.StringIO("Id,Name\n002,Globex\n003\n"))

        rows = store.execute('SELECT "Id" FROM "Account"').fetchall()
        assert [r[0] for r in rows] == ["001"]

    def test_catalog_hint_applies(self, store):
        catalog = MetadataCatalog({"Account": {"HasDiscount": ColumnType.TEXT}})
        builder = ReplicaBuilder(store, ReplicaConfig(), catalog)

        builder.import_entity("Account", io.StringIO("Id,HasDiscount\n001,yes\n"))

        types = {c.name: c.declared_type for c in store.describe_table("Account")}
        assert types["HasDiscount"] == "TEXT"
        assert store.execute('SELECT "HasDiscount" FROM "Account"').fetchone()[0] == "yes"


class TestBuild:
    """Tests for multi-entity builds."""

    def test_failures_do_not_stop_other_entities(self, builder, store):
        report = builder.build([
            ("Account", io.StringIO("Id,Name\n001,Acme\n")),
            ("Broken", io.StringIO("")),
            ("Dupes", io.StringIO("Id,Name\n1,a\n1,b\n")),
            ("Missing", None),
            ("Lead", io.StringIO("Id,Status\nL1,Open\n")),
        ])

        assert report.summary() == {"Account": 1, "Broken": 0, "Dupes": 0, "Missing": 0, "Lead": 1}
        assert report.failed_entities == ["Broken", "Dupes", "Missing"]
        assert not report.succeeded
        assert report.result_for("Broken").error_type == "SchemaError"
        assert report.result_for("Dupes").error_type == "BulkImportError"
        assert report.result_for("Missing").error_type == "MissingExport"
        assert report.optimize_result.ok
        assert store.row_count("Dupes") == 0

    def test_undecodable_export_does_not_stop_build(self, builder, store, tmp_path):
        """An export that is not UTF-8 fails its entity only."""
        bad = tmp_path / "account_query.csv"
        bad.write_bytes(b"Id,Name\n001,Acm\xff\n")

        report = builder.build([
            ("Account", bad),
            ("Lead", io.StringIO("Id,Status\nL1,Open\n")),
        ])

        assert report.failed_entities == ["Account"]
        assert report.result_for("Account").error_type == "BulkImportError"
        assert report.result_for("Lead").rows_imported == 1
        assert store.row_count("Lead") == 1
        assert report.optimize_result.ok

    def test_unsupported_source_is_recorded(self, builder):
        report = builder.build([("Account", 42), ("Lead", io.StringIO("Id\nL1\n"))])

        assert report.result_for("Account").error_type == "BulkImportError"
        assert report.result_for("Lead").success

    def test_optimize_can_be_skipped(self, builder):
        report = builder.build({"Account": io.StringIO("Id,Name\n001,Acme\n")}, optimize=False)

        assert report.succeeded
        assert report.optimize_result.skipped

    def test_optimize_store_on_empty_store(self, builder):
        assert builder.optimize_store().ok

    def test_report_to_json(self, builder):
        report = builder.build({"Account": io.StringIO("Id,Name\n001,Acme\n")})
        payload = report.to_json()
        assert '"rows_imported": 1' in payload
        assert '"idx_account_name"' in payload
