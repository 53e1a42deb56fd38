"""
Replica Store - the single SQLite file holding every entity table.

Introspection goes through SQLite's own catalog (sqlite_master and the
table-valued pragma functions), never through printed shell output.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from replica_builder.config import StoreCapabilities
from replica_builder.errors import StoreError
from replica_builder.schema.models import quote_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnInfo:
    """Physical column as reported by the store."""
    name: str
    declared_type: str
    is_primary_key: bool


class ReplicaStore:
    """
    SQLite replica store.

    One connection per store, opened lazily in autocommit mode; writes that
    must be atomic go through transaction().

    Example:
        >>> store = ReplicaStore("sfdc-replica.db")
        >>> store.list_tables()
        ['Account', 'Contact']
    """

    def __init__(
        self,
        db_path: "str | Path" = "sfdc-replica.db",
        capabilities: Optional[StoreCapabilities] = None,
    ):
        """
        Args:
            db_path: Path to the SQLite database file
            capabilities: Detected SQLite features; detected once if omitted
        """
        self.db_path = Path(db_path)
        self.capabilities = capabilities or StoreCapabilities.detect()
        self._connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        if self._connection is None:
            existed = self.db_path.exists()
            try:
                self._connection = sqlite3.connect(
                    str(self.db_path),
                    isolation_level=None,
                )
            except sqlite3.Error as e:
                raise StoreError(f"Cannot open store '{self.db_path}': {e}") from e
            self._connection.row_factory = sqlite3.Row
            if not existed:
                logger.info(f"Created new store at {self.db_path}")
        return self._connection

    @property
    def connection(self) -> sqlite3.Connection:
        return self._get_connection()

    def initialize(self):
        """Create the store file if it does not exist yet."""
        if self.db_path.exists():
            logger.info(f"Store file '{self.db_path}' already exists")
        try:
            self.connection.execute("PRAGMA schema_version").fetchone()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot initialize store '{self.db_path}': {e}") from e

    def close(self):
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "ReplicaStore":
        return self

    def __exit__(self, *exc):
        self.close()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for an explicit atomic transaction."""
        conn = self.connection
        conn.execute("BEGIN")
        try:
            yield conn
            conn.commit()
        except BaseException:
            conn.rollback()
            raise

    def execute(self, sql: str, params=()) -> sqlite3.Cursor:
        return self.connection.execute(sql, params)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def list_tables(self) -> List[str]:
        rows = self.execute("""
            SELECT name FROM sqlite_master
            WHERE type = 'table' AND name NOT LIKE 'sqlite_%'
            ORDER BY name
        """).fetchall()
        return [row["name"] for row in rows]

    def table_exists(self, table: str) -> bool:
        row = self.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ? COLLATE NOCASE",
            (table,),
        ).fetchone()
        return row is not None

    def describe_table(self, table: str) -> List[ColumnInfo]:
        rows = self.execute(
            "SELECT name, type, pk FROM pragma_table_info(?) ORDER BY cid",
            (table,),
        ).fetchall()
        return [
            ColumnInfo(name=row["name"], declared_type=row["type"] or "", is_primary_key=bool(row["pk"]))
            for row in rows
        ]

    def list_columns(self, table: str) -> List[str]:
        return [c.name for c in self.describe_table(table)]

    def is_primary_key(self, table: str, column: str) -> bool:
        lowered = column.lower()
        return any(
            c.is_primary_key and c.name.lower() == lowered
            for c in self.describe_table(table)
        )

    def primary_key_columns(self, table: str) -> List[str]:
        return [c.name for c in self.describe_table(table) if c.is_primary_key]

    def list_indexes(self, table: str) -> List[str]:
        """Explicitly created indexes on a table (automatic key indexes excluded)."""
        rows = self.execute("""
            SELECT name FROM sqlite_master
            WHERE type = 'index' AND tbl_name = ? COLLATE NOCASE
              AND name NOT LIKE 'sqlite_autoindex_%'
            ORDER BY name
        """, (table,)).fetchall()
        return [row["name"] for row in rows]

    def index_owner(self, index_name: str) -> Optional[str]:
        """Table an index belongs to, or None when no index has that name."""
        row = self.execute(
            "SELECT tbl_name FROM sqlite_master WHERE type = 'index' AND name = ? COLLATE NOCASE",
            (index_name,),
        ).fetchone()
        return row["tbl_name"] if row else None

    def row_count(self, table: str) -> int:
        row = self.execute(f"SELECT COUNT(*) FROM {quote_identifier(table)}").fetchone()
        return int(row[0])

    def page_stats(self) -> dict:
        """Page and free-list counts, used to report reclaimed space."""
        page_count = self.execute("PRAGMA page_count").fetchone()[0]
        freelist_count = self.execute("PRAGMA freelist_count").fetchone()[0]
        page_size = self.execute("PRAGMA page_size").fetchone()[0]
        return {
            "page_count": page_count,
            "freelist_count": freelist_count,
            "page_size": page_size,
        }
