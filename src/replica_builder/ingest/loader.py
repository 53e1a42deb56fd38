"""
Bulk Loader - all-or-nothing row import for one entity.

Every row of an import call goes in inside a single transaction. A row
with the wrong field count, a duplicate primary key or any store failure
rolls the whole call back.
"""

from __future__ import annotations

import csv
import logging
import sqlite3
from typing import Iterator, List, Optional, Sequence

from replica_builder.config import ReplicaConfig
from replica_builder.errors import BulkImportError
from replica_builder.ingest.source import ImportBatch
from replica_builder.schema.models import ColumnType, TableSchema
from replica_builder.storage.store import ReplicaStore

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "1", "yes", "y", "t"}
FALSE_VALUES = {"false", "0", "no", "n", "f"}


def to_boolean(value: str):
    """Normalize a boolean cell to 1/0, empty to None; other values pass through."""
    lowered = value.strip().lower()
    if lowered == "":
        return None
    if lowered in TRUE_VALUES:
        return 1
    if lowered in FALSE_VALUES:
        return 0
    return value


class BulkLoader:
    """
    Transactional row importer.

    Example:
        >>> loader = BulkLoader(store)
        >>> loader.load(schema, batch)
        2
    """

    def __init__(self, store: ReplicaStore, config: Optional[ReplicaConfig] = None):
        self.store = store
        self.config = config or ReplicaConfig()

    def load(self, schema: TableSchema, batch: ImportBatch) -> int:
        """
        Insert every row of the batch into the schema's table.

        Args:
            schema: Schema inferred from the batch header
            batch: Header and rows for the entity

        Returns:
            Number of rows committed

        Raises:
            BulkImportError: If any row fails; nothing from this call is kept
        """
        table = schema.entity_name
        expected = len(batch.header)
        sql = schema.insert_sql()
        size = self.config.insert_batch_size
        inserted = 0

        self._check_columns(schema)

        logger.info(f"Importing rows into '{table}'")
        try:
            with self.store.transaction() as conn:
                pending: List[tuple] = []
                for values in self._project(schema, batch, expected):
                    pending.append(values)
                    if len(pending) >= size:
                        conn.executemany(sql, pending)
                        inserted += len(pending)
                        pending = []
                if pending:
                    conn.executemany(sql, pending)
                    inserted += len(pending)
        except BulkImportError:
            logger.error(f"Import into '{table}' rolled back")
            raise
        except sqlite3.IntegrityError as e:
            logger.error(f"Import into '{table}' rolled back: {e}")
            raise BulkImportError(
                f"Constraint violation importing '{table}': {e}", entity=table,
            ) from e
        except sqlite3.Error as e:
            logger.error(f"Import into '{table}' rolled back: {e}")
            raise BulkImportError(f"Store failure importing '{table}': {e}", entity=table) from e
        except (csv.Error, OSError, UnicodeDecodeError) as e:
            logger.error(f"Import into '{table}' rolled back: {e}")
            raise BulkImportError(
                f"Cannot read source for '{table}' near line {batch.line}: {e}",
                entity=table,
                line=batch.line,
            ) from e

        logger.info(f"Imported {inserted:,} rows into '{table}'")
        return inserted

    def _check_columns(self, schema: TableSchema):
        """Every header column must exist in the table; tables are never altered."""
        table = schema.entity_name
        try:
            physical = {c.lower() for c in self.store.list_columns(table)}
        except sqlite3.Error as e:
            raise BulkImportError(f"Cannot read columns of '{table}': {e}", entity=table) from e
        if not physical:
            return
        unknown = [name for name in schema.column_names if name.lower() not in physical]
        if unknown:
            message = (
                f"Table '{table}' has no column named {', '.join(repr(n) for n in unknown)}; "
                "existing tables are not altered on re-import"
            )
            logger.error(message)
            raise BulkImportError(message, entity=table)

    def _project(self, schema: TableSchema, batch: ImportBatch, expected: int) -> Iterator[tuple]:
        """Validate each row's shape and pick out the schema's columns."""
        positions: Sequence[int] = schema.positions
        booleans = [c.type == ColumnType.BOOLEAN for c in schema.columns]

        for row in batch:
            if len(row) != expected:
                raise BulkImportError(
                    f"Row {batch.row_count} (line {batch.line}) of '{schema.entity_name}' "
                    f"has {len(row)} fields, header has {expected}",
                    entity=schema.entity_name,
                    line=batch.line,
                )
            yield tuple(
                to_boolean(row[pos]) if is_bool else row[pos]
                for pos, is_bool in zip(positions, booleans)
            )
