"""
Table Manager - idempotent table creation.

An existing table is never altered: its physical column set wins over
whatever schema a later import infers.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import List

from replica_builder.errors import StoreError
from replica_builder.schema.models import TableSchema, column_set
from replica_builder.storage.store import ReplicaStore

logger = logging.getLogger(__name__)


class TableManager:
    """Creates entity tables if absent."""

    def __init__(self, store: ReplicaStore):
        self.store = store

    def ensure_table(self, schema: TableSchema) -> List[str]:
        """
        Create the entity table unless it already exists.

        Returns:
            Warnings about an existing table whose columns differ from the
            inferred schema (the existing table is kept as-is)

        Raises:
            StoreError: If the table cannot be created or inspected
        """
        table = schema.entity_name
        warnings: List[str] = []
        try:
            if self.store.table_exists(table):
                existing = self.store.list_columns(table)
                if column_set(existing) != column_set(schema.column_names):
                    message = (
                        f"Table '{table}' already exists with columns {existing}; "
                        f"keeping it unchanged (header has {schema.column_names})"
                    )
                    logger.warning(message)
                    warnings.append(message)
                else:
                    logger.info(f"Table '{table}' already exists")
                return warnings

            logger.info(f"Creating table '{table}'")
            self.store.execute(schema.create_table_sql())
        except sqlite3.Error as e:
            raise StoreError(f"Failed to create table '{table}': {e}") from e

        logger.info(f"Table '{table}' created")
        return warnings
