"""
Index Planner - one secondary index per non-key column.

Runs after an import commits. Indexes are created outside the import
transaction, so a failed index never undoes imported rows.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import List, Optional

from replica_builder.config import ReplicaConfig
from replica_builder.errors import IndexCreationError
from replica_builder.schema.models import IndexSpec, TableSchema
from replica_builder.storage.store import ReplicaStore

logger = logging.getLogger(__name__)


@dataclass
class IndexOutcome:
    """Result of applying the planned indexes for one entity."""
    applied: List[IndexSpec] = field(default_factory=list)
    errors: List[IndexCreationError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def index_names(self) -> List[str]:
        return [spec.name for spec in self.applied]


class IndexPlanner:
    """Plans and applies single-column indexes for an entity table."""

    def __init__(self, store: ReplicaStore, config: Optional[ReplicaConfig] = None):
        self.store = store
        self.config = config or ReplicaConfig()

    def plan(self, schema: TableSchema) -> List[IndexSpec]:
        """One IndexSpec per column that is not the primary key."""
        table = schema.entity_name
        physical_keys = {c.lower() for c in self._physical_keys(table)}
        specs = []
        for column in schema.columns:
            if column.is_primary_key or column.name.lower() in physical_keys:
                continue
            spec = IndexSpec(table=table, column=column.name)
            logger.info(f" -> Planning index '{spec.name}' on column '{column.name}'")
            specs.append(spec)
        return specs

    def apply(self, schema: TableSchema) -> IndexOutcome:
        """
        Create the planned indexes, collecting failures instead of raising.

        Returns:
            IndexOutcome with applied specs, per-index errors and warnings
        """
        table = schema.entity_name
        outcome = IndexOutcome()
        logger.info(f"Generating indexes for table: {table}")

        if not self._has_id_key(schema):
            message = (
                f"Table '{table}' does not have '{self.config.primary_key_name}' as a primary key; "
                "key lookups will be slower"
            )
            logger.warning(message)
            outcome.warnings.append(message)

        specs = self.plan(schema)
        if not specs:
            logger.info(f"No indexes identified for '{table}'")
            return outcome

        # SQLite reads an unknown quoted column as a string literal
        physical = {c.lower() for c in self._physical_columns(table)}

        for spec in specs:
            try:
                problem = self._conflict(spec, physical)
                if problem is None:
                    self.store.execute(spec.to_sql())
            except sqlite3.Error as e:
                problem = str(e)

            if problem is not None:
                error = IndexCreationError(f"Failed to create index '{spec.name}': {problem}", spec=spec)
                logger.warning(str(error))
                outcome.errors.append(error)
                outcome.warnings.append(str(error))
                continue
            outcome.applied.append(spec)

        logger.info(f"Applied {len(outcome.applied)}/{len(specs)} indexes for '{table}'")
        return outcome

    def _physical_keys(self, table: str) -> List[str]:
        try:
            return self.store.primary_key_columns(table)
        except sqlite3.Error as e:
            logger.debug(f"Could not read primary key of '{table}': {e}")
            return []

    def _conflict(self, spec: IndexSpec, physical) -> Optional[str]:
        """Why an index cannot be created on the physical table, or None."""
        if spec.column.lower() not in physical:
            return f"column '{spec.column}' is not in table '{spec.table}'"
        # Index names are global to the store
        owner = self.store.index_owner(spec.name)
        if owner is not None and owner.lower() != spec.table.lower():
            return f"name already used by an index on table '{owner}'"
        return None

    def _physical_columns(self, table: str) -> List[str]:
        try:
            return self.store.list_columns(table)
        except sqlite3.Error as e:
            logger.debug(f"Could not read columns of '{table}': {e}")
            return []

    def _has_id_key(self, schema: TableSchema) -> bool:
        key = self.config.primary_key_name
        if self.store.table_exists(schema.entity_name):
            return self.store.is_primary_key(schema.entity_name, key)
        pk = schema.primary_key
        return pk is not None and pk.name == key
