"""
Optimizer - reclaim free space and refresh planner statistics.
"""

from __future__ import annotations

import logging
import sqlite3

from replica_builder.errors import OptimizeError, StoreError
from replica_builder.storage.store import ReplicaStore

logger = logging.getLogger(__name__)


class Optimizer:
    """Whole-store maintenance. Safe to run repeatedly while no other writer is active."""

    def __init__(self, store: ReplicaStore):
        self.store = store

    def statements(self) -> list[str]:
        statements = ["ANALYZE"]
        if self.store.capabilities.supports_optimize:
            statements.append("PRAGMA optimize")
        statements.append("VACUUM")
        return statements

    def optimize(self) -> dict:
        """
        Run ANALYZE, PRAGMA optimize and VACUUM outside any transaction.

        Returns:
            Page statistics before and after

        Raises:
            OptimizeError: If any statement fails
        """
        logger.info(f"Optimizing database: {self.store.db_path}")
        try:
            before = self.store.page_stats()
            for statement in self.statements():
                logger.debug(f"Running {statement}")
                self.store.execute(statement)
            after = self.store.page_stats()
        except (sqlite3.Error, StoreError) as e:
            raise OptimizeError(f"Database optimization failed: {e}") from e

        reclaimed = before["page_count"] - after["page_count"]
        logger.info(f"Database optimized ({reclaimed} pages reclaimed)")
        return {"before": before, "after": after}
