"""
Replica Builder - sequences schema inference, table creation, import and
indexing per entity, then optimizes the store once.

Per-entity failures are recorded and never stop the remaining entities.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from replica_builder.config import ReplicaConfig
from replica_builder.errors import (
    BulkImportError,
    IndexCreationError,
    OptimizeError,
    ReplicaError,
)
from replica_builder.indexing import IndexPlanner
from replica_builder.ingest.loader import BulkLoader
from replica_builder.ingest.source import Source, open_batch
from replica_builder.optimizer import Optimizer
from replica_builder.schema.catalog import MetadataCatalog
from replica_builder.schema.inferencer import SchemaInferencer
from replica_builder.storage.store import ReplicaStore
from replica_builder.storage.tables import TableManager

logger = logging.getLogger(__name__)


@dataclass
class EntityResult:
    """Outcome of importing one entity."""
    entity: str
    success: bool = False
    rows_imported: int = 0
    warnings: List[str] = field(default_factory=list)
    index_errors: List[IndexCreationError] = field(default_factory=list)
    indexes: List[str] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "entity": self.entity,
            "success": self.success,
            "rows_imported": self.rows_imported,
            "warnings": list(self.warnings),
            "indexes": list(self.indexes),
            "error": self.error,
            "error_type": self.error_type,
        }


@dataclass
class OptimizeResult:
    """Outcome of the whole-store optimize step."""
    ok: bool
    error: Optional[str] = None
    skipped: bool = False
    stats: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {"ok": self.ok, "error": self.error, "skipped": self.skipped}


@dataclass
class BuildReport:
    """Per-entity results plus the single optimizer outcome."""
    entity_results: List[EntityResult] = field(default_factory=list)
    optimize_result: Optional[OptimizeResult] = None
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def succeeded(self) -> bool:
        return all(r.success for r in self.entity_results)

    @property
    def failed_entities(self) -> List[str]:
        return [r.entity for r in self.entity_results if not r.success]

    def result_for(self, entity: str) -> Optional[EntityResult]:
        for result in self.entity_results:
            if result.entity == entity:
                return result
        return None

    def summary(self) -> Dict[str, int]:
        """Rows imported per entity (failed entities report 0)."""
        return {r.entity: r.rows_imported for r in self.entity_results}

    def to_dict(self) -> Dict:
        return {
            "started_at": self.started_at.isoformat(),
            "entities": [r.to_dict() for r in self.entity_results],
            "optimize": self.optimize_result.to_dict() if self.optimize_result else None,
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __repr__(self) -> str:
        total = sum(self.summary().values())
        return (
            f"BuildReport({len(self.entity_results)} entities, {total:,} rows, "
            f"{len(self.failed_entities)} failed)"
        )


EntitySources = Union[Mapping[str, Source], Iterable[Tuple[str, Source]]]


class ReplicaBuilder:
    """
    Builds the replica store entity by entity.

    Example:
        >>> with ReplicaStore("replica.db") as store:
        ...     builder = ReplicaBuilder(store)
        ...     report = builder.build({"Account": "account_query.csv"})
        >>> report.succeeded
        True
    """

    def __init__(
        self,
        store: ReplicaStore,
        config: Optional[ReplicaConfig] = None,
        catalog: Optional[MetadataCatalog] = None,
    ):
        self.store = store
        self.config = config or ReplicaConfig()
        self.catalog = catalog
        self.inferencer = SchemaInferencer(self.config)
        self.tables = TableManager(store)
        self.loader = BulkLoader(store, self.config)
        self.indexer = IndexPlanner(store, self.config)
        self.optimizer = Optimizer(store)

    def import_entity(self, entity: str, source: Source) -> EntityResult:
        """
        Import one entity export: infer schema, ensure table, load rows, index.

        Args:
            entity: Entity (and table) name
            source: CSV path or text stream with a header line

        Returns:
            EntityResult for a committed import

        Raises:
            SchemaError: Header empty or unusable; nothing touched
            StoreError: Table could not be created
            BulkImportError: Rows rolled back; nothing from this call kept
        """
        logger.info(f"Starting import for '{entity}'")
        result = EntityResult(entity=entity)

        try:
            with open_batch(entity, source) as batch:
                schema = self.inferencer.infer(entity, batch.header, self.catalog)
                result.warnings.extend(schema.warnings)
                result.warnings.extend(self.tables.ensure_table(schema))
                result.rows_imported = self.loader.load(schema, batch)
        except OSError as e:
            raise BulkImportError(f"Cannot read export for '{entity}': {e}", entity=entity) from e
        except (UnicodeDecodeError, csv.Error) as e:
            raise BulkImportError(f"Cannot decode export header for '{entity}': {e}", entity=entity) from e

        # Only reached after the import transaction committed
        outcome = self.indexer.apply(schema)
        result.indexes = outcome.index_names
        result.index_errors = outcome.errors
        result.warnings.extend(outcome.warnings)
        result.success = True

        logger.info(f"Successfully processed '{entity}' ({result.rows_imported:,} rows)")
        return result

    def optimize_store(self) -> OptimizeResult:
        """
        Optimize the whole store.

        Raises:
            OptimizeError: If optimization fails
        """
        stats = self.optimizer.optimize()
        return OptimizeResult(ok=True, stats=stats)

    def build(self, sources: EntitySources, optimize: Optional[bool] = None) -> BuildReport:
        """
        Import every entity, then optimize once.

        Args:
            sources: Mapping or (entity, source) pairs; a None source marks an
                entity whose export could not be found
            optimize: Override config.optimize

        Returns:
            BuildReport with per-entity results and the optimize outcome
        """
        items = sources.items() if isinstance(sources, Mapping) else sources
        report = BuildReport()

        for entity, source in items:
            report.entity_results.append(self._import_recorded(entity, source))

        if optimize is None:
            optimize = self.config.optimize

        if optimize:
            try:
                report.optimize_result = self.optimize_store()
            except OptimizeError as e:
                logger.warning(f"Database optimization failed: {e}")
                report.optimize_result = OptimizeResult(ok=False, error=str(e))
        else:
            report.optimize_result = OptimizeResult(ok=True, skipped=True)

        logger.info(f"Build finished: {report!r}")
        return report

    def _import_recorded(self, entity: str, source: Optional[Source]) -> EntityResult:
        if source is None:
            message = f"No export found for '{entity}'"
            logger.warning(message)
            return EntityResult(entity=entity, error=message, error_type="MissingExport")
        try:
            return self.import_entity(entity, source)
        except ReplicaError as e:
            logger.error(f"Failed to import '{entity}': {e}")
            return EntityResult(entity=entity, error=str(e), error_type=type(e).__name__)
