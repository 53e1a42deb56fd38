"""
Replica Builder - local SQLite replicas of tabular entity exports.

Turns one CSV export per entity into an indexed relational store,
inferring each table's structure from the data itself.

Modules:
- schema: Column model, metadata catalog and schema inference
- storage: The replica store and idempotent table creation
- ingest: Export reading and transactional bulk import
- indexing: Secondary index planning
- optimizer: Whole-store maintenance
- orchestrator: Per-entity pipeline and build reports
"""

__version__ = "0.1.0"

from replica_builder.config import ReplicaConfig, StoreCapabilities
from replica_builder.errors import (
    ReplicaError,
    SchemaError,
    StoreError,
    BulkImportError,
    IndexCreationError,
    OptimizeError,
)
from replica_builder.schema import (
    ColumnType,
    ColumnDescriptor,
    TableSchema,
    IndexSpec,
    MetadataCatalog,
    SchemaInferencer,
    infer_schema,
)
from replica_builder.storage import ReplicaStore, TableManager
from replica_builder.ingest import BulkLoader, ImportBatch
from replica_builder.indexing import IndexPlanner, IndexOutcome
from replica_builder.optimizer import Optimizer
from replica_builder.orchestrator import (
    ReplicaBuilder,
    EntityResult,
    OptimizeResult,
    BuildReport,
)

__all__ = [
    "__version__",
    # Config
    "ReplicaConfig",
    "StoreCapabilities",
    # Errors
    "ReplicaError",
    "SchemaError",
    "StoreError",
    "BulkImportError",
    "IndexCreationError",
    "OptimizeError",
    # Schema
    "ColumnType",
    "ColumnDescriptor",
    "TableSchema",
    "IndexSpec",
    "MetadataCatalog",
    "SchemaInferencer",
    "infer_schema",
    # Storage
    "ReplicaStore",
    "TableManager",
    # Ingest
    "BulkLoader",
    "ImportBatch",
    # Indexing / optimize
    "IndexPlanner",
    "IndexOutcome",
    "Optimizer",
    # Orchestration
    "ReplicaBuilder",
    "EntityResult",
    "OptimizeResult",
    "BuildReport",
]
