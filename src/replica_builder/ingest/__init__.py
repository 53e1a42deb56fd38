"""
Ingest Module

Reading entity exports and importing their rows.

Key components:
- ImportBatch: Header plus lazily read rows for one entity
- BulkLoader: All-or-nothing transactional insert
"""

from replica_builder.ingest.source import (
    ImportBatch,
    open_batch,
    read_batch,
)
from replica_builder.ingest.loader import (
    BulkLoader,
    to_boolean,
)

__all__ = [
    "ImportBatch",
    "open_batch",
    "read_batch",
    "BulkLoader",
    "to_boolean",
]
