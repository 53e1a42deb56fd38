"""
Replica Builder error taxonomy.

SchemaError and BulkImportError abort a single entity's import.
IndexCreationError and OptimizeError are non-fatal and surface as warnings.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from replica_builder.schema.models import IndexSpec


class ReplicaError(Exception):
    """Base class for all replica builder failures."""


class SchemaError(ReplicaError):
    """Header is empty or yields no usable column names."""


class StoreError(ReplicaError):
    """The store file could not be opened or a table could not be created."""


class BulkImportError(ReplicaError):
    """Row import transaction failed and was rolled back."""

    def __init__(self, message: str, entity: Optional[str] = None, line: Optional[int] = None):
        super().__init__(message)
        self.entity = entity
        self.line = line


class IndexCreationError(ReplicaError):
    """A single secondary index could not be created."""

    def __init__(self, message: str, spec: Optional["IndexSpec"] = None):
        super().__init__(message)
        self.spec = spec


class OptimizeError(ReplicaError):
    """Whole-store optimization failed."""
