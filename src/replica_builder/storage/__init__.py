"""
Storage Module - the replica store and table management.
"""

from replica_builder.storage.store import ColumnInfo, ReplicaStore
from replica_builder.storage.tables import TableManager

__all__ = [
    "ColumnInfo",
    "ReplicaStore",
    "TableManager",
]
