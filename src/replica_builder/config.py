"""
Replica Builder Configuration

A single immutable configuration object, built once at startup and
passed into every component.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_ENTITIES: Tuple[str, ...] = ("User", "Opportunity", "Account", "Contact", "Lead")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class ReplicaConfig(BaseModel):
    """Configuration for building a replica store."""

    model_config = ConfigDict(frozen=True)

    # Store
    db_path: Path = Field(
        default_factory=lambda: Path(os.getenv("REPLICA_DB_FILE", "sfdc-replica.db"))
    )

    # Directory holding <entity>_query_*.csv and <entity>_describe_*.json exports
    export_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("REPLICA_EXPORT_DIR", "output"))
    )

    default_entities: Tuple[str, ...] = DEFAULT_ENTITIES

    # Run the optimizer after a build
    optimize: bool = Field(
        default_factory=lambda: _env_flag("REPLICA_OPTIMIZE", "true")
    )

    # Rows per executemany() call inside the import transaction
    insert_batch_size: int = Field(
        default_factory=lambda: int(os.getenv("REPLICA_INSERT_BATCH_SIZE", "500")),
        gt=0,
    )

    # Schema inference
    primary_key_name: str = "Id"
    boolean_prefixes: Tuple[str, ...] = ("Is", "Has")

    # Logging
    log_level: str = Field(
        default_factory=lambda: os.getenv("REPLICA_LOG_LEVEL", "INFO")
    )

    @classmethod
    def from_env(cls, **overrides) -> "ReplicaConfig":
        """Create config from environment variables, applying explicit overrides."""
        return cls(**{k: v for k, v in overrides.items() if v is not None})


@dataclass(frozen=True)
class StoreCapabilities:
    """Features of the linked SQLite library, detected once."""

    sqlite_version: Tuple[int, int, int]
    supports_optimize: bool

    @classmethod
    def detect(cls) -> "StoreCapabilities":
        version = tuple(sqlite3.sqlite_version_info)
        return cls(
            sqlite_version=version,
            # PRAGMA optimize appeared in 3.18.0
            supports_optimize=version >= (3, 18, 0),
        )


def setup_logging(level: str = "INFO"):
    """Set up logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
