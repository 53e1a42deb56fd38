"""
Metadata Catalog - authoritative per-field type hints.

Hints come from the remote describe step. An entity or field with no
entry is valid and falls back to heuristic typing.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

import pandas as pd

from replica_builder.schema.models import ColumnType

logger = logging.getLogger(__name__)

# Remote field types that map to something other than TEXT
REMOTE_TYPE_MAP = {
    "boolean": ColumnType.BOOLEAN,
}


class MetadataCatalog:
    """
    Lookup of entity -> {field -> ColumnType}.

    Entity and field names are matched case-insensitively.

    Example:
        >>> catalog = MetadataCatalog({"Account": {"HasDiscount": "TEXT"}})
        >>> catalog.lookup("account", "HasDiscount")
        <ColumnType.TEXT: 'TEXT'>
    """

    def __init__(self, hints: Optional[Mapping[str, Mapping[str, "ColumnType | str"]]] = None):
        self._hints: Dict[str, Dict[str, ColumnType]] = {}
        for entity, fields in (hints or {}).items():
            self.add_entity(entity, fields)

    def add_entity(self, entity: str, fields: Mapping[str, "ColumnType | str"]):
        """Register (or replace) the field hints for one entity."""
        self._hints[entity.lower()] = {
            name.lower(): ColumnType.parse(kind) for name, kind in fields.items()
        }
        logger.debug(f"Catalog: {len(fields)} field hints for {entity}")

    def hints_for(self, entity: str) -> Optional[Dict[str, ColumnType]]:
        """Field hints for an entity, or None when the entity is not described."""
        return self._hints.get(entity.lower())

    def lookup(self, entity: str, field_name: str) -> Optional[ColumnType]:
        hints = self.hints_for(entity)
        if hints is None:
            return None
        return hints.get(field_name.lower())

    def __contains__(self, entity: str) -> bool:
        return entity.lower() in self._hints

    def __iter__(self) -> Iterator[str]:
        return iter(self._hints)

    def __len__(self) -> int:
        return len(self._hints)

    @classmethod
    def from_describe(cls, entity: str, payload: Mapping) -> "MetadataCatalog":
        """Build a single-entity catalog from a describe payload."""
        catalog = cls()
        catalog.add_entity(entity, describe_field_types(payload))
        return catalog

    def merge_describe_file(self, entity: str, path: "str | Path"):
        """Add hints for an entity from a describe JSON file."""
        self.add_entity(entity, load_describe_file(path))


def describe_field_types(payload: Mapping) -> Dict[str, ColumnType]:
    """
    Extract field types from a describe payload.

    Accepts both the CLI envelope ({"result": {"fields": [...]}}) and a
    bare {"fields": [...]} object.
    """
    body = payload.get("result", payload) if isinstance(payload, Mapping) else {}
    if not isinstance(body, Mapping):
        logger.warning(f"Describe payload has no field list (got {type(body).__name__})")
        return {}
    fields = body.get("fields") or []
    if not isinstance(fields, list):
        return {}
    fields = [f for f in fields if isinstance(f, Mapping)]
    if not fields:
        return {}

    df = pd.json_normalize(fields)
    if "name" not in df.columns:
        logger.warning("Describe payload has fields without a 'name' attribute")
        return {}
    if "type" not in df.columns:
        df["type"] = "string"

    df = df[["name", "type"]].dropna(subset=["name"]).copy()
    df["type"] = df["type"].fillna("string").astype(str).str.lower()

    return {
        str(row.name): REMOTE_TYPE_MAP.get(row.type, ColumnType.TEXT)
        for row in df.itertuples(index=False)
    }


def load_describe_file(path: "str | Path") -> Dict[str, ColumnType]:
    """Load field types from a describe JSON file written by the extraction step."""
    path = Path(path)
    logger.debug(f"Loading describe output {path}")
    with open(path) as f:
        payload = json.load(f)
    types = describe_field_types(payload)
    logger.info(f"Loaded {len(types)} field types from {path}")
    return types
