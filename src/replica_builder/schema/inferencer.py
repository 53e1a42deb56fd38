"""
Schema Inferencer - derive a table schema from a header row.

Types come from the metadata catalog when it has a hint for the field,
otherwise from the field-naming convention (Is*/Has* are booleans).
"""

from __future__ import annotations

import csv
import logging
from typing import Dict, List, Optional, Sequence

from replica_builder.config import ReplicaConfig
from replica_builder.errors import SchemaError
from replica_builder.schema.catalog import MetadataCatalog
from replica_builder.schema.models import ColumnDescriptor, ColumnType, TableSchema

logger = logging.getLogger(__name__)

_TRIM_CHARS = " \t\r\n\"'"


def clean_field_name(raw: str) -> str:
    """Trim surrounding whitespace and quotes from a header field."""
    return (raw or "").strip(_TRIM_CHARS)


def parse_header(line: str) -> List[str]:
    """Split one raw header line into field names (comma separated, optionally quoted)."""
    if line is None or not line.strip():
        return []
    return next(csv.reader([line.rstrip("\r\n")]))


class SchemaInferencer:
    """
    Infers a TableSchema for an entity from its header fields.

    Example:
        >>> inferencer = SchemaInferencer()
        >>> schema = inferencer.infer("Account", ["Id", "Name", "IsActive"])
        >>> schema.primary_key.name
        'Id'
    """

    def __init__(self, config: Optional[ReplicaConfig] = None):
        self.config = config or ReplicaConfig()

    def infer(
        self,
        entity_name: str,
        header: Sequence[str],
        catalog: Optional[MetadataCatalog] = None,
    ) -> TableSchema:
        """
        Build the schema for one import call.

        Args:
            entity_name: Entity (and table) name
            header: Raw header fields in order
            catalog: Optional catalog with authoritative type hints

        Returns:
            TableSchema with positions pointing back into the raw header

        Raises:
            SchemaError: If the header is empty, has no usable names, or
                repeats a name
        """
        if not header:
            raise SchemaError(f"Header for '{entity_name}' is empty")

        hints: Optional[Dict[str, ColumnType]] = None
        if catalog is not None:
            hints = catalog.hints_for(entity_name)
            if hints is None:
                logger.debug(f"No catalog entry for '{entity_name}', using naming heuristics")

        warnings: List[str] = []
        columns: List[ColumnDescriptor] = []
        positions: List[int] = []
        seen = set()

        for position, raw in enumerate(header):
            name = clean_field_name(raw)
            if not name:
                message = f"Skipping empty header column at position {position + 1}"
                logger.warning(f"{entity_name}: {message}")
                warnings.append(message)
                continue

            key = name.lower()
            if key in seen:
                raise SchemaError(f"Header for '{entity_name}' repeats column '{name}'")
            seen.add(key)

            columns.append(ColumnDescriptor(
                name=name,
                type=self._column_type(name, hints),
                is_primary_key=(name == self.config.primary_key_name),
            ))
            positions.append(position)

        if not columns:
            raise SchemaError(f"Header for '{entity_name}' has no usable column names")

        if not any(c.is_primary_key for c in columns):
            message = (
                f"Header does not contain an '{self.config.primary_key_name}' column; "
                "creating table without a primary key"
            )
            logger.warning(f"{entity_name}: {message}")
            warnings.append(message)

        schema = TableSchema(
            entity_name=entity_name,
            columns=columns,
            positions=positions,
            warnings=warnings,
        )
        logger.info(f"Generated schema: {schema.create_table_sql()}")
        return schema

    def _column_type(self, name: str, hints: Optional[Dict[str, ColumnType]]) -> ColumnType:
        if hints is not None:
            hinted = hints.get(name.lower())
            if hinted is not None:
                return hinted
        if name.startswith(tuple(self.config.boolean_prefixes)):
            return ColumnType.BOOLEAN
        return ColumnType.TEXT


def infer_schema(
    entity_name: str,
    header: Sequence[str],
    catalog: Optional[MetadataCatalog] = None,
) -> TableSchema:
    """Convenience wrapper using the default configuration."""
    return SchemaInferencer().infer(entity_name, header, catalog)
