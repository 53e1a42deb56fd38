"""
Schema data model: column descriptors, table schemas and index specs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional


class ColumnType(str, Enum):
    """Store column types the builder knows how to create."""
    TEXT = "TEXT"
    BOOLEAN = "BOOLEAN"

    @classmethod
    def parse(cls, value: "str | ColumnType") -> "ColumnType":
        if isinstance(value, ColumnType):
            return value
        return cls(str(value).strip().upper())


@dataclass(frozen=True)
class ColumnDescriptor:
    """One column of an inferred table."""
    name: str
    type: ColumnType = ColumnType.TEXT
    is_primary_key: bool = False

    def to_sql(self) -> str:
        """Column definition for CREATE TABLE."""
        definition = f"{quote_identifier(self.name)} {self.type.value}"
        if self.is_primary_key:
            definition += " PRIMARY KEY"
        return definition


@dataclass
class TableSchema:
    """
    Schema inferred for one entity from a single header.

    Attributes:
        entity_name: Entity (and table) name
        columns: Columns in header order
        positions: Index of each column within the raw header row
        warnings: Non-fatal conditions found while inferring
    """
    entity_name: str
    columns: List[ColumnDescriptor]
    positions: List[int] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.positions:
            self.positions = list(range(len(self.columns)))

    @property
    def column_names(self) -> List[str]:
        return [c.name for c in self.columns]

    @property
    def primary_key(self) -> Optional[ColumnDescriptor]:
        for column in self.columns:
            if column.is_primary_key:
                return column
        return None

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        lowered = name.lower()
        for column in self.columns:
            if column.name.lower() == lowered:
                return column
        return None

    def create_table_sql(self) -> str:
        cols = ", ".join(c.to_sql() for c in self.columns)
        return f"CREATE TABLE IF NOT EXISTS {quote_identifier(self.entity_name)} ({cols})"

    def insert_sql(self) -> str:
        cols = ", ".join(quote_identifier(name) for name in self.column_names)
        params = ", ".join("?" for _ in self.columns)
        return f"INSERT INTO {quote_identifier(self.entity_name)} ({cols}) VALUES ({params})"


@dataclass(frozen=True)
class IndexSpec:
    """A single-column secondary index."""
    table: str
    column: str

    @property
    def name(self) -> str:
        return index_name(self.table, self.column)

    def to_sql(self) -> str:
        return (
            f"CREATE INDEX IF NOT EXISTS {quote_identifier(self.name)} "
            f"ON {quote_identifier(self.table)}({quote_identifier(self.column)})"
        )


def index_name(table: str, column: str) -> str:
    """Deterministic index name: idx_<table_lower>_<column_lower>."""
    return f"idx_{table.lower()}_{column.lower()}"


def quote_identifier(name: str) -> str:
    """Double-quote an SQL identifier, escaping embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


def column_set(names: Iterable[str]) -> FrozenSet[str]:
    """Case-insensitive column set for comparisons."""
    return frozenset(n.lower() for n in names)
