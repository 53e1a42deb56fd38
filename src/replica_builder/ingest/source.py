"""
Export sources: one header line followed by data lines, per entity.
"""

from __future__ import annotations

import csv
import io
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Union

from replica_builder.errors import BulkImportError

logger = logging.getLogger(__name__)

Source = Union[str, Path, TextIO]


@dataclass
class ImportBatch:
    """
    Header and row stream for one entity import.

    Rows are read lazily; row_count counts the data rows consumed so far
    and line is the source line of the most recent one.
    """
    entity_name: str
    header: List[str]
    reader: Optional[Iterator[List[str]]] = None
    row_count: int = 0
    line: int = 1
    _rows: List[List[str]] = field(default_factory=list, repr=False)

    def __iter__(self) -> Iterator[List[str]]:
        source = self.reader if self.reader is not None else iter(self._rows)
        for row in source:
            self.line = getattr(self.reader, "line_num", self.line + 1)
            # Blank lines carry no data
            if not row:
                continue
            self.row_count += 1
            yield row

    @classmethod
    def from_rows(cls, entity_name: str, header: List[str], rows: List[List[str]]) -> "ImportBatch":
        """Build a batch from in-memory rows."""
        return cls(entity_name=entity_name, header=list(header), _rows=[list(r) for r in rows])


def read_batch(entity_name: str, stream: TextIO) -> ImportBatch:
    """Read the header from a CSV stream and leave the rest for lazy iteration."""
    reader = csv.reader(stream)
    header = next(reader, [])
    logger.debug(f"{entity_name}: header has {len(header)} fields")
    return ImportBatch(entity_name=entity_name, header=header, reader=reader, line=reader.line_num)


@contextmanager
def open_batch(entity_name: str, source: Source) -> Iterator[ImportBatch]:
    """
    Open an export for import.

    Args:
        entity_name: Entity the export belongs to
        source: A path to a CSV file or an open text stream

    Yields:
        ImportBatch positioned after the header
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        logger.info(f"Reading {entity_name} export from {path}")
        with open(path, newline="", encoding="utf-8-sig") as f:
            yield read_batch(entity_name, f)
    elif isinstance(source, io.TextIOBase) or hasattr(source, "read"):
        yield read_batch(entity_name, source)
    else:
        raise BulkImportError(f"Unsupported source for '{entity_name}': {type(source).__name__}", entity=entity_name)
