"""
Schema Module

Data model, metadata catalog and schema inference.
"""

from replica_builder.schema.models import (
    ColumnType,
    ColumnDescriptor,
    TableSchema,
    IndexSpec,
    index_name,
    quote_identifier,
)
from replica_builder.schema.catalog import (
    MetadataCatalog,
    describe_field_types,
    load_describe_file,
)
from replica_builder.schema.inferencer import (
    SchemaInferencer,
    infer_schema,
    parse_header,
)

__all__ = [
    "ColumnType",
    "ColumnDescriptor",
    "TableSchema",
    "IndexSpec",
    "index_name",
    "quote_identifier",
    "MetadataCatalog",
    "describe_field_types",
    "load_describe_file",
    "SchemaInferencer",
    "infer_schema",
    "parse_header",
]
