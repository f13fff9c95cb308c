from .model import MISSING, Field, TableSchema, col_ref, parse_data_type, quote_ident, sql_type
from .reconciler import SchemaReconciler, apply_schema, apply_schema_soft
from .unifier import ConflictPolicy, SchemaUnifier, UnionDiagnostics, UnionResult, union_by_name

__all__ = [
    "MISSING",
    "Field",
    "TableSchema",
    "col_ref",
    "parse_data_type",
    "quote_ident",
    "sql_type",
    "SchemaReconciler",
    "apply_schema",
    "apply_schema_soft",
    "ConflictPolicy",
    "SchemaUnifier",
    "UnionDiagnostics",
    "UnionResult",
    "union_by_name",
]
