from .base import TableTarget, WriteMode
from .catalog import CatalogTarget, build_scd1_merge_sql
from .factory import EndpointFactory, resolve_target
from .path import PathTarget

__all__ = [
    "CatalogTarget",
    "EndpointFactory",
    "PathTarget",
    "TableTarget",
    "WriteMode",
    "build_scd1_merge_sql",
    "resolve_target",
]
