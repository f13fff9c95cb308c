from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from pyspark.sql import Column
from pyspark.sql import functions as F
from pyspark.sql.types import (
    ArrayType,
    BinaryType,
    BooleanType,
    ByteType,
    DataType,
    DateType,
    DecimalType,
    DoubleType,
    FloatType,
    IntegerType,
    LongType,
    MapType,
    NullType,
    ShortType,
    StringType,
    StructField,
    StructType,
    TimestampType,
)

DEFAULT_METADATA_KEY = "default"


class _Missing:
    """Marker for a field declared without a default."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()

_SIMPLE_TYPES: Dict[str, DataType] = {
    "tinyint": ByteType(),
    "byte": ByteType(),
    "smallint": ShortType(),
    "short": ShortType(),
    "int": IntegerType(),
    "integer": IntegerType(),
    "bigint": LongType(),
    "long": LongType(),
    "float": FloatType(),
    "real": FloatType(),
    "double": DoubleType(),
    "string": StringType(),
    "varchar": StringType(),
    "text": StringType(),
    "boolean": BooleanType(),
    "bool": BooleanType(),
    "binary": BinaryType(),
    "date": DateType(),
    "timestamp": TimestampType(),
    "void": NullType(),
}

_DECIMAL_RE = re.compile(r"^decimal\s*\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)$")


def parse_data_type(value: Union[str, DataType]) -> DataType:
    """Resolve a DDL type string (``int``, ``decimal(10,2)``, ``array<string>``) to a Spark type.

    Primitive names and decimals are resolved locally; nested types are
    delegated to Spark's parser, which requires an active session.
    """
    if isinstance(value, DataType):
        return value
    text = str(value).strip().lower()
    if not text:
        raise ValueError("Empty data type")
    simple = _SIMPLE_TYPES.get(text)
    if simple is not None:
        return simple
    if text == "decimal":
        return DecimalType(10, 0)
    match = _DECIMAL_RE.match(text)
    if match:
        precision = int(match.group(1))
        scale = int(match.group(2) or 0)
        return DecimalType(precision, scale)
    from pyspark.sql.types import _parse_datatype_string

    return _parse_datatype_string(str(value).strip())


def quote_ident(name: str) -> str:
    """Backtick-quote a column name so dots and spaces stay part of the identifier."""
    return "`" + name.replace("`", "``") + "`"


def col_ref(name: str) -> Column:
    return F.col(quote_ident(name))


def sql_type(data_type: DataType) -> str:
    """DDL rendering of ``data_type`` that SQL text can parse back, struct field names quoted."""
    if isinstance(data_type, StructType):
        inner = ",".join(f"{quote_ident(f.name)}:{sql_type(f.dataType)}" for f in data_type.fields)
        return f"struct<{inner}>"
    if isinstance(data_type, ArrayType):
        return f"array<{sql_type(data_type.elementType)}>"
    if isinstance(data_type, MapType):
        return f"map<{sql_type(data_type.keyType)},{sql_type(data_type.valueType)}>"
    return data_type.simpleString()


@dataclass(frozen=True)
class Field:
    """A named, typed column definition. Fields without a default are mandatory."""

    name: str
    data_type: DataType
    nullable: bool = True
    default: Any = MISSING

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Field name must be a non-empty string")
        object.__setattr__(self, "data_type", parse_data_type(self.data_type))

    @property
    def is_optional(self) -> bool:
        return self.default is not MISSING

    @property
    def is_mandatory(self) -> bool:
        return self.default is MISSING

    def default_literal(self) -> Column:
        value = None if self.default is MISSING else self.default
        return F.lit(value).cast(self.data_type)

    def to_struct_field(self) -> StructField:
        metadata: Dict[str, Any] = {}
        if self.is_optional:
            metadata[DEFAULT_METADATA_KEY] = self.default
        return StructField(self.name, self.data_type, self.nullable, metadata)

    @staticmethod
    def from_struct_field(struct_field: StructField) -> "Field":
        metadata = struct_field.metadata or {}
        default = metadata[DEFAULT_METADATA_KEY] if DEFAULT_METADATA_KEY in metadata else MISSING
        return Field(
            name=struct_field.name,
            data_type=struct_field.dataType,
            nullable=struct_field.nullable,
            default=default,
        )

    @staticmethod
    def from_config(cfg: Mapping[str, Any]) -> "Field":
        name = cfg.get("name")
        if not name or not isinstance(name, str):
            raise ValueError("schema entries require a string 'name'")
        dtype = cfg.get("type") or cfg.get("data_type") or cfg.get("dataType")
        if not dtype:
            raise ValueError(f"schema entry '{name}' requires a 'type'")
        return Field(
            name=name,
            data_type=dtype,
            nullable=bool(cfg.get("nullable", True)),
            default=cfg["default"] if "default" in cfg else MISSING,
        )


@dataclass(frozen=True)
class TableSchema:
    """Ordered collection of fields with case-sensitively unique names."""

    fields: Tuple[Field, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        seen: set = set()
        dupes: List[str] = []
        for fld in self.fields:
            if fld.name in seen:
                dupes.append(fld.name)
            seen.add(fld.name)
        if dupes:
            raise ValueError(f"Duplicate field names in schema: {', '.join(dupes)}")

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, name: object) -> bool:
        return any(fld.name == name for fld in self.fields)

    @property
    def names(self) -> List[str]:
        return [fld.name for fld in self.fields]

    def get(self, name: str) -> Optional[Field]:
        return next((fld for fld in self.fields if fld.name == name), None)

    def mandatory(self) -> "TableSchema":
        return TableSchema(tuple(fld for fld in self.fields if fld.is_mandatory))

    def optional(self) -> "TableSchema":
        return TableSchema(tuple(fld for fld in self.fields if fld.is_optional))

    def non_nullable_names(self) -> List[str]:
        return [fld.name for fld in self.fields if not fld.nullable]

    def to_struct(self) -> StructType:
        return StructType([fld.to_struct_field() for fld in self.fields])

    @staticmethod
    def from_struct(struct: StructType) -> "TableSchema":
        return TableSchema(tuple(Field.from_struct_field(sf) for sf in struct.fields))

    @staticmethod
    def from_config(entries: Iterable[Mapping[str, Any]]) -> "TableSchema":
        if isinstance(entries, (str, bytes)) or not isinstance(entries, Iterable):
            raise ValueError("schema must be a list of field objects")
        fields: List[Field] = []
        for entry in entries:
            if not isinstance(entry, Mapping):
                raise ValueError("schema entries must be objects")
            fields.append(Field.from_config(entry))
        return TableSchema(tuple(fields))

    @staticmethod
    def coerce(schema: Union["TableSchema", StructType, Sequence[Field], Sequence[Mapping[str, Any]]]) -> "TableSchema":
        if isinstance(schema, TableSchema):
            return schema
        if isinstance(schema, StructType):
            return TableSchema.from_struct(schema)
        items = list(schema)
        if all(isinstance(item, Field) for item in items):
            return TableSchema(tuple(items))
        return TableSchema.from_config(items)


__all__ = [
    "DEFAULT_METADATA_KEY",
    "MISSING",
    "Field",
    "TableSchema",
    "col_ref",
    "parse_data_type",
    "quote_ident",
    "sql_type",
]
