import pytest
from pyspark.sql.types import (
    ArrayType,
    DecimalType,
    IntegerType,
    LongType,
    MapType,
    StringType,
    StructField,
    StructType,
)

from tabular_recon.schema.model import MISSING, Field, TableSchema, parse_data_type, quote_ident, sql_type


def test_parse_simple_and_decimal_types():
    assert parse_data_type("int") == IntegerType()
    assert parse_data_type("BIGINT") == LongType()
    assert parse_data_type(" string ") == StringType()
    assert parse_data_type("decimal(10, 2)") == DecimalType(10, 2)
    assert parse_data_type(LongType()) == LongType()


def test_parse_rejects_empty_type():
    with pytest.raises(ValueError):
        parse_data_type("  ")


def test_field_without_default_is_mandatory():
    fld = Field("id", "int", nullable=False)
    assert fld.is_mandatory
    assert not fld.is_optional
    assert fld.data_type == IntegerType()
    assert fld.default is MISSING


def test_null_default_still_makes_field_optional():
    fld = Field.from_config({"name": "note", "type": "string", "default": None})
    assert fld.is_optional
    assert fld.default is None


def test_struct_metadata_carries_default():
    schema = TableSchema(
        [
            Field("id", "int", nullable=False),
            Field("status", "string", default="NEW"),
            Field("note", "string", default=None),
        ]
    )
    struct = schema.to_struct()
    assert struct["id"].metadata == {}
    assert struct["status"].metadata == {"default": "NEW"}
    assert struct["note"].metadata == {"default": None}

    restored = TableSchema.from_struct(struct)
    assert restored == schema
    assert restored.mandatory().names == ["id"]
    assert restored.optional().names == ["status", "note"]
    assert restored.non_nullable_names() == ["id"]


def test_duplicate_field_names_rejected():
    with pytest.raises(ValueError, match="Duplicate field names"):
        TableSchema([Field("a", "int"), Field("a", "string")])


def test_names_are_case_sensitive_in_schema():
    schema = TableSchema([Field("a", "int"), Field("A", "int")])
    assert schema.names == ["a", "A"]
    assert "A" in schema
    assert schema.get("b") is None


def test_coerce_accepts_config_entries_and_struct():
    from_cfg = TableSchema.coerce([{"name": "id", "type": "bigint", "nullable": False}])
    assert from_cfg.fields[0] == Field("id", LongType(), nullable=False)

    struct = StructType([StructField("id", LongType(), False)])
    assert TableSchema.coerce(struct) == from_cfg


def test_from_config_requires_name_and_type():
    with pytest.raises(ValueError):
        TableSchema.from_config([{"type": "int"}])
    with pytest.raises(ValueError):
        TableSchema.from_config([{"name": "id"}])
    with pytest.raises(ValueError):
        TableSchema.from_config("id int")


def test_quote_ident_escapes_backticks():
    assert quote_ident("bob.jim") == "`bob.jim`"
    assert quote_ident("a`b") == "`a``b`"


def test_sql_type_quotes_nested_field_names():
    data_type = StructType(
        [
            StructField("a b", LongType()),
            StructField("tags", ArrayType(StringType())),
            StructField("attrs", MapType(StringType(), IntegerType())),
        ]
    )

    assert sql_type(data_type) == "struct<`a b`:bigint,`tags`:array<string>,`attrs`:map<string,int>>"
    assert sql_type(DecimalType(10, 2)) == "decimal(10,2)"
