import pytest
from pyspark.sql import functions as F
from pyspark.sql.types import IntegerType, LongType, StructField, StructType

from tabular_recon.errors import CastError, NullabilityViolation, SchemaValidationError
from tabular_recon.schema.model import Field, TableSchema
from tabular_recon.schema.reconciler import SchemaReconciler, apply_schema, apply_schema_soft


def test_align_reorders_and_casts(spark):
    df = spark.sql("select '2' as c1, '1' as c2")
    schema = TableSchema([Field("c2", "int", nullable=False), Field("c1", "int", nullable=False)])

    result = apply_schema(df, schema)

    assert result.columns == ["c2", "c1"]
    assert [f.dataType for f in result.schema.fields] == [IntegerType(), IntegerType()]
    assert [tuple(r) for r in result.collect()] == [(1, 2)]


def test_align_fills_default_for_missing_optional(spark):
    df = spark.createDataFrame([(1,)], "id int")
    schema = TableSchema([Field("id", "int"), Field("status", "string", default="NEW")])

    rows = apply_schema(df, schema).collect()

    assert [r.asDict() for r in rows] == [{"id": 1, "status": "NEW"}]


def test_null_default_produces_typed_null_column(spark):
    df = spark.createDataFrame([(1,)], "id int")
    schema = TableSchema([Field("id", "int"), Field("score", "bigint", default=None)])

    result = apply_schema(df, schema)

    assert result.schema["score"].dataType == LongType()
    assert result.collect()[0]["score"] is None


def test_extra_columns_dropped(spark):
    df = spark.createDataFrame([(1, "x", "y")], "id int, keep string, extra string")
    schema = TableSchema([Field("keep", "string"), Field("id", "int")])

    result = apply_schema_soft(df, schema)

    assert result.columns == ["keep", "id"]


def test_missing_mandatory_columns_reported_together(spark):
    df = spark.createDataFrame([(1,)], "id int")
    schema = TableSchema([Field("id", "int"), Field("name", "string"), Field("city", "string")])

    with pytest.raises(SchemaValidationError) as excinfo:
        SchemaReconciler().align(df, schema)

    assert excinfo.value.missing_fields == ["name", "city"]
    assert "Missing columns in the data: [name, city]" in str(excinfo.value)


def test_nulls_in_non_nullable_column_rejected_before_cast(spark):
    df = spark.createDataFrame([(None,), (1,), (None,)], "id int")
    schema = TableSchema([Field("id", "int", nullable=False)])

    with pytest.raises(NullabilityViolation) as excinfo:
        apply_schema(df, schema)

    assert excinfo.value.phase == "pre_cast"
    assert excinfo.value.violations == {"id": 2}


def test_strict_cast_failure_reports_offending_values(spark):
    df = spark.createDataFrame([("1",), ("abc",), (None,)], "amount string")
    schema = TableSchema([Field("amount", "int")])

    with pytest.raises(CastError) as excinfo:
        SchemaReconciler(strict_casts=True).align(df, schema)

    assert excinfo.value.field == "amount"
    assert excinfo.value.samples == ["abc"]
    assert excinfo.value.failures == 1


def test_lenient_cast_turns_bad_values_into_nulls(spark):
    df = spark.createDataFrame([("1",), ("abc",)], "amount string")
    schema = TableSchema([Field("amount", "int")])

    rows = SchemaReconciler(strict_casts=False).align(df, schema).collect()

    assert [r["amount"] for r in rows] == [1, None]


def test_lenient_cast_nulls_caught_by_post_cast_nullability(spark):
    df = spark.createDataFrame([("abc",)], "amount string")
    schema = TableSchema([Field("amount", "int", nullable=False)])

    with pytest.raises(NullabilityViolation) as excinfo:
        SchemaReconciler(strict_casts=False).align(df, schema)

    assert excinfo.value.phase == "post_cast"
    assert excinfo.value.violations == {"amount": 1}


def test_column_names_with_dots(spark):
    df = spark.sql("select 1 as bob, 2 as jim").withColumn("bob.jim", F.col("bob") + F.col("jim"))
    schema = TableSchema([Field("bob.jim", "int")])

    result = apply_schema(df, schema)

    assert result.columns == ["bob.jim"]
    assert result.collect()[0][0] == 3


def test_align_is_idempotent(spark):
    df = spark.createDataFrame([("1", "a", "z")], "id string, name string, extra string")
    schema = TableSchema(
        [Field("name", "string"), Field("id", "int", nullable=False), Field("flag", "boolean", default=False)]
    )
    reconciler = SchemaReconciler()

    once = reconciler.align(df, schema)
    twice = reconciler.align(once, schema)

    assert once.columns == twice.columns == ["name", "id", "flag"]
    assert once.dtypes == twice.dtypes
    assert once.collect() == twice.collect()


def test_cast_and_validate_keeps_unknown_columns(spark):
    df = spark.createDataFrame([("7", "x")], "id string, other string")
    schema = TableSchema([Field("id", "int")])

    result = SchemaReconciler().cast_and_validate(df, schema)

    assert result.columns == ["id", "other"]
    assert result.collect()[0].asDict() == {"id": 7, "other": "x"}


def test_cast_and_validate_requires_every_schema_column(spark):
    df = spark.createDataFrame([("7",)], "id string")
    schema = TableSchema([Field("id", "int"), Field("status", "string", default="NEW")])

    with pytest.raises(SchemaValidationError):
        SchemaReconciler().cast_and_validate(df, schema)


def test_cast_into_struct_with_spaced_field_name(spark):
    df = spark.sql("select named_struct('a b', 1) as s")
    target = StructType([StructField("a b", LongType())])
    schema = TableSchema([Field("s", target)])

    result = apply_schema(df, schema)

    assert result.schema["s"].dataType.fields[0].dataType == LongType()
    assert result.collect()[0]["s"]["a b"] == 1
