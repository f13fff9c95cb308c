import pytest
from pyspark.sql.types import IntegerType, LongType, StringType

from tabular_recon.merge.hashing import ChangeHasher, add_fingerprint


def _by_key(df, column="hash"):
    return {row["id"]: row[column] for row in df.collect()}


def test_equal_rows_get_equal_fingerprints(spark):
    df = spark.createDataFrame([(1, "a"), (2, "b"), (1, "a")], "id int, name string")

    rows = add_fingerprint(df).collect()

    assert rows[0]["hash"] == rows[2]["hash"]
    assert rows[0]["hash"] != rows[1]["hash"]


def test_fingerprint_independent_of_partitioning(spark):
    df = spark.createDataFrame([(i, f"name-{i}") for i in range(20)], "id int, name string")
    hasher = ChangeHasher()

    single = _by_key(hasher.with_fingerprint(df.coalesce(1)))
    spread = _by_key(hasher.with_fingerprint(df.repartition(4)))

    assert single == spread


def test_excluded_columns_do_not_affect_fingerprint(spark):
    df = spark.createDataFrame(
        [(1, "a", "2024-01-01"), (2, "a", "2024-02-01")],
        "id int, name string, loaded_at string",
    )
    hasher = ChangeHasher(exclude=["id", "loaded_at"])

    rows = hasher.with_fingerprint(df).collect()

    assert rows[0]["hash"] == rows[1]["hash"]
    assert hasher.hashed_columns(df) == ["name"]


def test_existing_fingerprint_kept_unless_recomputed(spark):
    df = spark.createDataFrame([(1, "a", 42)], "id int, name string, hash int")
    hasher = ChangeHasher()

    kept = hasher.with_fingerprint(df)
    recomputed = hasher.with_fingerprint(df, recompute=True)

    assert kept.columns == ["id", "name", "hash"]
    assert kept.collect()[0]["hash"] == 42
    assert recomputed.columns == ["id", "name", "hash"]
    assert recomputed.collect()[0]["hash"] == add_fingerprint(df.drop("hash")).collect()[0]["hash"]


def test_applying_twice_is_a_no_op(spark):
    df = spark.createDataFrame([(1, "a")], "id int, name string")
    hasher = ChangeHasher()

    once = hasher.with_fingerprint(df)
    twice = hasher.with_fingerprint(once)

    assert once.collect() == twice.collect()


def test_algorithm_result_types(spark):
    df = spark.createDataFrame([(1, "a")], "id int, name string")

    murmur = ChangeHasher().with_fingerprint(df)
    xx = ChangeHasher(algorithm="xxhash64").with_fingerprint(df)
    sha = ChangeHasher(algorithm="SHA256", column="row_hash").with_fingerprint(df)

    assert murmur.schema["hash"].dataType == IntegerType()
    assert xx.schema["hash"].dataType == LongType()
    assert sha.schema["row_hash"].dataType == StringType()
    assert len(sha.collect()[0]["row_hash"]) == 64


def test_unknown_algorithm_rejected():
    with pytest.raises(ValueError):
        ChangeHasher(algorithm="md5")


def test_all_columns_excluded_rejected(spark):
    df = spark.createDataFrame([(1,)], "id int")

    with pytest.raises(ValueError):
        ChangeHasher(exclude=["id"]).with_fingerprint(df)


def test_from_config():
    hasher = ChangeHasher.from_config({"column": "fp", "algorithm": "xxhash64", "exclude": "loaded_at"})

    assert hasher.column == "fp"
    assert hasher.algorithm == "xxhash64"
    assert hasher.exclude == ("loaded_at",)


def test_null_position_changes_fingerprint(spark):
    df = spark.createDataFrame([(1, "v", None), (1, None, "v")], "id int, x string, y string")

    for algorithm in ("murmur3", "xxhash64", "sha256"):
        rows = ChangeHasher(algorithm=algorithm).with_fingerprint(df).collect()
        assert rows[0]["hash"] != rows[1]["hash"], algorithm


def test_map_columns_hash_independent_of_entry_order(spark):
    df = spark.createDataFrame(
        [(1, {"a": "x", "b": "y"}), (2, {"b": "y", "a": "x"}), (3, {"a": "z"})],
        "id int, attrs map<string,string>",
    )

    for algorithm in ("murmur3", "xxhash64", "sha256"):
        rows = ChangeHasher(algorithm=algorithm, exclude=["id"]).with_fingerprint(df).collect()
        assert rows[0]["hash"] == rows[1]["hash"], algorithm
        assert rows[0]["hash"] != rows[2]["hash"], algorithm


def test_nested_map_columns_are_hashable(spark):
    df = spark.sql("select 1 as id, named_struct('tags', map('k', 'v')) as meta")

    row = ChangeHasher().with_fingerprint(df).collect()[0]

    assert row["hash"] is not None
