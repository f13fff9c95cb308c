import pytest

from tabular_recon.errors import MergeKeyError
from tabular_recon.merge.archive import ArchivalDiff, check_keys, get_archived

SCHEMA = "id int, val string"


def _rows(df):
    return sorted(tuple(r) for r in df.collect())


def test_current_rows_shadow_previous_rows(spark):
    current = spark.createDataFrame([(1, "new")], SCHEMA)
    previous = spark.createDataFrame([(1, "old"), (2, "gone")], SCHEMA)

    result = ArchivalDiff().diff_one(current, previous, ["id"])

    assert _rows(result) == [(1, "new"), (2, "gone")]


def test_each_key_appears_once(spark):
    current = spark.createDataFrame([(1, "a"), (2, "b")], SCHEMA)
    previous = spark.createDataFrame([(1, "x"), (2, "y"), (3, "z")], SCHEMA)

    result = get_archived(["id"], current, previous)

    assert sorted(r["id"] for r in result.collect()) == [1, 2, 3]


def test_fold_prefers_newer_snapshots(spark):
    current = spark.createDataFrame([(1, "now")], SCHEMA)
    newer = spark.createDataFrame([(2, "p1")], SCHEMA)
    older = spark.createDataFrame([(2, "p2"), (3, "p2")], SCHEMA)

    result = get_archived(["id"], current, newer, older)

    assert _rows(result) == [(1, "now"), (2, "p1"), (3, "p2")]


def test_no_previous_returns_current(spark):
    current = spark.createDataFrame([(1, "now")], SCHEMA)

    assert _rows(ArchivalDiff().diff_many(current, [], ["id"])) == [(1, "now")]


def test_previous_with_extra_columns_is_unioned_by_name(spark):
    current = spark.createDataFrame([(1, "new")], SCHEMA)
    previous = spark.createDataFrame([("old note", 2, "gone")], "note string, id int, val string")

    result = ArchivalDiff().diff_one(current, previous, ["id"])

    assert result.columns == ["id", "val", "note"]
    assert sorted(tuple(r) for r in result.collect()) == [(1, "new", None), (2, "gone", "old note")]


def test_composite_keys(spark):
    schema = "region string, id int, val string"
    current = spark.createDataFrame([("eu", 1, "new")], schema)
    previous = spark.createDataFrame([("eu", 1, "old"), ("us", 1, "kept")], schema)

    result = get_archived(["region", "id"], current, previous)

    assert sorted(tuple(r) for r in result.collect()) == [("eu", 1, "new"), ("us", 1, "kept")]


def test_missing_key_reported_per_side(spark):
    current = spark.createDataFrame([(1, "new")], SCHEMA)
    previous = spark.createDataFrame([(1,)], "other int")

    with pytest.raises(MergeKeyError) as excinfo:
        ArchivalDiff().diff_one(current, previous, ["id"])

    assert excinfo.value.missing == {"previous": ["id"]}


def test_keys_required(spark):
    current = spark.createDataFrame([(1, "new")], SCHEMA)

    with pytest.raises(MergeKeyError):
        check_keys([], current=current)


def test_dotted_key_names_are_atomic(spark):
    current = spark.createDataFrame([(1, "new")], ["a.b", "val"])
    previous = spark.createDataFrame([(1, "old"), (2, "gone")], ["a.b", "val"])

    result = ArchivalDiff().diff_one(current, previous, ["a.b"])

    assert result.columns == ["a.b", "val"]
    assert _rows(result) == [(1, "new"), (2, "gone")]
