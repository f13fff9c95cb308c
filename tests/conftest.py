import shutil
import tempfile

import pytest
from pyspark.sql import SparkSession


@pytest.fixture(scope="session")
def spark():
    warehouse = tempfile.mkdtemp(prefix="tabular_recon_warehouse_")
    session = (
        SparkSession.builder.master("local[1]")
        .appName("tabular_recon_tests")
        .config("spark.ui.enabled", "false")
        .config("spark.sql.shuffle.partitions", "1")
        .config("spark.default.parallelism", "1")
        .config("spark.sql.session.timeZone", "UTC")
        .config("spark.sql.warehouse.dir", warehouse)
        .getOrCreate()
    )
    yield session
    session.stop()
    shutil.rmtree(warehouse, ignore_errors=True)
