import io
import os
import shutil

import pytest
import requests


def make_response(body: bytes = b"", status_code: int = 200, url: str = "http://example.test/file", raw=None):
    """Build a real requests.Response backed by an in-memory body."""
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    response.url = url
    response.raw = raw if raw is not None else io.BytesIO(body)
    return response


class FakeSession:
    """Stands in for requests.Session; records every GET."""

    def __init__(self, responses=None, error=None):
        self.responses = dict(responses or {})
        self.error = error
        self.calls = []

    def get(self, url, stream=False, timeout=None):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.responses[url]


@pytest.fixture(scope="session")
def spark():
    pytest.importorskip("pyspark")
    if not (shutil.which("java") or os.environ.get("JAVA_HOME")):
        pytest.skip("Spark tests need a Java runtime")

    from pyspark.sql import SparkSession

    session = SparkSession.builder \
        .master("local[2]") \
        .appName("sparkwalk-tests") \
        .config("spark.sql.shuffle.partitions", "2") \
        .config("spark.ui.enabled", "false") \
        .getOrCreate()
    yield session
    session.stop()


FLIGHT_HEADER = "Year,Month,DayofMonth,DepTime,UniqueCarrier,ArrDelay,DepDelay,Origin,Dest,Distance"


@pytest.fixture
def flights_csv_dir(tmp_path):
    """Small flights directory in the Data Expo layout, all values as text."""
    rows = [
        "2008,1,3,2003,WN,-14,8,IAD,TPA,810",
        "2008,1,3,754,WN,2,19,IAD,TPA,810",
        "2008,1,3,628,AA,14,8,IND,BWI,515",
        "2008,1,3,926,AA,-6,-4,IND,BWI,515",
        "2008,1,3,1829,AA,34,34,IND,BWI,515",
        "2008,1,3,NA,AA,NA,NA,IND,JAX,688",
    ]
    data_dir = tmp_path / "flights"
    data_dir.mkdir()
    (data_dir / "2008.csv").write_text(FLIGHT_HEADER + "\n" + "\n".join(rows) + "\n", encoding="utf-8")
    return data_dir
