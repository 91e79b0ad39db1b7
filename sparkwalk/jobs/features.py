"""
Feature Transforms
------------------
Binarization and bucketization of tidy flights using spark.ml transformers.
"""

from typing import List, Optional

from pyspark.ml.feature import Binarizer, Bucketizer
from pyspark.sql import DataFrame
from pyspark.sql.functions import col, floor, lit, when
from pyspark.sql.types import DoubleType

# Night, early morning, morning, afternoon, evening, late evening
DEFAULT_HOUR_SPLITS: List[float] = [0.0, 4.0, 8.0, 12.0, 16.0, 20.0, 24.0]


def binarize_delay(
    df: DataFrame,
    threshold: float = 15.0,
    input_col: str = "DepDelay",
    output_col: str = "delayed"
) -> DataFrame:
    """Flag flights whose delay is strictly greater than `threshold` minutes (1.0 / 0.0)."""
    binarizer = Binarizer(
        threshold=threshold,
        inputCol=input_col,
        outputCol=output_col,
    )
    return binarizer.transform(df.withColumn(input_col, col(input_col).cast(DoubleType())))


def bucketize_departure(
    df: DataFrame,
    splits: Optional[List[float]] = None,
    input_col: str = "DepTime",
    output_col: str = "dep_period"
) -> DataFrame:
    """
    Bucket the scheduled departure into periods of the day.

    DepTime is hhmm (e.g. 1432), so it is first reduced to the hour in
    `dep_hour`. Missing departure times, and hours outside the split
    range, land in an extra bucket rather than failing the transform.
    """
    splits = splits or DEFAULT_HOUR_SPLITS
    hour = floor(col(input_col) / 100).cast(DoubleType())

    with_hour = df.withColumn(
        "dep_hour",
        when(
            col(input_col).isNull() | (hour < splits[0]) | (hour > splits[-1]),
            lit(float("nan"))
        ).otherwise(hour)
    )

    bucketizer = Bucketizer(
        splits=splits,
        inputCol="dep_hour",
        outputCol=output_col,
        handleInvalid="keep",
    )
    return bucketizer.transform(with_hour)
