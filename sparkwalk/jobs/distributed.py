"""
Distributed Routines
--------------------
Runs a plain pandas function once per Spark partition.

Each partition reaches the routine as a single pandas DataFrame. The
routine returns a pandas DataFrame matching the declared output schema.
Empty partitions are skipped.
"""

from typing import Callable, Iterator

import pandas as pd
from pyspark.sql import DataFrame
from pyspark.sql.functions import spark_partition_id

PARTITION_COL = "partition"

PartitionRoutine = Callable[[pd.DataFrame], pd.DataFrame]


def apply_to_partitions(df: DataFrame, routine: PartitionRoutine, schema: str) -> DataFrame:
    """
    Distribute `routine` across the partitions of `df`.

    Args:
        df: Input DataFrame
        routine: pandas DataFrame -> pandas DataFrame, called once per partition
        schema: DDL string describing the routine's output

    Returns:
        DataFrame: Concatenated routine outputs
    """
    def run(batches: Iterator[pd.DataFrame]) -> Iterator[pd.DataFrame]:
        # mapInPandas hands over Arrow batches; stitch them into one partition frame
        frames = [batch for batch in batches if len(batch)]
        if not frames:
            return
        yield routine(pd.concat(frames, ignore_index=True))

    return df.mapInPandas(run, schema=schema)


def count_rows(pdf: pd.DataFrame) -> pd.DataFrame:
    return pd.DataFrame({
        PARTITION_COL: [int(pdf[PARTITION_COL].iloc[0])],
        "rows": [len(pdf)],
    })


def partition_row_counts(df: DataFrame) -> DataFrame:
    """One row per non-empty partition: its id and how many rows it holds."""
    tagged = df.select(spark_partition_id().alias(PARTITION_COL))
    return apply_to_partitions(tagged, count_rows, f"{PARTITION_COL} int, rows long") \
        .orderBy(PARTITION_COL)
