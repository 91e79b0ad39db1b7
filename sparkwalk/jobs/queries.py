"""
Flight Queries
--------------
SQL and dataframe-style queries over the registered flights table,
plus the tidy subset that later steps cache and model on.

The raw table is all text, so numeric columns are cast here. Values
such as "NA" or blanks become nulls rather than failing the job.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import (
    col, when, lit, trim, avg, count, round as spark_round
)
from pyspark.sql.types import DoubleType, IntegerType

logger = logging.getLogger(__name__)

NULL_TOKENS = ["NA", "NaN", "nan", "NULL", "null"]

INTEGER_COLUMNS = ["Year", "Month", "DayofMonth", "DepTime"]
DOUBLE_COLUMNS = ["ArrDelay", "DepDelay", "Distance"]
TEXT_COLUMNS = ["UniqueCarrier", "Origin", "Dest"]


def safe_cast_int(column_name: str):
    """Safely cast to integer, handling 'NA' strings and nulls."""
    return when(
        (col(column_name).isNull()) |
        (trim(col(column_name)) == "") |
        (trim(col(column_name)).isin(*NULL_TOKENS)),
        lit(None)
    ).otherwise(trim(col(column_name))).cast(IntegerType())


def safe_cast_double(column_name: str):
    """Safely cast to double, handling 'NA' strings and nulls."""
    return when(
        (col(column_name).isNull()) |
        (trim(col(column_name)) == "") |
        (trim(col(column_name)).isin(*NULL_TOKENS)),
        lit(None)
    ).otherwise(trim(col(column_name))).cast(DoubleType())


def count_rows_sql(spark: SparkSession, table_name: str) -> int:
    """SELECT COUNT(*) against a registered table"""
    return spark.sql(f"SELECT COUNT(*) AS n FROM {table_name}").collect()[0]["n"]


def carrier_delay_sql(spark: SparkSession, table_name: str, limit: int = 10) -> DataFrame:
    """Average departure delay per carrier, written as SQL over the text table"""
    return spark.sql(f"""
        SELECT UniqueCarrier,
               COUNT(*) AS flights,
               ROUND(AVG(TRY_CAST(DepDelay AS DOUBLE)), 2) AS avg_dep_delay
        FROM {table_name}
        WHERE TRY_CAST(DepDelay AS DOUBLE) IS NOT NULL
        GROUP BY UniqueCarrier
        ORDER BY avg_dep_delay DESC
        LIMIT {int(limit)}
    """)


def tidy_flights(df: DataFrame) -> DataFrame:
    """Select the walkthrough columns, cast them, and drop flights without delays."""
    selected = [safe_cast_int(name).alias(name) for name in INTEGER_COLUMNS]
    selected += [safe_cast_double(name).alias(name) for name in DOUBLE_COLUMNS]
    selected += [col(name) for name in TEXT_COLUMNS]

    return df.select(*selected) \
        .filter(col("DepDelay").isNotNull() & col("ArrDelay").isNotNull())


def carrier_delay_summary(df: DataFrame, limit: int = 10) -> DataFrame:
    """Same question as carrier_delay_sql, using the dataframe API on tidy flights."""
    return df.groupBy("UniqueCarrier") \
        .agg(
            count("*").alias("flights"),
            spark_round(avg("DepDelay"), 2).alias("avg_dep_delay")
        ) \
        .orderBy(col("avg_dep_delay").desc()) \
        .limit(limit)


def cache_table(spark: SparkSession, df: DataFrame, table_name: str) -> DataFrame:
    """
    Register `df` as `table_name` and pin it in memory.

    The cache is materialized straight away so later queries hit memory.
    """
    df.createOrReplaceTempView(table_name)
    spark.catalog.cacheTable(table_name)
    rows = spark.table(table_name).count()
    logger.info(f"Cached '{table_name}' with {rows:,} rows")
    return spark.table(table_name)


def uncache_table(spark: SparkSession, table_name: str) -> None:
    if spark.catalog.isCached(table_name):
        spark.catalog.uncacheTable(table_name)
        logger.info(f"Released cache for '{table_name}'")
