"""
Archive Loading
---------------
Registers the primed archive directory as a named Spark table.

The schema comes straight from the header sample: every column is a
nullable string, schema inference stays off, and nothing is cached
unless asked for.
"""

import logging

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.types import StructType, StructField, StringType

from sparkwalk.datasets import ColumnSchema, TEXT_TYPE

logger = logging.getLogger(__name__)


def build_text_schema(column_schema: ColumnSchema) -> StructType:
    """Map [(name, "text"), ...] onto a StructType of nullable strings."""
    fields = []
    for name, declared_type in column_schema:
        if declared_type != TEXT_TYPE:
            raise ValueError(f"Unsupported declared type {declared_type!r} for column {name!r}")
        fields.append(StructField(name, StringType(), True))
    return StructType(fields)


def register_archive_table(
    spark: SparkSession,
    directory: str,
    column_schema: ColumnSchema,
    table_name: str,
    memory: bool = False
) -> DataFrame:
    """
    Read every archive under `directory` and expose it as `table_name`.

    Args:
        spark: Active Spark session
        directory: Folder holding the archives (compressed CSV is fine)
        column_schema: Declared schema from the header sample
        table_name: Name of the temp view to register
        memory: Cache the table in memory after registering

    Returns:
        DataFrame: The registered table
    """
    schema = build_text_schema(column_schema)

    df = spark.read \
        .option("header", "true") \
        .option("inferSchema", "false") \
        .schema(schema) \
        .csv(directory)

    df.createOrReplaceTempView(table_name)
    logger.info(f"Registered table '{table_name}' from {directory} ({len(schema.fields)} text columns)")

    if memory:
        spark.catalog.cacheTable(table_name)
        logger.info(f"Cached table '{table_name}' in memory")

    return df
