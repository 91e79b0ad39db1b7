"""Spark session setup for the walkthrough"""

import logging

from pyspark.sql import SparkSession

from sparkwalk.config import WalkthroughSettings

logger = logging.getLogger(__name__)


def create_spark_session(settings: WalkthroughSettings) -> SparkSession:
    """Create (or reuse) the Spark session the walkthrough runs on."""
    logger.info(f"Connecting to Spark master={settings.spark_master} app={settings.app_name}")
    return SparkSession.builder \
        .appName(settings.app_name) \
        .master(settings.spark_master) \
        .config("spark.sql.shuffle.partitions", str(settings.shuffle_partitions)) \
        .config("spark.sql.adaptive.enabled", "true") \
        .config("spark.sql.adaptive.coalescePartitions.enabled", "true") \
        .config("spark.sql.execution.arrow.pyspark.enabled", "true") \
        .getOrCreate()
