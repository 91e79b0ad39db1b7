"""
Spark Walkthrough
-----------------
Primes the flight archives and walks through the Spark workflow:

- Download the archives if missing, derive a text schema from the header
- Register the archives as a table (no schema inference, not cached)
- SQL and dataframe queries
- Cache a tidy subset
- Binarize and bucketize features
- Train and evaluate a logistic regression delay model
- Run a pandas routine on every partition
"""

import argparse
import logging
import sys

from dotenv import load_dotenv
from tabulate import tabulate

from sparkwalk.config import WalkthroughSettings, get_settings
from sparkwalk.datasets import PrimingError, prime_datasets

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Prime flight archives and run the Spark walkthrough")
    parser.add_argument("--data-dir", type=str, default=None, help="Directory holding the archives")
    parser.add_argument("--master", type=str, default=None, help="Spark master URL")
    parser.add_argument("--sample-rows", type=int, default=None, help="Rows sampled for the header")
    parser.add_argument("--prime-only", action="store_true", help="Stop after priming the archives")
    parser.add_argument("--skip-model", action="store_true", help="Skip the logistic regression step")
    parser.add_argument("--log-level", type=str, default=None)
    return parser.parse_args(argv)


def apply_overrides(settings: WalkthroughSettings, args: argparse.Namespace) -> WalkthroughSettings:
    """Command line flags win over environment settings"""
    overrides = {
        "data_dir": args.data_dir,
        "spark_master": args.master,
        "sample_rows": args.sample_rows,
        "log_level": args.log_level,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return settings.model_copy(update=overrides)


def print_table(title: str, df) -> None:
    print(f"\n{title}")
    print(tabulate([list(row) for row in df.collect()], headers=df.columns, tablefmt="github"))


def run_walkthrough(settings: WalkthroughSettings, primed, skip_model: bool = False) -> None:
    # Spark imports stay here so --prime-only works without a JVM
    from sparkwalk.jobs.session import create_spark_session
    from sparkwalk.jobs.loading import register_archive_table
    from sparkwalk.jobs.queries import (
        count_rows_sql, carrier_delay_sql, carrier_delay_summary,
        tidy_flights, cache_table, uncache_table
    )
    from sparkwalk.jobs.features import binarize_delay, bucketize_departure
    from sparkwalk.jobs.model import run_delay_model
    from sparkwalk.jobs.distributed import partition_row_counts

    spark = create_spark_session(settings)
    subset_name = f"{settings.table_name}_subset"

    try:
        flights = register_archive_table(
            spark,
            primed.directory,
            primed.schema,
            settings.table_name,
            memory=False,
        )

        total = count_rows_sql(spark, settings.table_name)
        logger.info(f"📊 {settings.table_name}: {total:,} rows")

        print_table("Average departure delay by carrier (SQL)", carrier_delay_sql(spark, settings.table_name))

        subset = cache_table(spark, tidy_flights(flights), subset_name)
        print_table("Average departure delay by carrier (dataframe)", carrier_delay_summary(subset))

        featurized = bucketize_departure(binarize_delay(subset, threshold=settings.delay_threshold))
        print_table(
            "Delayed share by departure period",
            featurized.groupBy("dep_period").avg("delayed").orderBy("dep_period")
        )

        if not skip_model:
            report = run_delay_model(featurized, train_fraction=settings.train_fraction, seed=settings.seed)
            print(f"\nDelay model AUC: {report.area_under_roc:.4f}")
            print(tabulate(sorted(report.coefficients.items()), headers=["feature", "coefficient"], tablefmt="github"))

        print_table("Rows per partition", partition_row_counts(subset))

        uncache_table(spark, subset_name)

    finally:
        spark.stop()
        logger.info("Spark session stopped")


def main(argv=None) -> int:
    load_dotenv()
    args = parse_args(argv)
    settings = apply_overrides(get_settings(), args)
    configure_logging(settings.log_level)

    logger.info("=" * 60)
    logger.info("🚀 Spark walkthrough started")
    logger.info(f"Data directory: {settings.data_dir}")
    logger.info("=" * 60)

    try:
        primed = prime_datasets(settings)
        logger.info(f"Columns ({len(primed.column_names)}): {', '.join(primed.column_names)}")

        if args.prime_only:
            return 0

        run_walkthrough(settings, primed, skip_model=args.skip_model)
        return 0

    except PrimingError as e:
        logger.error(f"❌ Priming failed: {e}")
        return 1
    except Exception as e:
        logger.error(f"❌ Walkthrough failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
