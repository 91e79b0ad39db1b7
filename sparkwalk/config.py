"""Walkthrough Configuration"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class WalkthroughSettings(BaseSettings):
    """Settings for priming the flight archives and running the Spark walkthrough"""

    # Data Priming
    data_dir: str = "data"
    archive_urls: Optional[List[str]] = None  # Overrides the default archive catalogue
    sample_rows: int = 5
    download_timeout: float = 60.0
    chunk_size: int = 1024 * 1024

    # Spark Connection
    spark_master: str = "local[*]"
    app_name: str = "sparkwalk"
    shuffle_partitions: int = 8
    table_name: str = "flights"

    # Modelling
    delay_threshold: float = 15.0
    train_fraction: float = 0.8
    seed: int = 1099

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "SPARKWALK_"
        case_sensitive = False


def get_settings() -> WalkthroughSettings:
    """Get walkthrough settings"""
    return WalkthroughSettings()
