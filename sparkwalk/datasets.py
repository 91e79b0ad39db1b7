"""
Dataset Primer
--------------
Makes sure the flight archives are on local disk and derives the column
list the Spark loader needs.

- Archives are downloaded once; an existing file is never refetched
- Downloads land in a temp file first and are moved into place, so a
  failed transfer never leaves a truncated archive behind
- The header is sampled from a handful of rows, never the whole file
- Every column is declared as text; typing happens later in Spark
"""

import bz2
import csv
import gzip
import logging
import os
import tempfile
from dataclasses import dataclass
from itertools import islice
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import requests

from sparkwalk.archives import ArchiveConfig, get_archive_configs
from sparkwalk.config import WalkthroughSettings

logger = logging.getLogger(__name__)

TEXT_TYPE = "text"
DEFAULT_SAMPLE_ROWS = 5

ColumnSchema = List[Tuple[str, str]]


class PrimingError(Exception):
    """Base error for the priming step"""
    pass


class TransferError(PrimingError):
    """Archive could not be fetched or written to disk"""
    pass


class SchemaError(PrimingError):
    """Archive has no usable header line"""
    pass


@dataclass
class ArchiveFile:
    """A remote archive and where it is kept locally"""
    url: str
    path: str

    @property
    def is_local(self) -> bool:
        return os.path.exists(self.path)


@dataclass
class PrimedDataset:
    """Result of priming: local archives plus the declared schema"""
    directory: str
    archives: List[ArchiveFile]
    schema: ColumnSchema

    @property
    def column_names(self) -> List[str]:
        return [name for name, _ in self.schema]


def ensure_local(
    url: str,
    path: str,
    session: Optional[requests.Session] = None,
    timeout: float = 60.0,
    chunk_size: int = 1024 * 1024
) -> str:
    """
    Download `url` to `path` unless a file is already there.

    Args:
        url: Remote archive URL
        path: Local target path
        session: Optional requests session (defaults to module-level requests)
        timeout: Connect/read timeout in seconds
        chunk_size: Bytes per streamed chunk

    Returns:
        str: The local path

    Raises:
        TransferError: If the fetch or the write fails
    """
    if not url or not path:
        raise ValueError("url and path must be non-empty")

    if os.path.exists(path):
        logger.debug(f"Archive already present, skipping download: {path}")
        return path

    target = Path(path)
    http = session or requests

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create directory for {path}: {e}")
        raise TransferError(f"Cannot create directory for {path}: {e}") from e

    logger.info(f"⬇️  Downloading {url} -> {path}")

    tmp_path = None
    bytes_written = 0
    try:
        # Temp file sits next to the target so os.replace stays on one filesystem
        fd, tmp_path = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".part", dir=target.parent)
        with os.fdopen(fd, "wb") as out:
            with http.get(url, stream=True, timeout=timeout) as response:
                response.raise_for_status()
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if chunk:
                        out.write(chunk)
                        bytes_written += len(chunk)

        if bytes_written == 0:
            raise TransferError(f"Empty response body from {url}")

        os.replace(tmp_path, path)

    except TransferError:
        _discard(tmp_path)
        logger.error(f"Transfer failed for {url}: empty response")
        raise
    except (requests.RequestException, OSError) as e:
        _discard(tmp_path)
        logger.error(f"Transfer failed for {url}: {e}")
        raise TransferError(f"Failed to fetch {url} into {path}: {e}") from e

    logger.info(f"✅ Saved {bytes_written / (1024 * 1024):.2f}MB to {path}")
    return path


def _discard(tmp_path: Optional[str]) -> None:
    if tmp_path is None:
        return
    try:
        os.remove(tmp_path)
    except FileNotFoundError:
        pass


def _open_text(path: str):
    """Open a possibly compressed text file, chosen by suffix"""
    if path.endswith(".bz2"):
        return bz2.open(path, mode="rt", encoding="utf-8", newline="")
    if path.endswith(".gz"):
        return gzip.open(path, mode="rt", encoding="utf-8", newline="")
    return open(path, mode="r", encoding="utf-8", newline="")


def read_sample(path: str, rows: int = DEFAULT_SAMPLE_ROWS) -> Iterator[List[str]]:
    """
    Yield the header plus at most `rows` data rows.

    Lines past the sample are never read, so the cost does not depend on
    how large the archive is.
    """
    with _open_text(path) as f:
        reader = csv.reader(f)
        for row in islice(reader, rows + 1):
            yield row


def derive_schema(path: str, sample_rows: int = DEFAULT_SAMPLE_ROWS) -> ColumnSchema:
    """
    Derive column names from the header and declare every column as text.

    Args:
        path: Local delimited-text file with a header line
        sample_rows: Data rows to sample after the header (default 5)

    Returns:
        ColumnSchema: [(column_name, "text"), ...] in header order

    Raises:
        SchemaError: If the file is empty or has no header line
    """
    if sample_rows < 1:
        raise ValueError(f"sample_rows must be positive, got {sample_rows}")

    try:
        sample = list(read_sample(path, sample_rows))
    except (OSError, EOFError, UnicodeDecodeError, csv.Error) as e:
        logger.error(f"Could not sample header from {path}: {e}")
        raise SchemaError(f"Could not read header from {path}: {e}") from e

    if not sample:
        raise SchemaError(f"File is empty: {path}")

    header = [token.strip() for token in sample[0]]
    if not any(header):
        raise SchemaError(f"No header line in {path}")

    logger.info(f"Derived {len(header)} columns from {path} ({len(sample) - 1} sample rows)")
    return [(name, TEXT_TYPE) for name in header]


def prime_datasets(
    settings: WalkthroughSettings,
    session: Optional[requests.Session] = None
) -> PrimedDataset:
    """
    Download any missing archives and derive the schema from the first one.

    Raises:
        TransferError: If any archive cannot be fetched
        SchemaError: If the first archive has no usable header
    """
    configs: List[ArchiveConfig] = get_archive_configs(settings.archive_urls)
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)

    archives = []
    downloaded = 0
    for config in configs:
        archive = ArchiveFile(url=config.url, path=config.local_path(settings.data_dir))
        if not archive.is_local:
            downloaded += 1
        ensure_local(
            archive.url,
            archive.path,
            session=session,
            timeout=settings.download_timeout,
            chunk_size=settings.chunk_size,
        )
        archives.append(archive)

    logger.info(f"Archives ready in {settings.data_dir}: {len(archives)} total, {downloaded} downloaded")

    schema = derive_schema(archives[0].path, settings.sample_rows)

    return PrimedDataset(directory=settings.data_dir, archives=archives, schema=schema)
