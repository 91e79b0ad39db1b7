"""Flight Archive Catalogue

Centralized archive definitions so URLs and file names are not hardcoded
across the walkthrough. The first archive listed is the one sampled for
the header.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse
import posixpath


class ArchiveName(str, Enum):
    """Archive name constants"""

    FLIGHTS_2007 = "flights.2007"
    FLIGHTS_2008 = "flights.2008"


@dataclass
class ArchiveConfig:
    """Where an archive lives remotely and what it is called locally"""
    name: str
    url: str
    filename: str
    description: str = ""

    def local_path(self, data_dir: str) -> str:
        """Path of the archive inside the data directory"""
        return posixpath.join(data_dir, self.filename)


# Data Expo 2009 airline on-time performance archives
ARCHIVE_CONFIGS: Dict[str, ArchiveConfig] = {
    ArchiveName.FLIGHTS_2007: ArchiveConfig(
        name=ArchiveName.FLIGHTS_2007,
        url="http://stat-computing.org/dataexpo/2009/2007.csv.bz2",
        filename="2007.csv.bz2",
        description="US domestic flights, calendar year 2007"
    ),
    ArchiveName.FLIGHTS_2008: ArchiveConfig(
        name=ArchiveName.FLIGHTS_2008,
        url="http://stat-computing.org/dataexpo/2009/2008.csv.bz2",
        filename="2008.csv.bz2",
        description="US domestic flights, calendar year 2008"
    ),
}


def filename_from_url(url: str) -> str:
    """Last path segment of a URL

    Raises:
        ValueError: If the URL has no file name component
    """
    filename = posixpath.basename(urlparse(url).path)
    if not filename:
        raise ValueError(f"Cannot derive a file name from URL: {url!r}")
    return filename


def get_archive_configs(urls: Optional[List[str]] = None) -> List[ArchiveConfig]:
    """Archives to prime, in sampling order

    Args:
        urls: Optional URL list overriding the default catalogue

    Returns:
        List of ArchiveConfig, the first of which is used for the header.
        Colliding file names get an index prefix so every archive keeps
        its own local path.
    """
    if not urls:
        return [ARCHIVE_CONFIGS[name] for name in ArchiveName]

    configs = []
    taken = set()
    for index, url in enumerate(urls):
        filename = filename_from_url(url)
        while filename in taken:
            filename = f"{index}-{filename}"
        taken.add(filename)
        configs.append(ArchiveConfig(
            name=f"custom.{index}",
            url=url,
            filename=filename,
        ))
    return configs
