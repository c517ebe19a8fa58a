"""Read (song, artist) queries from a header-less CSV file."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, List, Union

from .matching import Query

logger = logging.getLogger(__name__)


def parse_query_rows(rows: Iterable[List[str]]) -> List[Query]:
    """Columns are positional: song first, artist second. Extra columns are ignored."""
    queries: List[Query] = []
    skipped = 0
    for row in rows:
        if len(row) < 2:
            skipped += 1
            continue
        song, artist = row[0].strip(), row[1].strip()
        if not song or not artist:
            skipped += 1
            continue
        queries.append(Query(song=song, artist=artist))
    if skipped:
        logger.warning("Skipped %d row(s) with a blank song or artist", skipped)
    return queries


def read_queries(path: Union[str, Path]) -> List[Query]:
    """
    Load queries from ``path``.

    Raises:
        OSError: If the file cannot be opened.
        ValueError: If the file is not UTF-8 text.
    """
    try:
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            return parse_query_rows(csv.reader(f))
    except UnicodeDecodeError as e:
        raise ValueError(f"{path} is not UTF-8 text (byte {e.start}: {e.reason})") from e
