"""
Find one library file per (song, artist) query.

A file is a candidate only when it clears the artist gate and then the title
gate. Among candidates the highest combined score wins; on a tie the file
scanned first is kept.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple, Union

from thefuzz import fuzz
from thefuzz import process as fuzzy_process

from .library import AudioFile, LibraryEntry, LibraryIndex, iter_library
from .metadata import Metadata, MetadataResolver
from .scoring import similarity

logger = logging.getLogger(__name__)

DEFAULT_ARTIST_THRESHOLD = 80
DEFAULT_SONG_THRESHOLD = 50


@dataclass(frozen=True)
class Query:
    song: str
    artist: str

    def __str__(self) -> str:
        return f"{self.artist} - {self.song}"


@dataclass(frozen=True)
class Match:
    query: Query
    file: AudioFile
    metadata: Metadata
    artist_score: float
    song_score: float

    @property
    def total(self) -> float:
        return self.artist_score + self.song_score

    @property
    def path(self) -> str:
        return self.file.path


@dataclass
class MatchReport:
    """Outcome of a run: matches and misses, both in query order."""

    matches: List[Match] = field(default_factory=list)
    not_found: List[Query] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.matches) + len(self.not_found)


def _validate_threshold(name: str, value: int) -> int:
    if not 0 <= value <= 100:
        raise ValueError(f"{name} must be between 0 and 100, got {value}")
    return value


@dataclass(frozen=True)
class ThresholdGate:
    """Minimum similarity for one metadata field against the matching query field."""

    field: str
    query_field: str
    threshold: int

    def __post_init__(self):
        _validate_threshold(f"{self.field} threshold", self.threshold)

    def score(self, metadata: Metadata, query: Query) -> float:
        return similarity(getattr(metadata, self.field), getattr(query, self.query_field))

    def admits(self, score: float) -> bool:
        return score >= self.threshold


def artist_gate(threshold: int) -> ThresholdGate:
    return ThresholdGate("artist", "artist", threshold)


def title_gate(threshold: int) -> ThresholdGate:
    return ThresholdGate("title", "song", threshold)


def select_best(
    query: Query,
    entries: Iterable[LibraryEntry],
    artist_threshold: int = DEFAULT_ARTIST_THRESHOLD,
    song_threshold: int = DEFAULT_SONG_THRESHOLD,
) -> Optional[Match]:
    """Evaluate every entry against ``query`` and return the best accepted one."""
    artist = artist_gate(artist_threshold)
    title = title_gate(song_threshold)

    best: Optional[Match] = None
    for audio, metadata in entries:
        artist_score = artist.score(metadata, query)
        if not artist.admits(artist_score):
            continue
        song_score = title.score(metadata, query)
        if not title.admits(song_score):
            continue
        candidate = Match(query, audio, metadata, artist_score, song_score)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "Candidate for '%s': %s (artist %.2f, title %.2f)",
                query,
                audio.path,
                artist_score,
                song_score,
            )
        # Strictly greater keeps the first of equal candidates
        if best is None or candidate.total > best.total:
            best = candidate
    return best


def find_best(
    query: Query,
    root: Union[str, Path],
    artist_threshold: int = DEFAULT_ARTIST_THRESHOLD,
    song_threshold: int = DEFAULT_SONG_THRESHOLD,
    resolver: Optional[MetadataResolver] = None,
) -> Optional[Match]:
    """Rescan ``root`` and return the best match for ``query``, or None."""
    resolver = resolver or MetadataResolver()
    return select_best(query, iter_library(root, resolver), artist_threshold, song_threshold)


def match_queries(
    queries: Iterable[Query],
    root: Union[str, Path],
    artist_threshold: int = DEFAULT_ARTIST_THRESHOLD,
    song_threshold: int = DEFAULT_SONG_THRESHOLD,
    resolver: Optional[MetadataResolver] = None,
    index: Optional[LibraryIndex] = None,
    on_result: Optional[Callable[[Query, Optional[Match]], None]] = None,
) -> MatchReport:
    """
    Run every query in order and collect the outcome.

    With an ``index`` the library is resolved once and reused; without one
    each query rescans ``root``. Both give the same report.

    Raises:
        OSError: If ``root`` cannot be scanned.
        ValueError: If a threshold is outside 0..100.
    """
    _validate_threshold("artist threshold", artist_threshold)
    _validate_threshold("song threshold", song_threshold)
    resolver = resolver or MetadataResolver()

    report = MatchReport()
    for query in queries:
        if index is not None:
            match = select_best(query, index, artist_threshold, song_threshold)
        else:
            match = find_best(query, root, artist_threshold, song_threshold, resolver)

        if match is None:
            logger.info("Not found: %s", query)
            report.not_found.append(query)
        else:
            logger.info(
                "Matched: %s -> %s (artist %.2f, title %.2f)",
                query,
                match.path,
                match.artist_score,
                match.song_score,
            )
            report.matches.append(match)
        if on_result is not None:
            on_result(query, match)
    return report


def suggest_matches(
    query: Query, entries: Iterable[LibraryEntry], limit: int = 3
) -> List[Tuple[AudioFile, Metadata, int]]:
    """
    Closest library entries for a query that found nothing.

    Uses a token-set ratio on ``artist - title`` so word order and extra words
    matter less than in the gate scores. Only for reporting; it never changes
    which file is selected.
    """
    entries = list(entries)
    if not entries:
        return []
    choices = {i: metadata.display for i, (_, metadata) in enumerate(entries)}
    results = fuzzy_process.extract(
        f"{query.artist} - {query.song}", choices, scorer=fuzz.token_set_ratio, limit=limit
    )
    return [(entries[key][0], entries[key][1], score) for _, score, key in results]
