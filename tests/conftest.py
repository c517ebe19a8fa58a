from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from playlistsmith.library import AudioFile
from playlistsmith.matching import Match, Query
from playlistsmith.metadata import Metadata, MetadataResolver


@pytest.fixture
def make_library(tmp_path: Path) -> Callable[..., Path]:
    """Build a library tree of empty files from relative paths."""

    def _make(*relative_paths: str) -> Path:
        root = tmp_path / "library"
        root.mkdir(exist_ok=True)
        for rel in relative_paths:
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
        return root

    return _make


@pytest.fixture
def path_resolver() -> MetadataResolver:
    """Resolver that only looks at folder and file names."""
    return MetadataResolver([])


def make_match(artist: str, title: str, path: str, song: str | None = None) -> Match:
    return Match(
        query=Query(song=song or title, artist=artist),
        file=AudioFile.from_path(path),
        metadata=Metadata(artist=artist, title=title),
        artist_score=100.0,
        song_score=100.0,
    )
