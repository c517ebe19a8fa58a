"""
Library scanning.

The library is never persisted. Every run walks the source root again; within
a run, :class:`LibraryIndex` keeps the resolved metadata so each file is
probed once instead of once per query.
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Generator, Iterator, List, Optional, Tuple, Union

from .metadata import Metadata, MetadataResolver

logger = logging.getLogger(__name__)

AUDIO_EXTENSIONS = {".flac", ".mp3", ".wav", ".aac", ".ogg", ".wma"}


@dataclass(frozen=True)
class AudioFile:
    path: str
    extension: str

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "AudioFile":
        p = Path(path)
        return cls(path=str(p), extension=p.suffix.lower())


LibraryEntry = Tuple[AudioFile, Metadata]


def _log_walk_error(error: OSError) -> None:
    logger.warning("Skipping unreadable entry %s: %s", error.filename, error.strerror or error)


def scan_audio_files(
    library_dir: Union[str, Path], extensions: Optional[set[str]] = None
) -> Generator[AudioFile, None, None]:
    """
    Recursively yield audio files under ``library_dir``.

    Yielded paths are absolute even when ``library_dir`` is relative.
    Directories and files are visited in lexical order so the yield order is
    the same on every filesystem. Unreadable directories, broken links and
    AppleDouble (``._*``) files are skipped.

    Raises:
        OSError: If ``library_dir`` is missing or not a directory.
    """
    if extensions is None:
        extensions = AUDIO_EXTENSIONS
    extensions = {e.lower() for e in extensions}
    # Absolute without resolving links, so yielded paths keep the root as given
    library_dir = Path(library_dir).absolute()

    if not library_dir.exists():
        raise OSError(f"Library directory does not exist: {library_dir}")
    if not library_dir.is_dir():
        raise OSError(f"Library path is not a directory: {library_dir}")

    for root, dirs, files in os.walk(library_dir, onerror=_log_walk_error):
        dirs.sort()
        for name in sorted(files):
            if name.startswith("._"):
                continue
            file_path = Path(root) / name
            if file_path.suffix.lower() not in extensions:
                continue
            try:
                if not file_path.is_file():
                    logger.debug("Skipping broken link or special file: %s", file_path)
                    continue
            except OSError as e:
                logger.warning("Skipping %s: %s", file_path, e)
                continue
            yield AudioFile.from_path(file_path)


def iter_library(root: Union[str, Path], resolver: MetadataResolver) -> Iterator[LibraryEntry]:
    """Lazily pair each scanned file with its resolved metadata."""
    for audio in scan_audio_files(root):
        yield audio, resolver.resolve(audio.path)


class LibraryIndex:
    """Scan-ordered list of (file, metadata) pairs, resolved once per run."""

    def __init__(self, root: Union[str, Path], entries: List[LibraryEntry]):
        self.root = Path(root)
        self.entries = entries

    def __iter__(self) -> Iterator[LibraryEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @classmethod
    def build(
        cls,
        root: Union[str, Path],
        resolver: MetadataResolver,
        workers: int = 1,
        on_resolved: Optional[Callable[[AudioFile], None]] = None,
    ) -> "LibraryIndex":
        """
        Scan ``root`` and resolve metadata for every file.

        With ``workers > 1`` the probe calls run on a thread pool. Results are
        collected in scan order either way, so the index is identical to what a
        sequential scan produces.
        """
        files = list(scan_audio_files(root))
        logger.info("Found %d audio files under %s", len(files), root)

        def resolve(audio: AudioFile) -> LibraryEntry:
            metadata = resolver.resolve(audio.path)
            if on_resolved is not None:
                on_resolved(audio)
            return audio, metadata

        if workers > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                entries = list(executor.map(resolve, files))
        else:
            entries = [resolve(audio) for audio in files]
        return cls(root, entries)
