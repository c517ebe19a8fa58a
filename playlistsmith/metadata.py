"""
Resolve (artist, title, album) for an audio file.

Metadata comes from an ordered chain of sources. Each field is taken from the
first source that yields a non-empty value, so a file whose tags carry a title
but no artist still gets its artist from the folder name. The last source in
every chain works from the path alone and always succeeds; resolution never
raises.
"""
from __future__ import annotations

import json
import logging
import shutil
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Protocol, Union

from mutagen import File as MutagenFile
from mutagen import MutagenError

logger = logging.getLogger(__name__)

FIELDS = ("artist", "title", "album")

UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_TITLE = "Unknown Title"

DEFAULT_PROBE_TIMEOUT = 10.0


@dataclass(frozen=True)
class Metadata:
    artist: str
    title: str
    album: str = ""

    @property
    def display(self) -> str:
        """Text shown for a playlist entry: ``Artist - Title``."""
        return f"{self.artist} - {self.title}"


class MetadataSource(Protocol):
    """Anything that can read some tag fields for a file."""

    name: str

    def read(self, path: Path) -> Dict[str, str]:
        """Return the fields it could find. Missing fields are simply absent."""
        ...


def _pick_fields(tags: Dict[str, object]) -> Dict[str, str]:
    """Pull artist/title/album out of a tag mapping, keys case-insensitive."""
    lowered = {str(k).lower(): v for k, v in tags.items()}
    found: Dict[str, str] = {}
    for field in FIELDS:
        value = lowered.get(field)
        if isinstance(value, list):
            value = value[0] if value else None
        if value is None:
            continue
        text = str(value).strip()
        if text:
            found[field] = text
    return found


class FfprobeSource:
    """
    Read tags by running ``ffprobe``.

    A missing binary, a non-zero exit, a timeout or garbage on stdout are all
    treated as "no tags" and left to the next source in the chain.
    """

    name = "ffprobe"

    def __init__(self, executable: str = "ffprobe", timeout: Optional[float] = DEFAULT_PROBE_TIMEOUT):
        self.executable = executable
        self.timeout = timeout
        self._resolved: Optional[str] = None
        self._checked = False
        self._lock = threading.Lock()

    def available(self) -> bool:
        # Called from LibraryIndex worker threads
        with self._lock:
            if not self._checked:
                self._resolved = shutil.which(self.executable)
                self._checked = True
                if self._resolved is None:
                    logger.warning("%s not found on PATH; falling back to path heuristics", self.executable)
        return self._resolved is not None

    def read(self, path: Path) -> Dict[str, str]:
        if not self.available():
            return {}
        cmd = [
            self._resolved,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except subprocess.TimeoutExpired:
            logger.debug("ffprobe timed out after %ss on %s", self.timeout, path)
            return {}
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("ffprobe failed on %s: %s", path, e)
            return {}

        if result.returncode != 0:
            logger.debug("ffprobe exited with %d on %s", result.returncode, path)
            return {}
        try:
            data = json.loads(result.stdout or "{}")
        except ValueError:
            logger.debug("ffprobe returned unparsable output for %s", path)
            return {}

        # Container tags first; Ogg and Opus keep theirs on the audio stream
        found = _pick_fields((data.get("format") or {}).get("tags") or {})
        for stream in data.get("streams") or []:
            for field, value in _pick_fields(stream.get("tags") or {}).items():
                found.setdefault(field, value)
        return found


class MutagenSource:
    """Read tags in-process with mutagen's easy interface."""

    name = "mutagen"

    def read(self, path: Path) -> Dict[str, str]:
        try:
            audio = MutagenFile(str(path), easy=True)
        except (MutagenError, OSError, ValueError) as e:
            logger.debug("mutagen could not read %s: %s", path, e)
            return {}
        if audio is None or audio.tags is None:
            return {}
        return _pick_fields(dict(audio.tags))


class PathHeuristicSource:
    """Artist from the parent folder, title from the file name."""

    name = "path"

    def read(self, path: Path) -> Dict[str, str]:
        return {
            "artist": path.parent.name.strip() or UNKNOWN_ARTIST,
            "title": path.stem.strip() or UNKNOWN_TITLE,
        }


class MetadataResolver:
    """Walk a source chain and assemble a complete :class:`Metadata`."""

    def __init__(self, sources: Optional[Iterable[MetadataSource]] = None):
        chain = list(sources) if sources is not None else [FfprobeSource()]
        # The path heuristic always closes the chain
        if not any(isinstance(s, PathHeuristicSource) for s in chain):
            chain.append(PathHeuristicSource())
        self.sources = chain

    def resolve(self, path: Union[str, Path]) -> Metadata:
        path = Path(path)
        fields: Dict[str, str] = {}
        for source in self.sources:
            missing = [f for f in FIELDS if f not in fields]
            if not missing:
                break
            try:
                found = source.read(path)
            except Exception as e:
                logger.debug("Metadata source %s raised on %s: %s", source.name, path, e)
                continue
            for field in missing:
                if found.get(field):
                    fields[field] = found[field]

        metadata = Metadata(
            artist=fields.get("artist") or UNKNOWN_ARTIST,
            title=fields.get("title") or UNKNOWN_TITLE,
            album=fields.get("album", ""),
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Resolved %s -> %s (album=%r)", path, metadata.display, metadata.album)
        return metadata


def build_resolver(backend: str = "ffprobe", timeout: Optional[float] = DEFAULT_PROBE_TIMEOUT) -> MetadataResolver:
    """Create a resolver for a configured backend name: ffprobe, mutagen or path."""
    backend_lc = (backend or "ffprobe").strip().lower()
    if backend_lc == "ffprobe":
        return MetadataResolver([FfprobeSource(timeout=timeout)])
    if backend_lc == "mutagen":
        return MetadataResolver([MutagenSource()])
    if backend_lc == "path":
        return MetadataResolver([])
    raise ValueError(f"Unknown metadata backend: {backend}")
