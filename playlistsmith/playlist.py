"""
Playlist serialization.

Each output format is a :class:`PlaylistFormat` member bound to one
serializer. Content is always built completely in memory before anything
touches the disk, and files are swapped into place with a rename so a failed
run never leaves a truncated playlist behind.
"""
from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Sequence, Union
from xml.sax.saxutils import escape

from .matching import Match
from .paths import PathMode, resolve_entry_path

logger = logging.getLogger(__name__)

GENERATOR = "playlistsmith"
MANIFEST_SUFFIX = "-FullPaths.txt"


@dataclass(frozen=True)
class PlaylistEntry:
    title: str
    path: str


class PlaylistSerializer(ABC):
    extension: str

    @abstractmethod
    def render(self, entries: Sequence[PlaylistEntry], name: str) -> str:
        """Return the full playlist text."""


class M3USerializer(PlaylistSerializer):
    extension = ".m3u"

    def render(self, entries, name):
        lines = ["#EXTM3U"]
        for entry in entries:
            lines.append(f"#EXTINF:-1,{entry.title}")
            lines.append(entry.path)
        return "\n".join(lines) + "\n"


class PLSSerializer(PlaylistSerializer):
    extension = ".pls"

    def render(self, entries, name):
        lines = ["[playlist]"]
        for i, entry in enumerate(entries, 1):
            lines.append(f"File{i}={entry.path}")
            lines.append(f"Title{i}={entry.title}")
            lines.append(f"Length{i}=-1")
        lines.append(f"NumberOfEntries={len(entries)}")
        lines.append("Version=2")
        return "\n".join(lines) + "\n"


def _attr(value: str) -> str:
    return escape(value, {'"': "&quot;"})


class WPLSerializer(PlaylistSerializer):
    extension = ".wpl"

    def render(self, entries, name):
        lines = [
            '<?wpl version="1.0"?>',
            "<smil>",
            "  <head>",
            f'    <meta name="Generator" content="{_attr(GENERATOR)}"/>',
            f"    <title>{escape(name)}</title>",
            "  </head>",
            "  <body>",
            "    <seq>",
        ]
        for entry in entries:
            lines.append(f'      <media src="{_attr(entry.path)}"/>')
        lines.extend(["    </seq>", "  </body>", "</smil>"])
        return "\n".join(lines) + "\n"


class PlaylistFormat(str, Enum):
    M3U = "m3u"
    PLS = "pls"
    WPL = "wpl"

    @property
    def serializer(self) -> PlaylistSerializer:
        return _SERIALIZERS[self]

    @property
    def extension(self) -> str:
        return self.serializer.extension

    @classmethod
    def parse(cls, value: Union[str, "PlaylistFormat"]) -> "PlaylistFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower().lstrip("."))
        except ValueError:
            raise ValueError(
                f"Unsupported playlist format: {value} (expected one of: {', '.join(f.value for f in cls)})"
            ) from None


_SERIALIZERS = {
    PlaylistFormat.M3U: M3USerializer(),
    PlaylistFormat.PLS: PLSSerializer(),
    PlaylistFormat.WPL: WPLSerializer(),
}


def build_entries(
    matches: Iterable[Match], source_root: Union[str, Path], path_mode: Union[str, PathMode]
) -> List[PlaylistEntry]:
    return [
        PlaylistEntry(match.metadata.display, resolve_entry_path(match.path, source_root, path_mode))
        for match in matches
    ]


def render_playlist(
    matches: Sequence[Match],
    fmt: Union[str, PlaylistFormat],
    name: str,
    source_root: Union[str, Path],
    path_mode: Union[str, PathMode] = PathMode.RELATIVE,
) -> str:
    """Render matches, in the order given, as playlist text."""
    fmt = PlaylistFormat.parse(fmt)
    return fmt.serializer.render(build_entries(matches, source_root, path_mode), name)


def render_manifest(matches: Sequence[Match]) -> str:
    """One absolute source path per line, in match order."""
    return "".join(f"{match.path}\n" for match in matches)


def _atomic_write_text(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_playlist(
    matches: Sequence[Match],
    output_dir: Union[str, Path],
    fmt: Union[str, PlaylistFormat],
    name: str,
    source_root: Union[str, Path],
    path_mode: Union[str, PathMode] = PathMode.RELATIVE,
) -> Path:
    """
    Write ``<name><ext>`` and ``<name>-FullPaths.txt`` into ``output_dir``.

    Both documents are rendered before the first write.

    Returns:
        Path: The playlist file written.

    Raises:
        OSError: If ``output_dir`` cannot be created or written.
        ValueError: If the format or path mode is unknown.
    """
    fmt = PlaylistFormat.parse(fmt)
    playlist_text = render_playlist(matches, fmt, name, source_root, path_mode)
    manifest_text = render_manifest(matches)

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    playlist_path = output_dir / f"{name}{fmt.extension}"
    manifest_path = output_dir / f"{name}{MANIFEST_SUFFIX}"

    _atomic_write_text(playlist_path, playlist_text)
    _atomic_write_text(manifest_path, manifest_text)
    logger.info("Wrote %d entries to %s (manifest %s)", len(matches), playlist_path, manifest_path)
    return playlist_path
