"""How a matched file's path is written into a playlist."""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Union

_SEPARATORS = "/\\"


class PathMode(str, Enum):
    ABSOLUTE = "absolute"
    RELATIVE = "relative"

    @classmethod
    def parse(cls, value: Union[str, "PathMode"]) -> "PathMode":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown path mode: {value} (expected one of: {', '.join(m.value for m in cls)})"
            ) from None


def resolve_entry_path(
    file_path: Union[str, Path], source_root: Union[str, Path], mode: Union[str, PathMode]
) -> str:
    """
    Return the string to write for ``file_path``.

    In relative mode a file under ``source_root`` (compared case-insensitively)
    loses the root prefix and any leading separators. Files outside the root
    keep their absolute path.
    """
    file_path = str(file_path)
    if PathMode.parse(mode) is PathMode.ABSOLUTE:
        return file_path

    root = str(source_root).rstrip(_SEPARATORS) or str(source_root)[:1]
    if not root:
        return file_path
    if not file_path.lower().startswith(root.lower()):
        return file_path

    remainder = file_path[len(root) :]
    # "/music" must not claim "/music2/track.mp3"
    if remainder and remainder[0] not in _SEPARATORS and root[-1] not in _SEPARATORS:
        return file_path
    return remainder.lstrip(_SEPARATORS)
