"""Tests for playlist entry path resolution."""

from __future__ import annotations

import pytest

from playlistsmith.paths import PathMode, resolve_entry_path


def test_relative_strips_root_and_separators() -> None:
    assert resolve_entry_path("/music/Queen/Innuendo.mp3", "/music", PathMode.RELATIVE) == "Queen/Innuendo.mp3"
    assert resolve_entry_path("/music/Queen/Innuendo.mp3", "/music/", "relative") == "Queen/Innuendo.mp3"


def test_relative_prefix_is_case_insensitive() -> None:
    assert resolve_entry_path(r"C:\Music\Queen\x.mp3", r"c:\music", "relative") == r"Queen\x.mp3"


def test_relative_outside_root_stays_absolute() -> None:
    assert resolve_entry_path("/other/Queen/x.mp3", "/music", "relative") == "/other/Queen/x.mp3"


def test_relative_requires_path_boundary() -> None:
    assert resolve_entry_path("/music2/x.mp3", "/music", "relative") == "/music2/x.mp3"


def test_absolute_is_unchanged() -> None:
    assert resolve_entry_path("/music/Queen/x.mp3", "/music", PathMode.ABSOLUTE) == "/music/Queen/x.mp3"


def test_path_mode_parse() -> None:
    assert PathMode.parse(" Absolute ") is PathMode.ABSOLUTE
    assert PathMode.parse(PathMode.RELATIVE) is PathMode.RELATIVE
    with pytest.raises(ValueError):
        PathMode.parse("sideways")


def test_relative_under_filesystem_root() -> None:
    assert resolve_entry_path("/music/x.mp3", "/", "relative") == "music/x.mp3"
    assert resolve_entry_path("\\music\\x.mp3", "\\", "relative") == "music\\x.mp3"
