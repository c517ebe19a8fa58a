"""Tests for library scanning and the per-run metadata index."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from playlistsmith.library import AudioFile, LibraryIndex, iter_library, scan_audio_files
from playlistsmith.metadata import Metadata


def _rel(root: Path, files) -> list[str]:
    return [Path(f.path).relative_to(root).as_posix() for f in files]


def test_scan_recurses_and_filters_extensions(make_library) -> None:
    root = make_library(
        "A/one.flac",
        "A/cover.jpg",
        "B/C/two.mp3",
        "notes.txt",
        "three.wav",
        "four.aac",
        "five.ogg",
        "six.wma",
        "seven.m4a",
    )
    found = _rel(root, scan_audio_files(root))
    assert found == ["five.ogg", "four.aac", "six.wma", "three.wav", "A/one.flac", "B/C/two.mp3"]


def test_scan_extension_match_is_case_insensitive(make_library) -> None:
    root = make_library("Loud.MP3", "Quiet.Flac")
    files = list(scan_audio_files(root))
    assert [f.extension for f in files] == [".mp3", ".flac"]


def test_scan_skips_appledouble_files(make_library) -> None:
    root = make_library("A/._song.mp3", "A/song.mp3")
    assert _rel(root, scan_audio_files(root)) == ["A/song.mp3"]


def test_scan_order_is_lexical(make_library) -> None:
    root = make_library("b/2.mp3", "a/2.mp3", "a/1.mp3", "c.mp3")
    assert _rel(root, scan_audio_files(root)) == ["c.mp3", "a/1.mp3", "a/2.mp3", "b/2.mp3"]


def test_scan_is_restartable(make_library) -> None:
    root = make_library("x.mp3", "y/z.flac")
    assert list(scan_audio_files(root)) == list(scan_audio_files(root))


def test_scan_custom_extensions(make_library) -> None:
    root = make_library("a.mp3", "b.flac")
    assert _rel(root, scan_audio_files(root, {".FLAC"})) == ["b.flac"]


def test_scan_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        list(scan_audio_files(tmp_path / "nope"))


def test_scan_file_root_raises(tmp_path: Path) -> None:
    f = tmp_path / "song.mp3"
    f.touch()
    with pytest.raises(OSError):
        list(scan_audio_files(f))


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_scan_skips_broken_links(make_library) -> None:
    root = make_library("ok.mp3")
    try:
        os.symlink(root / "missing.mp3", root / "dangling.mp3")
    except OSError:
        pytest.skip("cannot create symlinks here")
    assert _rel(root, scan_audio_files(root)) == ["ok.mp3"]


def test_audio_file_from_path() -> None:
    audio = AudioFile.from_path("/music/A/Song.FLAC")
    assert audio.extension == ".flac"
    assert audio.path == str(Path("/music/A/Song.FLAC"))


def test_iter_library_pairs_files_with_metadata(make_library, path_resolver) -> None:
    root = make_library("Queen/Innuendo.flac")
    [(audio, metadata)] = list(iter_library(root, path_resolver))
    assert audio.path == str(root / "Queen" / "Innuendo.flac")
    assert metadata == Metadata("Queen", "Innuendo", "")


def test_index_resolves_each_file_once(make_library) -> None:
    root = make_library("A/1.mp3", "A/2.mp3")

    class Counting:
        calls = 0

        def resolve(self, path):
            Counting.calls += 1
            return Metadata("A", Path(path).stem)

    index = LibraryIndex.build(root, Counting())
    list(index)
    list(index)
    assert Counting.calls == 2
    assert len(index) == 2


def test_threaded_index_matches_sequential(make_library, path_resolver) -> None:
    root = make_library(*[f"Artist {i % 3}/Track {i:02d}.mp3" for i in range(20)])
    sequential = LibraryIndex.build(root, path_resolver).entries
    threaded = LibraryIndex.build(root, path_resolver, workers=4).entries
    assert threaded == sequential


def test_index_reports_progress(make_library, path_resolver) -> None:
    root = make_library("a.mp3", "b.mp3", "c.mp3")
    seen: list[str] = []
    LibraryIndex.build(root, path_resolver, on_resolved=lambda audio: seen.append(audio.path))
    assert len(seen) == 3


def test_scan_relative_root_yields_absolute_paths(make_library, tmp_path: Path, monkeypatch) -> None:
    make_library("Queen/Innuendo.flac", "Blur/Song 2.mp3")
    monkeypatch.chdir(tmp_path)
    paths = [audio.path for audio in scan_audio_files("library")]
    assert paths == [
        str(tmp_path / "library" / "Blur" / "Song 2.mp3"),
        str(tmp_path / "library" / "Queen" / "Innuendo.flac"),
    ]
