"""
playlistsmith: build playlists from a song list and a local music library.

This package provides:
- A similarity score for comparing library metadata with (song, artist) queries.
- Metadata resolution via ffprobe or mutagen, falling back to folder and file names.
- A matcher that picks one best file per query using independent artist and title thresholds.
- M3U, PLS and WPL writers plus a manifest of absolute paths for copying.
"""

__version__ = "1.0.0"
