#!/usr/bin/env python3
"""
Centralized configuration for playlistsmith with env var overrides.
- User config file: ~/.config/playlistsmith/config.json
- Precedence: environment > user config file > built-in defaults
- Types exposed to the app:
  - SOURCE_ROOT: Path or None
  - DEST_ROOT: Path
  - ARTIST_THRESHOLD, SONG_THRESHOLD: int (0..100)
  - PLAYLIST_FORMAT: str (m3u, pls, wpl)
  - PATH_MODE: str (relative, absolute)
  - METADATA_BACKEND: str (ffprobe, mutagen, path)
  - PROBE_TIMEOUT: float seconds
  - WORKERS: int
  - CACHE_METADATA: bool
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict

from rich.console import Console

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "playlistsmith"
CONFIG_FILE = CONFIG_DIR / "config.json"

console = Console()

DEFAULTS: Dict[str, Any] = {
    "SOURCE_ROOT": "",
    "DEST_ROOT": ".",
    "ARTIST_THRESHOLD": 80,
    "SONG_THRESHOLD": 50,
    "PLAYLIST_FORMAT": "m3u",
    "PATH_MODE": "relative",
    "METADATA_BACKEND": "ffprobe",
    "PROBE_TIMEOUT": 10,
    "WORKERS": 1,
    "CACHE_METADATA": True,
}

ENV_MAP = {key: f"PSMITH_{key}" for key in DEFAULTS}

_INT_KEYS = ("ARTIST_THRESHOLD", "SONG_THRESHOLD", "WORKERS")
_THRESHOLD_KEYS = ("ARTIST_THRESHOLD", "SONG_THRESHOLD")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _load_user_file(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    if not config_file.exists():
        return {}
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable config file %s: %s", config_file, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring config file %s: expected a JSON object", config_file)
        return {}
    return {k: v for k, v in data.items() if k in DEFAULTS}


def _apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(cfg)
    for key, env_name in ENV_MAP.items():
        val = os.getenv(env_name)
        if val is not None:
            out[key] = val
    return out


def _to_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return default


def _coerce_types(eff: Dict[str, Any]) -> Dict[str, Any]:
    source = str(eff.get("SOURCE_ROOT") or "").strip()
    eff["SOURCE_ROOT"] = Path(source).expanduser() if source else None
    eff["DEST_ROOT"] = Path(str(eff.get("DEST_ROOT") or ".")).expanduser()

    for k in _INT_KEYS:
        try:
            eff[k] = int(eff[k])
        except (TypeError, ValueError):
            logger.warning("Invalid %s=%r, using default %s", k, eff[k], DEFAULTS[k])
            eff[k] = DEFAULTS[k]
    for k in _THRESHOLD_KEYS:
        if not 0 <= eff[k] <= 100:
            logger.warning("%s=%s is outside 0..100, using default %s", k, eff[k], DEFAULTS[k])
            eff[k] = DEFAULTS[k]
    eff["WORKERS"] = max(1, eff["WORKERS"])

    try:
        eff["PROBE_TIMEOUT"] = float(eff["PROBE_TIMEOUT"])
    except (TypeError, ValueError):
        eff["PROBE_TIMEOUT"] = float(DEFAULTS["PROBE_TIMEOUT"])

    for k in ("PLAYLIST_FORMAT", "PATH_MODE", "METADATA_BACKEND"):
        eff[k] = str(eff[k]).strip().lower()
    eff["CACHE_METADATA"] = _to_bool(eff["CACHE_METADATA"], DEFAULTS["CACHE_METADATA"])
    return eff


def load_config(config_file: Path = CONFIG_FILE) -> Dict[str, Any]:
    """Load effective config: env > file > defaults, coerced to expected types."""
    merged = DEFAULTS | _load_user_file(config_file)
    merged = _apply_env_overrides(merged)
    return _coerce_types(merged)


# Exposed module-level config used by the CLI
config = load_config()
