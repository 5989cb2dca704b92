"""Audio file matching for tracks the speakers can be asked to play."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

SONOS_AUDIO_EXTENSIONS = frozenset(
    {
        ".aif",
        ".aiff",
        ".flac",
        ".m4a",
        ".mp3",
        ".mp4",
        ".ogg",
        ".wav",
        ".wma",
    }
)
"""Suffixes the control utility can stream to speakers via `play_file`."""


def normalize_extensions(values: Iterable[str]) -> frozenset[str]:
    """Normalize `mp3`/`.MP3` style entries to lower-case dotted suffixes."""
    normalized = set()
    for value in values:
        text = value.strip().lower()
        if not text:
            continue
        normalized.add(text if text.startswith(".") else f".{text}")
    return frozenset(normalized)


def is_supported_audio_file(
    path: Path | str, extensions: frozenset[str] = SONOS_AUDIO_EXTENSIONS
) -> bool:
    """Return whether path suffix is in the supported audio set."""
    return Path(path).suffix.lower() in extensions
