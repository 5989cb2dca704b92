"""JSON persistence for user settings that outlive a single CLI run.

Loading is tolerant of missing or corrupt files: the caller gets defaults plus
an optional notice instead of an aborted command.
"""

from __future__ import annotations

import json
import logging
from contextlib import suppress
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any
from uuid import uuid4

logger = logging.getLogger(__name__)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class SonosSettings:
    """Persisted settings.

    `default_speaker` is `None` when the user never picked one; `speakers` is
    the last discovery result, reused until an explicit refresh.
    """

    default_speaker: str | None = None
    log_level: str = "INFO"
    speakers: tuple[str, ...] = ()


def _coerce_settings(data: dict[str, Any]) -> SonosSettings:
    speaker = data.get("default_speaker")
    if not isinstance(speaker, str) or not speaker.strip():
        speaker = None
    level = data.get("log_level")
    if not isinstance(level, str) or level.upper() not in _LOG_LEVELS:
        level = "INFO"
    raw_speakers = data.get("speakers")
    speakers: tuple[str, ...] = ()
    if isinstance(raw_speakers, list):
        speakers = tuple(
            value for value in raw_speakers if isinstance(value, str) and value.strip()
        )
    return SonosSettings(
        default_speaker=speaker, log_level=level.upper(), speakers=speakers
    )


def load_settings_with_notice(path: Path) -> tuple[SonosSettings, str | None]:
    """Load settings and return an optional user-facing notice."""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug("Settings file missing at %s; using defaults.", path)
        return SonosSettings(), None
    except OSError as exc:
        logger.warning("Failed to read settings %s: %s; using defaults.", path, exc)
        return (
            SonosSettings(),
            "Settings were reset to defaults.\n"
            "Likely cause: settings file is unreadable due to permissions or IO issues.\n"
            f"Next step: verify access to '{path}' and retry.",
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Settings file at %s is invalid JSON; using defaults.", path)
        return (
            SonosSettings(),
            "Settings were reset to defaults.\n"
            "Likely cause: settings file is corrupt or partially written.\n"
            f"Next step: remove or repair '{path}' and retry.",
        )

    if not isinstance(data, dict):
        logger.warning("Settings file at %s is not a JSON object.", path)
        return (
            SonosSettings(),
            "Settings were reset to defaults.\n"
            "Likely cause: settings file format is invalid for this version.\n"
            f"Next step: remove '{path}' and retry.",
        )

    return _coerce_settings(data), None


def load_settings(path: Path) -> SonosSettings:
    """Load settings from disk, falling back to defaults."""
    settings, _notice = load_settings_with_notice(path)
    return settings


def save_settings(path: Path, settings: SonosSettings) -> None:
    """Persist settings atomically via write-then-replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
    payload = json.dumps(asdict(settings), indent=2, sort_keys=True)
    try:
        tmp_path.write_text(payload, encoding="utf-8")
        tmp_path.replace(path)
    finally:
        with suppress(OSError):
            tmp_path.unlink()
