"""Runtime configuration for the control and discovery utilities.

Values come from built-in defaults, then environment overrides. The default
speaker has its own precedence chain, see `resolve_default_speaker`.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Mapping
from dataclasses import dataclass, field

from .media_formats import SONOS_AUDIO_EXTENSIONS, normalize_extensions

ALL_SPEAKERS = "_all_"
"""Sentinel speaker target addressing every known speaker."""

SPEAKER_ENV = "SPKR"
COMMAND_ENV = "TZ_SONOS_COMMAND"
DISCOVER_COMMAND_ENV = "TZ_SONOS_DISCOVER_COMMAND"
SHARED_PARAMETERS_ENV = "TZ_SONOS_SHARED_PARAMETERS"
DISCOVER_PARAMETERS_ENV = "TZ_SONOS_DISCOVER_PARAMETERS"
DISCOVER_TIMEOUT_ENV = "TZ_SONOS_DISCOVER_TIMEOUT_S"
EXTENSIONS_ENV = "TZ_SONOS_EXTENSIONS"

DEFAULT_COMMAND = "sonos"
DEFAULT_DISCOVER_COMMAND = "sonos-discover"
DEFAULT_DISCOVER_PARAMETERS = ("-p",)
_DEFAULT_DISCOVER_TIMEOUT_S = 30.0


@dataclass
class SonosConfig:
    """Mutable, process-wide settings read by the runner and directory."""

    command_name: str = DEFAULT_COMMAND
    discover_command_name: str = DEFAULT_DISCOVER_COMMAND
    shared_parameters: tuple[str, ...] = ()
    discover_parameters: tuple[str, ...] = DEFAULT_DISCOVER_PARAMETERS
    default_speaker: str = ALL_SPEAKERS
    extensions: frozenset[str] = field(default=SONOS_AUDIO_EXTENSIONS)
    discover_timeout_s: float = _DEFAULT_DISCOVER_TIMEOUT_S


def resolve_log_level(*, verbose: bool, quiet: bool, default: str = "INFO") -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose, and both
    override the persisted default.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return default


def resolve_default_speaker(
    *,
    flag: str | None = None,
    env: Mapping[str, str] | None = None,
    persisted: str | None = None,
) -> str:
    """Pick the default speaker: CLI flag, then `SPKR`, then saved, then all."""
    values = os.environ if env is None else env
    for candidate in (flag, values.get(SPEAKER_ENV), persisted):
        if candidate is not None and candidate.strip():
            return candidate.strip()
    return ALL_SPEAKERS


def load_config(env: Mapping[str, str] | None = None) -> SonosConfig:
    """Build a `SonosConfig` from defaults and environment overrides."""
    values = os.environ if env is None else env
    config = SonosConfig(default_speaker=resolve_default_speaker(env=values))
    command = values.get(COMMAND_ENV, "").strip()
    if command:
        config.command_name = command
    discover_command = values.get(DISCOVER_COMMAND_ENV, "").strip()
    if discover_command:
        config.discover_command_name = discover_command
    shared = _split_parameters(values.get(SHARED_PARAMETERS_ENV))
    if shared is not None:
        config.shared_parameters = shared
    discover = _split_parameters(values.get(DISCOVER_PARAMETERS_ENV))
    if discover is not None:
        config.discover_parameters = discover
    raw_extensions = values.get(EXTENSIONS_ENV, "").strip()
    if raw_extensions:
        extensions = normalize_extensions(raw_extensions.replace(",", " ").split())
        if extensions:
            config.extensions = extensions
    config.discover_timeout_s = _parse_timeout_s(values.get(DISCOVER_TIMEOUT_ENV))
    return config


def _split_parameters(raw: str | None) -> tuple[str, ...] | None:
    """Shell-split an env override; unset returns None, set-but-empty clears."""
    if raw is None:
        return None
    try:
        return tuple(shlex.split(raw, posix=(os.name != "nt")))
    except ValueError:
        return None


def _parse_timeout_s(raw: str | None) -> float:
    if raw is None:
        return _DEFAULT_DISCOVER_TIMEOUT_S
    try:
        parsed = float(raw)
    except ValueError:
        return _DEFAULT_DISCOVER_TIMEOUT_S
    return max(0.5, parsed)
