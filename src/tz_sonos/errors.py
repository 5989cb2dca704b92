"""Exception hierarchy shared by the control, discovery and host layers."""

from __future__ import annotations


class SonosError(Exception):
    """Base class for tz-sonos failures."""


class SonosConfigError(SonosError):
    """Configured tooling is unusable (missing executable, bad settings)."""


class SonosCommandNotFoundError(SonosConfigError):
    """An external executable could not be located on PATH."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Executable not found on PATH: {command!r}")
        self.command = command


class SonosSpawnError(SonosError):
    """The OS refused to launch an external process."""


class PlaybackActiveError(SonosError):
    """`start` was requested while a playback session is still live."""


class DiscoveryError(SonosError):
    """Speaker discovery command failed or timed out."""


class DiscoveryParseError(DiscoveryError):
    """Discovery output did not match the expected tabular layout."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"{message} (line {line_number})"
        super().__init__(message)
        self.line_number = line_number


class UnsupportedCapabilityError(SonosError):
    """A player was asked to perform an operation it does not declare."""


def format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    """Render a three-part user-facing error message."""
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message


class NoPlayerError(SonosError):
    """No registered player accepts the requested track."""
