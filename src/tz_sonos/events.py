"""Host-level events emitted to the `MediaHost` event sink."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tz_sonos.host import PlayerEntry, Track


@dataclass(frozen=True)
class PlayerStarted:
    """A player accepted a track and issued its start command."""

    player: PlayerEntry
    track: Track | None


@dataclass(frozen=True)
class TrackEnded:
    """The current track finished (its playback process exited)."""

    track: Track | None


@dataclass(frozen=True)
class DefaultSpeakerChanged:
    """The configured default speaker was replaced by a user selection."""

    previous: str
    current: str
