"""Minimal media-host contracts the speaker adapter plugs into.

`MediaHost` plays the role of a generic playback framework: it holds the
ordered player list, the player-preference hook and the volume-change hook,
and exposes the "player started"/"track ended" sinks players report to.
Optional transport operations are gated by `PlayerCapability` declarations
rather than attribute probing.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Literal, Protocol, runtime_checkable

from .errors import NoPlayerError, UnsupportedCapabilityError
from .events import PlayerStarted, TrackEnded

logger = logging.getLogger(__name__)

TrackType = Literal["file", "url", "playlist", "streamlist"]


@dataclass(frozen=True)
class Track:
    """Host track value: a type tag plus the name the type refers to."""

    type: TrackType
    name: str

    @property
    def path(self) -> str:
        """File path (or URL) the track points at."""
        return self.name


class PlayerCapability(enum.Enum):
    """Optional transport operations a player may declare."""

    PAUSE = "pause"
    RESUME = "resume"
    SEEK = "seek"
    SEEK_TO = "seek_to"


@runtime_checkable
class PlayerEntry(Protocol):
    """Player registered in `MediaHost.players`.

    `pause`/`resume`/`seek`/`seek_to` are only called when the matching
    capability is present in `capabilities`.
    """

    @property
    def name(self) -> str: ...

    @property
    def capabilities(self) -> frozenset[PlayerCapability]: ...

    def playable(self, track: Track) -> bool: ...

    async def start(self, track: Track) -> None: ...

    async def stop(self) -> None: ...


class PlaybackNotifier(Protocol):
    """Sinks a player reports transport milestones to."""

    async def player_started(self, player: PlayerEntry, track: Track) -> None: ...

    async def track_ended(self) -> None: ...


PreferenceFunction = Callable[[Track, Sequence[PlayerEntry]], PlayerEntry]
VolumeChangeFunction = Callable[[int], Awaitable[None]]


async def _discard_event(event: object) -> None:
    del event


class MediaHost:
    """Owns the player registry and routes transport requests."""

    def __init__(
        self,
        *,
        players: Sequence[PlayerEntry] = (),
        emit_event: Callable[[object], Awaitable[None]] | None = None,
    ) -> None:
        self.players: list[PlayerEntry] = list(players)
        self.player_preference: PreferenceFunction | None = None
        self.volume_change: VolumeChangeFunction | None = None
        self.current_player: PlayerEntry | None = None
        self.current_track: Track | None = None
        self._emit_event = emit_event or _discard_event

    def candidate_players(self, track: Track) -> list[PlayerEntry]:
        """Return registered players that accept `track`, in list order."""
        return [player for player in self.players if player.playable(track)]

    def choose_player(self, track: Track) -> PlayerEntry | None:
        candidates = self.candidate_players(track)
        if not candidates:
            return None
        if self.player_preference is None:
            return candidates[0]
        return self.player_preference(track, candidates)

    async def play(self, track: Track) -> PlayerEntry:
        """Stop the current player, then start the preferred one for `track`."""
        player = self.choose_player(track)
        if player is None:
            raise NoPlayerError(f"No registered player can play {track.path!r}")
        await self.stop()
        self.current_track = track
        logger.info("Starting %s on player %s", track.path, player.name)
        await player.start(track)
        return player

    async def stop(self) -> None:
        player = self.current_player
        if player is None:
            return
        self.current_player = None
        await player.stop()

    async def pause(self) -> None:
        await self._require(PlayerCapability.PAUSE).pause()  # type: ignore[attr-defined]

    async def resume(self) -> None:
        await self._require(PlayerCapability.RESUME).resume()  # type: ignore[attr-defined]

    async def seek(self, offset_s: int) -> None:
        await self._require(PlayerCapability.SEEK).seek(offset_s)  # type: ignore[attr-defined]

    async def seek_to(self, position_s: int) -> None:
        await self._require(PlayerCapability.SEEK_TO).seek_to(position_s)  # type: ignore[attr-defined]

    async def change_volume(self, amount: int) -> None:
        if self.volume_change is None:
            raise UnsupportedCapabilityError("No volume-change handler installed.")
        await self.volume_change(amount)

    async def player_started(self, player: PlayerEntry, track: Track) -> None:
        self.current_player = player
        self.current_track = track
        await self._emit_event(PlayerStarted(player, track))

    async def track_ended(self) -> None:
        track = self.current_track
        self.current_player = None
        self.current_track = None
        await self._emit_event(TrackEnded(track))

    def _require(self, capability: PlayerCapability) -> PlayerEntry:
        player = self.current_player
        if player is None:
            raise UnsupportedCapabilityError(
                f"No active player to {capability.value}."
            )
        if capability not in player.capabilities:
            raise UnsupportedCapabilityError(
                f"Player {player.name} does not support {capability.value}."
            )
        return player
