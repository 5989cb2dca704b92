"""Toggle that makes the speaker controller the host's preferred player.

Enabling snapshots the host's player list, preference hook and volume hook,
then installs the controller in all three. Disabling puts the snapshotted
objects back verbatim.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from tz_sonos.host import (
    MediaHost,
    PlayerEntry,
    PreferenceFunction,
    Track,
    VolumeChangeFunction,
)
from tz_sonos.services.playback_controller import SonosPlaybackController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostSnapshot:
    """Host hook values captured by `PreferenceIntegrator.enable`."""

    players: list[PlayerEntry]
    player_preference: PreferenceFunction | None
    volume_change: VolumeChangeFunction | None


class PreferenceIntegrator:
    """Installs and reverts the controller's host integration."""

    def __init__(self, host: MediaHost, controller: SonosPlaybackController) -> None:
        self._host = host
        self._controller = controller
        self._snapshot: HostSnapshot | None = None

    @property
    def enabled(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> HostSnapshot | None:
        return self._snapshot

    def enable(self) -> None:
        """Install the controller; a second call while enabled does nothing."""
        if self._snapshot is not None:
            logger.warning("Speaker integration already enabled; keeping snapshot.")
            return
        host = self._host
        snapshot = HostSnapshot(
            players=host.players,
            player_preference=host.player_preference,
            volume_change=host.volume_change,
        )
        self._snapshot = snapshot
        host.players = [self._controller, *snapshot.players]
        host.player_preference = self._make_preference(snapshot.player_preference)
        host.volume_change = self._controller.change_volume
        logger.info("Speaker integration enabled")

    def disable(self) -> None:
        """Restore the host values captured by the last `enable`."""
        snapshot = self._snapshot
        if snapshot is None:
            return
        self._host.players = snapshot.players
        self._host.player_preference = snapshot.player_preference
        self._host.volume_change = snapshot.volume_change
        self._snapshot = None
        logger.info("Speaker integration disabled")

    def toggle(self) -> bool:
        """Flip the integration state and return whether it is now enabled."""
        if self.enabled:
            self.disable()
        else:
            self.enable()
        return self.enabled

    def _make_preference(
        self, previous: PreferenceFunction | None
    ) -> PreferenceFunction:
        controller = self._controller

        def prefer_speakers(
            track: Track, candidates: Sequence[PlayerEntry]
        ) -> PlayerEntry:
            if any(candidate is controller for candidate in candidates):
                return controller
            if previous is not None:
                return previous(track, candidates)
            return candidates[0]

        return prefer_speakers
