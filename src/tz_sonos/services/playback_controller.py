"""Playback controller driving speakers through the control utility.

The controller owns at most one playback session: the `play_file` process it
launched plus the speaker pinned when that session started. Every later
transport action for the session targets the pinned speaker, even if the
configured default changes mid-track. Process exit is observed by a watcher
task, which reports the end of the track to the host exactly once.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Literal

from tz_sonos.errors import PlaybackActiveError
from tz_sonos.host import PlaybackNotifier, PlayerCapability, Track
from tz_sonos.media_formats import is_supported_audio_file
from tz_sonos.runtime_config import SonosConfig
from tz_sonos.services.command_runner import (
    PAUSE,
    PLAY,
    PLAY_FILE,
    RELATIVE_VOLUME,
    SEEK,
    SEEK_BACK,
    SEEK_FORWARD,
    STOP,
    CommandRunner,
    format_seconds,
    stderr_summary,
)

logger = logging.getLogger(__name__)

PlaybackStatus = Literal["idle", "playing", "paused", "stopped"]

SONOS_CAPABILITIES = frozenset(
    {
        PlayerCapability.PAUSE,
        PlayerCapability.RESUME,
        PlayerCapability.SEEK,
        PlayerCapability.SEEK_TO,
    }
)


@dataclass
class PlaybackSession:
    """Live playback: the owned process and the speaker pinned at start."""

    track: Track
    process: asyncio.subprocess.Process
    pinned_speaker: str
    paused: bool = False
    watcher: asyncio.Task[None] | None = field(default=None, repr=False)


class SonosPlaybackController:
    """Host player entry that streams local files to networked speakers."""

    name = "sonos"

    def __init__(
        self,
        config: SonosConfig,
        *,
        runner: CommandRunner | None = None,
        notifier: PlaybackNotifier | None = None,
    ) -> None:
        self._config = config
        self._runner = runner or CommandRunner(config)
        self.notifier = notifier
        self._session: PlaybackSession | None = None
        self._status: PlaybackStatus = "idle"
        self._watchers: set[asyncio.Task[None]] = set()
        self._last_exit_status: int | None = None

    @property
    def capabilities(self) -> frozenset[PlayerCapability]:
        return SONOS_CAPABILITIES

    @property
    def last_exit_status(self) -> int | None:
        """Exit status of the last session that ended on its own."""
        return self._last_exit_status

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def session(self) -> PlaybackSession | None:
        return self._session

    @property
    def target_speaker(self) -> str:
        """Speaker control actions go to: pinned while playing, else default."""
        if self._session is not None:
            return self._session.pinned_speaker
        return self._config.default_speaker

    def playable(self, track: Track) -> bool:
        """Accept local audio files when the control executable is on PATH."""
        if track.type != "file":
            return False
        if not is_supported_audio_file(track.path, self._config.extensions):
            return False
        return self._runner.resolve_executable() is not None

    async def start(self, track: Track) -> None:
        if self._session is not None:
            raise PlaybackActiveError(
                f"Already playing {self._session.track.path!r}; stop it first."
            )
        speaker = self._config.default_speaker
        process = await self._runner.run(PLAY_FILE, [track.path], speaker=speaker)
        session = PlaybackSession(track=track, process=process, pinned_speaker=speaker)
        self._session = session
        self._status = "playing"
        watcher = asyncio.create_task(self._watch(session))
        session.watcher = watcher
        self._watchers.add(watcher)
        watcher.add_done_callback(self._watchers.discard)
        logger.info(
            "Playing %s on %s",
            track.path,
            speaker,
            extra={"pid": process.pid, "speaker": speaker},
        )
        if self.notifier is not None:
            await self.notifier.player_started(self, track)

    async def stop(self) -> None:
        """Kill the tracked process and tell the pinned speaker to stop."""
        session = self._session
        if session is None:
            return
        # Detach first so the watcher sees a foreign session and stays silent.
        self._session = None
        self._status = "stopped"
        if session.process.returncode is None:
            try:
                session.process.kill()
            except ProcessLookupError:
                pass
        logger.info("Stopping playback on %s", session.pinned_speaker)
        await self._runner.dispatch(STOP, speaker=session.pinned_speaker)

    async def pause(self) -> None:
        await self._control(PAUSE)
        if self._session is not None:
            self._session.paused = True
            self._status = "paused"

    async def resume(self) -> None:
        await self._control(PLAY)
        if self._session is not None:
            self._session.paused = False
            self._status = "playing"

    async def seek(self, offset_s: int) -> None:
        """Seek relative to the current position; negative goes back."""
        action = SEEK_BACK if offset_s < 0 else SEEK_FORWARD
        await self._control(action, format_seconds(offset_s))

    async def seek_to(self, position_s: int) -> None:
        await self._control(SEEK, format_seconds(position_s))

    async def change_volume(self, amount: int) -> None:
        """Raise or lower speaker volume by a signed amount."""
        await self._control(RELATIVE_VOLUME, str(int(amount)))

    async def shutdown(self) -> None:
        """Stop playback and wait for every launched process to be reaped."""
        await self.stop()
        if self._watchers:
            await asyncio.gather(*list(self._watchers), return_exceptions=True)
        await self._runner.drain()

    async def _control(self, action: str, *args: str) -> None:
        await self._runner.dispatch(action, args, speaker=self.target_speaker)

    async def _watch(self, session: PlaybackSession) -> None:
        _stdout, stderr = await session.process.communicate()
        returncode = session.process.returncode
        if self._session is not session:
            logger.debug(
                "Stopped playback process exited with status %s", returncode
            )
            return
        self._session = None
        self._status = "idle"
        self._last_exit_status = returncode
        if returncode:
            logger.warning(
                "Playback of %s ended with status %s: %s",
                session.track.path,
                returncode,
                stderr_summary(stderr) or "no output",
            )
        else:
            logger.info("Finished %s", session.track.path)
        if self.notifier is None:
            return
        try:
            await self.notifier.track_ended()
        except Exception:
            logger.exception("Track-ended notification failed")
