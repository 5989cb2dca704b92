"""Control-utility invocation building and asynchronous process launch.

Every control action becomes one OS process:
`command_name *shared_parameters speaker action *args`. The runner keeps no
state between calls beyond the reaper tasks of fire-and-forget dispatches.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Sequence

from tz_sonos.errors import SonosCommandNotFoundError, SonosSpawnError
from tz_sonos.runtime_config import SonosConfig

logger = logging.getLogger(__name__)

PLAY_FILE = "play_file"
STOP = "stop"
PAUSE = "pause"
PLAY = "play"
SEEK_FORWARD = "seek_forward"
SEEK_BACK = "seek_back"
SEEK = "seek"
RELATIVE_VOLUME = "relative_volume"

CONTROL_ACTIONS = frozenset(
    {PLAY_FILE, STOP, PAUSE, PLAY, SEEK_FORWARD, SEEK_BACK, SEEK, RELATIVE_VOLUME}
)
_STDERR_SUMMARY_CHARS = 240


def format_seconds(value: int | float) -> str:
    """Render a time argument as an unsigned base-10 integer."""
    return str(abs(int(value)))


def stderr_summary(stderr: bytes | None) -> str:
    """Return the last chunk of decoded stderr for log messages."""
    if not stderr:
        return ""
    text = stderr.decode("utf-8", errors="replace").strip()
    return text[-_STDERR_SUMMARY_CHARS:]


class CommandRunner:
    """Launches control-utility processes for a shared `SonosConfig`."""

    def __init__(self, config: SonosConfig) -> None:
        self._config = config
        self._reapers: set[asyncio.Task[int]] = set()

    @property
    def config(self) -> SonosConfig:
        return self._config

    @property
    def pending(self) -> int:
        """Number of dispatched commands whose exit has not been observed."""
        return len(self._reapers)

    def resolve_executable(self) -> str | None:
        """Return the control executable's resolved path, if it is on PATH."""
        return shutil.which(self._config.command_name)

    def build_argv(
        self, action: str, args: Sequence[str] = (), *, speaker: str
    ) -> list[str]:
        if action not in CONTROL_ACTIONS:
            raise ValueError(f"Unknown control action: {action!r}")
        if not speaker or not speaker.strip():
            raise ValueError("speaker must be a non-empty identifier")
        return [
            self._config.command_name,
            *self._config.shared_parameters,
            speaker,
            action,
            *(str(arg) for arg in args),
        ]

    async def run(
        self, action: str, args: Sequence[str] = (), *, speaker: str
    ) -> asyncio.subprocess.Process:
        """Launch one control invocation without waiting for it to finish."""
        argv = self.build_argv(action, args, speaker=speaker)
        logger.debug(
            "Launching control command %s",
            action,
            extra={"argv": argv, "speaker": speaker},
        )
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise SonosCommandNotFoundError(self._config.command_name) from exc
        except OSError as exc:
            raise SonosSpawnError(
                f"Failed to launch {self._config.command_name!r}: {exc}"
            ) from exc

    async def dispatch(
        self, action: str, args: Sequence[str] = (), *, speaker: str
    ) -> asyncio.subprocess.Process:
        """Fire-and-forget `run`; exit status is reaped and logged later."""
        process = await self.run(action, args, speaker=speaker)
        task = asyncio.create_task(self._reap(process, action, speaker))
        self._reapers.add(task)
        task.add_done_callback(self._reapers.discard)
        return process

    async def drain(self) -> None:
        """Wait until every dispatched command has exited."""
        while self._reapers:
            await asyncio.gather(*list(self._reapers), return_exceptions=True)

    async def _reap(
        self, process: asyncio.subprocess.Process, action: str, speaker: str
    ) -> int:
        _stdout, stderr = await process.communicate()
        returncode = process.returncode if process.returncode is not None else -1
        if returncode != 0:
            logger.warning(
                "Control command %s for %s exited with status %s: %s",
                action,
                speaker,
                returncode,
                stderr_summary(stderr) or "no output",
            )
        return returncode
