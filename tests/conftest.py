"""Test configuration and shared fakes for the control layer."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import tz_sonos.services.speaker_directory as speaker_directory_module  # noqa: E402
from tz_sonos.runtime_config import SonosConfig  # noqa: E402
from tz_sonos.services.command_runner import PLAY_FILE, CommandRunner  # noqa: E402


class FakeProcess:
    """Stand-in for `asyncio.subprocess.Process` with a manual exit switch."""

    def __init__(self, pid: int) -> None:
        self.pid = pid
        self.returncode: int | None = None
        self.kill_count = 0
        self._exited = asyncio.Event()

    def finish(self, returncode: int = 0) -> None:
        if self.returncode is None:
            self.returncode = returncode
        self._exited.set()

    def kill(self) -> None:
        self.kill_count += 1
        self.finish(-9)

    async def communicate(self) -> tuple[bytes | None, bytes]:
        await self._exited.wait()
        return None, b""

    async def wait(self) -> int:
        await self._exited.wait()
        assert self.returncode is not None
        return self.returncode


class RecordingRunner(CommandRunner):
    """Runner that records invocations and hands out `FakeProcess` handles.

    Control commands exit immediately; `play_file` processes stay alive until
    a test finishes them, unless `finish_play` is set, in which case they exit
    at once with `play_returncode`.
    """

    def __init__(
        self,
        config: SonosConfig,
        *,
        executable: str | None = "/usr/bin/sonos",
        finish_play: bool = False,
        play_returncode: int = 0,
    ) -> None:
        super().__init__(config)
        self.calls: list[tuple[str, tuple[str, ...], str]] = []
        self.processes: list[FakeProcess] = []
        self._executable = executable
        self._finish_play = finish_play
        self._play_returncode = play_returncode

    def resolve_executable(self) -> str | None:
        return self._executable

    async def run(self, action: str, args: Sequence[str] = (), *, speaker: str):
        self.build_argv(action, args, speaker=speaker)
        self.calls.append((action, tuple(args), speaker))
        process = FakeProcess(pid=1000 + len(self.processes))
        if action != PLAY_FILE:
            process.finish(0)
        elif self._finish_play:
            process.finish(self._play_returncode)
        self.processes.append(process)
        return process

    def actions(self) -> list[str]:
        return [action for action, _args, _speaker in self.calls]


class RecordingNotifier:
    """Collects host notifications from a player."""

    def __init__(self) -> None:
        self.started: list[tuple[object, object]] = []
        self.ended = 0

    async def player_started(self, player, track) -> None:
        self.started.append((player, track))

    async def track_ended(self) -> None:
        self.ended += 1


@pytest.fixture
def config() -> SonosConfig:
    return SonosConfig(default_speaker="Kitchen")


@pytest.fixture
def runner(config: SonosConfig) -> RecordingRunner:
    return RecordingRunner(config)


@pytest.fixture(autouse=True)
def run_blocking_inline(monkeypatch: pytest.MonkeyPatch):
    """Run blocking discovery inline so tests never touch the IO thread pool."""

    async def _inline(func, /, *args, **kwargs):
        return func(*args, **kwargs)

    monkeypatch.setattr(speaker_directory_module, "run_blocking", _inline)


@pytest.fixture
def make_runner():
    """Factory for runners with non-default PATH or play-exit behavior."""
    return RecordingRunner


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
