"""Tests for the speaker playback controller."""

from __future__ import annotations

import asyncio

import pytest

from tz_sonos.errors import PlaybackActiveError
from tz_sonos.host import PlayerCapability, Track
from tz_sonos.services.playback_controller import SonosPlaybackController


def _run(coro):
    return asyncio.run(coro)


TRACK = Track("file", "/music/song.mp3")


def test_start_pins_default_speaker_and_signals_started(
    config, runner, notifier
) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner, notifier=notifier)
        await controller.start(TRACK)
        assert runner.calls == [("play_file", ("/music/song.mp3",), "Kitchen")]
        assert controller.status == "playing"
        assert controller.session is not None
        assert controller.session.pinned_speaker == "Kitchen"
        assert notifier.started == [(controller, TRACK)]
        await controller.shutdown()

    _run(run())


def test_control_actions_use_pinned_speaker_after_default_changes(
    config, runner
) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.start(TRACK)
        config.default_speaker = "Office"
        await controller.pause()
        assert controller.status == "paused"
        await controller.resume()
        assert controller.status == "playing"
        await controller.seek(15)
        await controller.seek_to(90)
        await controller.stop()
        await controller.shutdown()
        assert runner.calls[1:] == [
            ("pause", (), "Kitchen"),
            ("play", (), "Kitchen"),
            ("seek_forward", ("15",), "Kitchen"),
            ("seek", ("90",), "Kitchen"),
            ("stop", (), "Kitchen"),
        ]

    _run(run())


@pytest.mark.parametrize(
    ("offset", "expected"),
    [
        (10, ("seek_forward", ("10",))),
        (-7, ("seek_back", ("7",))),
        (0, ("seek_forward", ("0",))),
    ],
)
def test_seek_direction_follows_offset_sign(config, runner, offset, expected) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.seek(offset)
        await controller.shutdown()

    _run(run())
    action, args, _speaker = runner.calls[0]
    assert (action, args) == expected


def test_stop_twice_kills_and_stops_only_once(config, runner, notifier) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner, notifier=notifier)
        await controller.start(TRACK)
        play_process = runner.processes[0]
        watcher = controller.session.watcher
        await controller.stop()
        await controller.stop()
        await watcher
        await controller.shutdown()
        assert play_process.kill_count == 1
        assert runner.actions().count("stop") == 1
        assert controller.status == "stopped"
        assert notifier.ended == 0
        assert controller.last_exit_status is None

    _run(run())


def test_stop_without_session_is_noop(config, runner) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.stop()
        await controller.shutdown()

    _run(run())
    assert runner.calls == []


def test_process_exit_notifies_track_end_once(config, runner, notifier) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner, notifier=notifier)
        await controller.start(TRACK)
        watcher = controller.session.watcher
        runner.processes[0].finish(0)
        await watcher
        assert notifier.ended == 1
        assert controller.session is None
        assert controller.last_exit_status == 0
        assert controller.status == "idle"
        # The session is gone, so a late stop neither kills nor stops.
        await controller.stop()
        await controller.shutdown()
        assert runner.actions() == ["play_file"]
        assert notifier.ended == 1

    _run(run())


def test_failed_playback_exit_is_logged_and_still_notifies(
    config, runner, notifier, caplog
) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner, notifier=notifier)
        await controller.start(TRACK)
        watcher = controller.session.watcher
        runner.processes[0].finish(1)
        await watcher
        assert controller.last_exit_status == 1
        await controller.shutdown()

    _run(run())
    assert notifier.ended == 1
    assert any("ended with status 1" in record.message for record in caplog.records)


def test_second_start_is_rejected_without_orphaning_process(config, runner) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.start(TRACK)
        with pytest.raises(PlaybackActiveError):
            await controller.start(Track("file", "/music/other.mp3"))
        assert runner.actions() == ["play_file"]
        await controller.shutdown()

    _run(run())


def test_restart_after_stop_pins_new_default(config, runner) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.start(TRACK)
        await controller.stop()
        config.default_speaker = "Office"
        await controller.start(TRACK)
        await controller.pause()
        await controller.shutdown()

    _run(run())
    assert runner.calls[-3:] == [
        ("play_file", ("/music/song.mp3",), "Office"),
        ("pause", (), "Office"),
        ("stop", (), "Office"),
    ]


def test_pause_when_idle_goes_to_default_speaker(config, runner) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.pause()
        await controller.shutdown()
        assert controller.status == "idle"

    _run(run())
    assert runner.calls == [("pause", (), "Kitchen")]


def test_change_volume_keeps_sign(config, runner) -> None:
    async def run() -> None:
        controller = SonosPlaybackController(config, runner=runner)
        await controller.change_volume(-5)
        await controller.change_volume(3)
        await controller.shutdown()

    _run(run())
    assert runner.calls == [
        ("relative_volume", ("-5",), "Kitchen"),
        ("relative_volume", ("3",), "Kitchen"),
    ]


@pytest.mark.parametrize(
    ("track", "expected"),
    [
        (Track("file", "/music/a.mp3"), True),
        (Track("file", "/music/B.FLAC"), True),
        (Track("file", "/music/c.aif"), True),
        (Track("file", "/music/notes.txt"), False),
        (Track("url", "http://radio.example/stream.mp3"), False),
    ],
)
def test_playable_matches_file_type_and_extension(config, runner, track, expected):
    controller = SonosPlaybackController(config, runner=runner)
    assert controller.playable(track) is expected


def test_playable_false_when_executable_missing(config, make_runner) -> None:
    controller = SonosPlaybackController(
        config, runner=make_runner(config, executable=None)
    )
    assert controller.playable(TRACK) is False


def test_capabilities_cover_optional_transport(config, runner) -> None:
    controller = SonosPlaybackController(config, runner=runner)
    assert controller.capabilities == {
        PlayerCapability.PAUSE,
        PlayerCapability.RESUME,
        PlayerCapability.SEEK,
        PlayerCapability.SEEK_TO,
    }
