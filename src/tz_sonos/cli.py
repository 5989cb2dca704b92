"""Command-line interface for tz-sonos.

`play` runs a full host session in-process: the speaker controller is
registered through the preference integration and tracks are played one after
another until each playback process exits. The other transport commands are
one-shot invocations against the configured default speaker. They share no
state with a `play` running in another process, so after the default changes
they no longer reach the speaker that session pinned; pass `--speaker` to
target it.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

from . import __version__
from .doctor import render_report, run_doctor
from .errors import (
    DiscoveryError,
    NoPlayerError,
    SonosCommandNotFoundError,
    SonosError,
    format_user_error,
)
from .events import DefaultSpeakerChanged, TrackEnded
from .host import MediaHost, Track
from .logging_utils import setup_logging
from .paths import log_dir, settings_path
from .runtime_config import (
    SonosConfig,
    load_config,
    resolve_default_speaker,
    resolve_log_level,
)
from .services.command_runner import STOP, CommandRunner
from .services.playback_controller import SonosPlaybackController
from .services.preference_integrator import PreferenceIntegrator
from .services.speaker_directory import SpeakerDirectory
from .services.speaker_selection import select_default_speaker
from .settings_store import SonosSettings, load_settings_with_notice, save_settings
from .ui.speaker_picker import choose_speaker_with_textual
from .version import build_help_epilog

logger = logging.getLogger(__name__)

# Commands that draw a Textual screen must keep log output off the console.
_TUI_COMMANDS = frozenset({"select-speaker"})


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tz-sonos",
        description="Play local audio files on networked speakers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=build_help_epilog(),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--speaker",
        help="Speaker name or address for this run (default: SPKR or saved choice).",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    play = commands.add_parser("play", help="Play audio files in order.")
    play.add_argument("files", nargs="+", help="Local audio files.")
    commands.add_parser("stop", help="Stop playback on the speaker.")
    commands.add_parser("pause", help="Pause playback on the speaker.")
    commands.add_parser("resume", help="Resume playback on the speaker.")
    seek = commands.add_parser("seek", help="Seek by a signed number of seconds.")
    seek.add_argument("seconds", type=int)
    seek_to = commands.add_parser("seek-to", help="Seek to an absolute position.")
    seek_to.add_argument("seconds", type=_non_negative_int)
    volume = commands.add_parser("volume", help="Change volume by a signed amount.")
    volume.add_argument("amount", type=int)
    speakers = commands.add_parser("speakers", help="List known speakers.")
    speakers.add_argument(
        "--refresh", action="store_true", help="Re-run discovery first."
    )
    select = commands.add_parser(
        "select-speaker", help="Pick the default speaker interactively."
    )
    select.add_argument(
        "--refresh", action="store_true", help="Re-run discovery first."
    )
    commands.add_parser("doctor", help="Check external tool readiness.")
    return parser


def _non_negative_int(raw: str) -> int:
    value = int(raw)
    if value < 0:
        raise argparse.ArgumentTypeError("must be >= 0")
    return value


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    log_path: Path | None = None
    try:
        settings_file = settings_path()
        settings, notice = load_settings_with_notice(settings_file)
        level = resolve_log_level(
            verbose=args.verbose, quiet=args.quiet, default=settings.log_level
        )
        log_path = setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
            console=args.command not in _TUI_COMMANDS,
        )
        if notice:
            print(notice, file=sys.stderr)
        config = load_config()
        config.default_speaker = resolve_default_speaker(
            flag=args.speaker, persisted=settings.default_speaker
        )
        logger.debug(
            "Running %s", args.command, extra={"speaker": config.default_speaker}
        )
        return asyncio.run(_dispatch(args, config, settings, settings_file))
    except KeyboardInterrupt:
        return 130
    except SonosCommandNotFoundError as exc:
        print(
            format_user_error(
                what_failed="Speaker command could not be started.",
                likely_cause=f"'{exc.command}' is not installed or not on PATH.",
                next_step="Install SoCo-CLI or set TZ_SONOS_COMMAND, then run "
                "`tz-sonos doctor`.",
            ),
            file=sys.stderr,
        )
        return 1
    except DiscoveryError as exc:
        print(
            format_user_error(
                what_failed="Speaker discovery failed.",
                likely_cause="Discovery output was unexpected or no speakers answered.",
                next_step="Run the discovery command by hand and check its output.",
                detail=str(exc),
            ),
            file=sys.stderr,
        )
        return 1
    except SonosError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:
        logger.exception("Unhandled error: %s", exc)
        print("Unexpected error. Re-run with --verbose for details.", file=sys.stderr)
        if log_path is not None:
            print(f"Log file: {log_path}", file=sys.stderr)
        return 1


async def _dispatch(
    args: argparse.Namespace,
    config: SonosConfig,
    settings: SonosSettings,
    settings_file: Path,
) -> int:
    command = args.command
    if command == "play":
        return await play_files(config, args.files)
    if command == "doctor":
        report = run_doctor(config)
        print(render_report(report))
        return report.exit_code
    if command in {"speakers", "select-speaker"}:
        directory = SpeakerDirectory(config, cached=settings.speakers)
        if command == "speakers":
            speakers = directory.refresh() if args.refresh else directory.get()
            for speaker in speakers:
                marker = "*" if speaker == config.default_speaker else " "
                print(f"{marker} {speaker}")
            save_settings(settings_file, replace(settings, speakers=tuple(speakers)))
            return 0
        choice = await select_default_speaker(
            config,
            directory,
            choose_speaker_with_textual,
            refresh=args.refresh,
            emit_event=_report_speaker_change,
        )
        save_settings(
            settings_file,
            replace(
                settings,
                default_speaker=choice or settings.default_speaker,
                speakers=tuple(directory.cached),
            ),
        )
        return 0 if choice is not None else 1
    return await run_control(config, command, args)


async def _report_speaker_change(event: object) -> None:
    if isinstance(event, DefaultSpeakerChanged):
        print(f"Default speaker: {event.current} (was {event.previous})")


async def run_control(
    config: SonosConfig, command: str, args: argparse.Namespace
) -> int:
    """Issue one transport command to the default speaker and wait for it."""
    runner = CommandRunner(config)
    controller = SonosPlaybackController(config, runner=runner)
    if command == "stop":
        await runner.dispatch(STOP, speaker=config.default_speaker)
    elif command == "pause":
        await controller.pause()
    elif command == "resume":
        await controller.resume()
    elif command == "seek":
        await controller.seek(args.seconds)
    elif command == "seek-to":
        await controller.seek_to(args.seconds)
    elif command == "volume":
        await controller.change_volume(args.amount)
    else:
        raise ValueError(f"Unknown command: {command}")
    await runner.drain()
    return 0


async def play_files(config: SonosConfig, files: Sequence[str]) -> int:
    """Play `files` back to back through a host with the speaker integration."""
    track_done = asyncio.Event()

    async def on_event(event: object) -> None:
        if isinstance(event, TrackEnded):
            track_done.set()

    host = MediaHost(emit_event=on_event)
    controller = SonosPlaybackController(config, notifier=host)
    integrator = PreferenceIntegrator(host, controller)
    integrator.enable()
    skipped = 0
    failed = 0
    try:
        for raw in files:
            track = Track("file", str(Path(raw).expanduser().resolve()))
            track_done.clear()
            try:
                await host.play(track)
            except NoPlayerError:
                logger.warning("Skipping unsupported or unplayable file %s", raw)
                skipped += 1
                continue
            print(f"Playing {track.path} on {config.default_speaker}")
            await track_done.wait()
            if controller.last_exit_status:
                failed += 1
    finally:
        await controller.shutdown()
        integrator.disable()
    return 1 if skipped or failed else 0
