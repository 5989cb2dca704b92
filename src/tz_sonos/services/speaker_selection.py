"""User-facing default speaker selection."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from tz_sonos.events import DefaultSpeakerChanged
from tz_sonos.runtime_config import SonosConfig
from tz_sonos.services.speaker_directory import SpeakerDirectory

logger = logging.getLogger(__name__)

SpeakerChooser = Callable[[Sequence[str], str], Awaitable[str | None]]
"""Async prompt receiving `(speakers, current_default)`; `None` cancels."""


async def select_default_speaker(
    config: SonosConfig,
    directory: SpeakerDirectory,
    choose: SpeakerChooser,
    *,
    refresh: bool = False,
    emit_event: Callable[[object], Awaitable[None]] | None = None,
) -> str | None:
    """Prompt with known speakers and make the choice the new default.

    Returns the chosen speaker, or `None` when the prompt was cancelled.
    """
    if refresh:
        speakers = await directory.refresh_async()
    else:
        speakers = await directory.get_async()
    choice = await choose(speakers, config.default_speaker)
    if choice is None:
        logger.info("Speaker selection cancelled")
        return None
    if choice not in speakers:
        raise ValueError(f"Speaker {choice!r} is not in the discovered list")
    previous = config.default_speaker
    config.default_speaker = choice
    logger.info("Default speaker changed from %s to %s", previous, choice)
    if emit_event is not None:
        await emit_event(DefaultSpeakerChanged(previous=previous, current=choice))
    return choice
