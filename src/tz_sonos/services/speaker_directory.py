"""Speaker discovery and the cached list of addressable targets.

The discovery utility prints a fixed five-line header, then one row per
speaker until the first blank line. Columns are separated by two or more
spaces and the first column is the identifier the control utility accepts.
"""

from __future__ import annotations

import logging
import re
import shlex
import shutil
import subprocess
from collections.abc import Sequence

from tz_sonos.errors import (
    DiscoveryError,
    DiscoveryParseError,
    SonosCommandNotFoundError,
)
from tz_sonos.runtime_config import ALL_SPEAKERS, SonosConfig
from tz_sonos.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)

DISCOVERY_HEADER_LINES = 5
_COLUMN_SEPARATOR = re.compile(r" {2,}")


def parse_discovery_output(
    text: str, *, header_lines: int = DISCOVERY_HEADER_LINES
) -> list[str]:
    """Parse discovery output into `[ALL_SPEAKERS, *identifiers]`.

    Raises `DiscoveryParseError` when the header is truncated or a data row
    does not split into at least an identifier and one more column.
    """
    lines = text.splitlines()
    if len(lines) < header_lines:
        raise DiscoveryParseError(
            f"Expected a {header_lines}-line header, got {len(lines)} lines"
        )
    speakers = [ALL_SPEAKERS]
    for line_number, line in enumerate(lines[header_lines:], start=header_lines + 1):
        row = line.strip()
        if not row:
            break
        fields = _COLUMN_SEPARATOR.split(row)
        if len(fields) < 2:
            raise DiscoveryParseError(
                f"Row has no column separated by two spaces: {row!r}",
                line_number=line_number,
            )
        speakers.append(fields[0])
    return speakers


class SpeakerDirectory:
    """Runs discovery and serves the cached speaker list."""

    def __init__(self, config: SonosConfig, *, cached: Sequence[str] = ()) -> None:
        self._config = config
        # A persisted list is only trusted when it has the sentinel-first shape.
        self._speakers: list[str] = (
            list(cached) if cached and cached[0] == ALL_SPEAKERS else []
        )

    @property
    def cached(self) -> list[str]:
        """Current cache without triggering discovery (may be empty)."""
        return list(self._speakers)

    def discovery_command(self) -> str:
        return shlex.join(
            [self._config.discover_command_name, *self._config.discover_parameters]
        )

    def list_speakers(self) -> list[str]:
        """Run discovery synchronously and parse it, bypassing the cache."""
        if shutil.which(self._config.discover_command_name) is None:
            raise SonosCommandNotFoundError(self._config.discover_command_name)
        command = self.discovery_command()
        logger.debug("Running speaker discovery: %s", command)
        try:
            proc = subprocess.run(
                command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self._config.discover_timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise DiscoveryError(
                f"Speaker discovery timed out after {self._config.discover_timeout_s:g}s"
            ) from exc
        output = proc.stdout or ""
        if proc.returncode != 0:
            first_line = output.strip().splitlines()[0] if output.strip() else ""
            raise DiscoveryError(
                f"Speaker discovery failed (exit={proc.returncode})"
                + (f": {first_line}" if first_line else "")
            )
        return parse_discovery_output(output)

    def refresh(self) -> list[str]:
        """Re-run discovery and replace the cache."""
        speakers = self.list_speakers()
        self._speakers = speakers
        logger.info("Discovered %d speaker(s)", len(speakers) - 1)
        return list(speakers)

    def get(self) -> list[str]:
        """Return cached speakers, discovering only when the cache is empty."""
        if not self._speakers:
            return self.refresh()
        return list(self._speakers)

    async def refresh_async(self) -> list[str]:
        return await run_blocking(self.refresh)

    async def get_async(self) -> list[str]:
        if not self._speakers:
            return await self.refresh_async()
        return list(self._speakers)
