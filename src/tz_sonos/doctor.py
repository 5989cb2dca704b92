"""Runtime diagnostics for the control/discovery utilities and the picker UI."""

from __future__ import annotations

import importlib
import shutil
import subprocess
from dataclasses import dataclass
from typing import Literal

from .runtime_config import SonosConfig

DoctorStatus = Literal["ok", "missing", "error"]

INSTALL_HINT = "Install SoCo-CLI (pip install soco-cli) or set TZ_SONOS_COMMAND."


@dataclass(frozen=True)
class DoctorCheck:
    """One environment/tooling readiness check result."""

    name: str
    status: DoctorStatus
    required: bool
    detail: str
    hint: str | None = None


@dataclass(frozen=True)
class DoctorReport:
    """Collection of doctor checks and derived process exit contract."""

    speaker: str
    checks: list[DoctorCheck]

    @property
    def exit_code(self) -> int:
        """Return non-zero when any required check failed or is missing."""
        for check in self.checks:
            if check.required and check.status != "ok":
                return 2
        return 0


def run_doctor(config: SonosConfig) -> DoctorReport:
    """Run diagnostics against the effective configuration."""
    checks = [
        probe_executable("control", config.command_name, required=True),
        probe_executable("discovery", config.discover_command_name, required=True),
        probe_textual(),
    ]
    return DoctorReport(speaker=config.default_speaker, checks=checks)


def render_report(report: DoctorReport) -> str:
    """Render terminal-friendly diagnostics report text."""
    lines = [f"tz-sonos doctor (speaker={report.speaker})", ""]
    for check in report.checks:
        state = _status_token(check.status)
        req = "required" if check.required else "optional"
        lines.append(f"{state} {check.name:<10} [{req}] {check.detail}")
        if check.hint:
            lines.append(f"      hint: {check.hint}")
    lines.append("")
    lines.append("Result: OK" if report.exit_code == 0 else "Result: FAIL")
    return "\n".join(lines)


def probe_executable(name: str, command: str, *, required: bool) -> DoctorCheck:
    """Verify an external command is on PATH and answers `--version`."""
    resolved = shutil.which(command)
    if resolved is None:
        return DoctorCheck(
            name=name,
            status="missing",
            required=required,
            detail=f"{command!r} not found on PATH",
            hint=INSTALL_HINT,
        )
    try:
        proc = subprocess.run(
            [resolved, "--version"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        return DoctorCheck(
            name=name,
            status="error",
            required=required,
            detail=f"launch failed ({exc.__class__.__name__})",
            hint="Reinstall the tool and verify PATH.",
        )
    if proc.returncode != 0:
        stderr_first = proc.stderr.strip().splitlines()[0] if proc.stderr.strip() else ""
        return DoctorCheck(
            name=name,
            status="error",
            required=required,
            detail=f"{command} --version failed (exit={proc.returncode})"
            + (f": {stderr_first}" if stderr_first else ""),
            hint="Reinstall the tool and verify PATH.",
        )
    first_line = proc.stdout.strip().splitlines()[0] if proc.stdout.strip() else ""
    detail = first_line or f"found at {resolved}"
    return DoctorCheck(name=name, status="ok", required=required, detail=detail)


def probe_textual() -> DoctorCheck:
    """Verify the Textual picker dependency is importable."""
    try:
        module = importlib.import_module("textual")
    except Exception as exc:
        return DoctorCheck(
            name="textual",
            status="missing",
            required=False,
            detail=f"not importable ({exc.__class__.__name__})",
            hint="Install Python dependencies (pip install tz-sonos).",
        )
    version = getattr(module, "__version__", None)
    detail = f"importable ({version})" if version else "importable"
    return DoctorCheck(name="textual", status="ok", required=False, detail=detail)


def _status_token(status: DoctorStatus) -> str:
    if status == "ok":
        return "[OK]"
    if status == "missing":
        return "[MISS]"
    return "[ERR]"
