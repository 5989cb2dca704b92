"""Tests for environment diagnostics probes and report behavior."""

from __future__ import annotations

import types

import tz_sonos.doctor as doctor_module
from tz_sonos.runtime_config import SonosConfig


def test_run_doctor_fails_when_control_command_missing(monkeypatch) -> None:
    monkeypatch.setattr(
        doctor_module,
        "probe_executable",
        lambda name, command, **kwargs: _check(
            name, "missing" if name == "control" else "ok", kwargs["required"]
        ),
    )
    monkeypatch.setattr(
        doctor_module, "probe_textual", lambda: _check("textual", "ok", False)
    )

    report = doctor_module.run_doctor(SonosConfig())
    assert report.exit_code == 2


def test_run_doctor_allows_missing_optional_textual(monkeypatch) -> None:
    monkeypatch.setattr(
        doctor_module,
        "probe_executable",
        lambda name, command, **kwargs: _check(name, "ok", kwargs["required"]),
    )
    monkeypatch.setattr(
        doctor_module, "probe_textual", lambda: _check("textual", "missing", False)
    )

    report = doctor_module.run_doctor(SonosConfig(default_speaker="Kitchen"))
    assert report.exit_code == 0
    assert report.speaker == "Kitchen"


def test_probe_executable_missing(monkeypatch) -> None:
    monkeypatch.setattr(doctor_module.shutil, "which", lambda _name: None)
    check = doctor_module.probe_executable("control", "sonos", required=True)
    assert check.status == "missing"
    assert check.required is True
    assert check.hint == doctor_module.INSTALL_HINT


def test_probe_executable_nonzero_version_exit_is_error(monkeypatch) -> None:
    monkeypatch.setattr(doctor_module.shutil, "which", lambda _name: "/usr/bin/sonos")
    monkeypatch.setattr(
        doctor_module.subprocess,
        "run",
        lambda *args, **kwargs: types.SimpleNamespace(
            returncode=1,
            stdout="",
            stderr="sonos: broken install",
        ),
    )
    check = doctor_module.probe_executable("control", "sonos", required=True)
    assert check.status == "error"
    assert "exit=1" in check.detail
    assert "broken install" in check.detail


def test_probe_executable_ok_reports_version_line(monkeypatch) -> None:
    monkeypatch.setattr(doctor_module.shutil, "which", lambda _name: "/usr/bin/sonos")
    monkeypatch.setattr(
        doctor_module.subprocess,
        "run",
        lambda *args, **kwargs: types.SimpleNamespace(
            returncode=0, stdout="soco-cli version: 0.4.80\n", stderr=""
        ),
    )
    check = doctor_module.probe_executable("control", "sonos", required=True)
    assert check.status == "ok"
    assert check.detail == "soco-cli version: 0.4.80"


def test_probe_textual_ok(monkeypatch) -> None:
    fake = types.SimpleNamespace(__version__="9.9.9")
    monkeypatch.setattr(doctor_module.importlib, "import_module", lambda name: fake)
    check = doctor_module.probe_textual()
    assert check.status == "ok"
    assert "9.9.9" in check.detail


def test_render_report_includes_result_and_hint() -> None:
    report = doctor_module.DoctorReport(
        speaker="_all_",
        checks=[
            _check("textual", "ok", False),
            doctor_module.DoctorCheck(
                name="control",
                status="missing",
                required=True,
                detail="missing",
                hint="install soco-cli",
            ),
        ],
    )
    text = doctor_module.render_report(report)
    assert "speaker=_all_" in text
    assert "Result: FAIL" in text
    assert "install soco-cli" in text


def _check(name: str, status: str, required: bool) -> doctor_module.DoctorCheck:
    return doctor_module.DoctorCheck(
        name=name,
        status=status,  # type: ignore[arg-type]
        required=required,
        detail="detail",
    )
