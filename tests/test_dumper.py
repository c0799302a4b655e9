import subprocess
from pathlib import Path

import pytest

import evt_defs.dumper as dumper
from evt_defs.dumper import ExternalDumper
from evt_defs.exceptions import DumperNotFoundError, DumpError


@pytest.fixture
def tool(tmp_path: Path) -> Path:
    path = tmp_path / "MessageDump.exe"
    path.write_bytes(b"MZ")
    return path


def _raise_not_found(executable: str) -> str:
    raise DumperNotFoundError(executable)


def test_missing_tool_fails_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(dumper, "check_dumper_available", _raise_not_found)

    with pytest.raises(DumperNotFoundError):
        ExternalDumper("MessageDump.exe")


def test_dump_returns_output_lines(tool: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def fake_run(command, **kwargs):
        captured["command"] = command
        captured["kwargs"] = kwargs
        stdout = "ID 0x00000001 (1) Language: 0409\r\nHello\r\n"
        return subprocess.CompletedProcess(command, 0, stdout=stdout, stderr="")

    monkeypatch.setattr(dumper.subprocess, "run", fake_run)

    lines = ExternalDumper(str(tool), timeout=30)("c:\\msgs.dll")

    assert lines == ["ID 0x00000001 (1) Language: 0409", "Hello"]
    assert captured["command"] == [str(tool), "c:\\msgs.dll"]
    assert captured["kwargs"]["timeout"] == 30
    assert captured["kwargs"]["check"] is True


def test_tool_failure_raises_dump_error(tool: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(command, **kwargs):
        raise subprocess.CalledProcessError(2, command, stderr="no message table\n")

    monkeypatch.setattr(dumper.subprocess, "run", fake_run)

    with pytest.raises(DumpError) as excinfo:
        ExternalDumper(str(tool))("c:\\nomsgs.dll")

    assert excinfo.value.return_code == 2
    assert excinfo.value.stderr == "no message table"


def test_tool_timeout_raises_dump_error(tool: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr(dumper.subprocess, "run", fake_run)

    with pytest.raises(DumpError, match="timed out"):
        ExternalDumper(str(tool), timeout=1)("c:\\slow.dll")
