import functools
from pathlib import Path

import pytest

import evt_defs.cli as cli
import evt_defs.pipeline as pipeline
from evt_defs.cli import main
from evt_defs.exceptions import DumperNotFoundError
from evt_defs.providers import EventDefinition, ProviderMetadata


def test_cli_help_exits_zero() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--help"])
    assert excinfo.value.code == 0


def test_cli_version_exits_zero() -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["--version"])
    assert excinfo.value.code == 0


def test_cli_without_command_fails() -> None:
    assert main([]) == 1


def test_missing_dumper_aborts_before_scanning(monkeypatch: pytest.MonkeyPatch) -> None:
    def missing_dumper(executable, timeout=None):
        raise DumperNotFoundError(executable)

    def no_scan():
        raise AssertionError("registry must not be opened")

    monkeypatch.setattr(cli, "ExternalDumper", missing_dumper)
    monkeypatch.setattr(cli, "WinregStore", no_scan)

    assert main(["sources", "-q", "--dumper", "missing.exe"]) == 1


def test_sources_command_writes_tsv(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, make_store, make_dumper
) -> None:
    store = make_store({"Application": {"MySvc": {"EventMessageFile": "C:\\msgs.dll"}}})
    dumper = make_dumper(
        {
            "c:\\msgs.dll": [
                "ID 0x40000001 (1073741825) Language: 0409",
                "Started",
                "ID 0x40000002 (1073741826) Language: 0409",
                "Stopped",
            ]
        }
    )
    monkeypatch.setattr(cli, "ExternalDumper", lambda executable, timeout=None: dumper)
    monkeypatch.setattr(cli, "WinregStore", lambda: store)
    monkeypatch.setattr(
        cli,
        "extract_source_messages",
        functools.partial(pipeline.extract_source_messages, path_exists=lambda path: True),
    )

    output = tmp_path / "sources.tsv"
    exit_code = main(["sources", "-q", "-o", str(output), "--include-last-block"])

    assert exit_code == 0
    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert lines[2].endswith("\tStopped")


def test_providers_command_writes_tsv(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    class Enumerator:
        def __init__(self, timeout=None):
            pass

        def list_provider_names(self, pattern="*"):
            return ["Contoso"]

        def get_provider(self, name):
            return ProviderMetadata(name, events=[EventDefinition(id=4, version=1)])

    monkeypatch.setattr(cli, "WevtutilProviderEnumerator", Enumerator)

    output = tmp_path / "providers.tsv"
    exit_code = main(["providers", "-q", "-o", str(output), "--filter", "Contoso"])

    assert exit_code == 0
    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[1].split("\t")[:5] == ["Contoso", "4", "1", "ETW", "UnDefined"]


def test_rejects_non_positive_timeout() -> None:
    assert main(["providers", "--timeout", "0"]) == 1
