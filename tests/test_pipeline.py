from pathlib import Path
from typing import List

import pytest

from evt_defs.exceptions import ProviderEnumerationError, RegistryRootNotFoundError
from evt_defs.pipeline import (
    export_provider_events,
    export_source_messages,
    extract_provider_events,
    extract_source_messages,
)
from evt_defs.providers import EventDefinition, NamedItem, ProviderMetadata


def test_end_to_end_single_source(tmp_path: Path, make_store, make_dumper) -> None:
    store = make_store({"Application": {"MySvc": {"EventMessageFile": "C:\\msgs.dll"}}})
    dump = make_dumper(
        {
            "c:\\msgs.dll": [
                "ID 0x40000001 (1073741825) Language: 0409",
                "The service started.",
                "ID 0x40000002 (1073741826) Language: 0409",
            ]
        }
    )

    summary = extract_source_messages(
        store, dump, path_exists=lambda path: path == "c:\\msgs.dll"
    )

    assert summary.sources == 1
    assert summary.resource_files == 1
    assert len(summary.records) == 1
    record = summary.records[0]
    assert (record.channel, record.source, record.resource_file) == (
        "Application",
        "MySvc",
        "c:\\msgs.dll",
    )
    assert record.message_id == 1073741825
    assert record.message_id_hex == "0x40000001"
    assert record.language == "0409"
    assert record.message == "The service started."
    assert summary.dropped_trailing_blocks == 1

    output = export_source_messages(tmp_path / "sources.tsv", summary)
    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("ChannelName\tEventSource\tExportFile")
    assert lines[1].split("\t") == record.to_row()


def test_shared_resource_file_is_dumped_once(make_store, make_dumper) -> None:
    store = make_store(
        {
            "Application": {"SvcA": {"EventMessageFile": "c:\\shared.dll"}},
            "System": {"SvcB": {"EventMessageFile": "C:\\Shared.dll"}},
        }
    )
    dump = make_dumper(
        {
            "c:\\shared.dll": [
                "ID 0x00000001 (1) Language: 0409",
                "Shared",
                "ID 0x00000002 (2) Language: 0409",
            ]
        }
    )

    summary = extract_source_messages(store, dump, path_exists=lambda path: True)

    assert dump.calls == ["c:\\shared.dll"]
    assert [(r.channel, r.source) for r in summary.records] == [
        ("Application", "SvcA"),
        ("System", "SvcB"),
    ]


def test_dump_failures_and_missing_files_do_not_stop_the_run(
    make_store, make_dumper
) -> None:
    store = make_store(
        {
            "Application": {
                "Broken": {"EventMessageFile": "c:\\broken.dll"},
                "Gone": {"EventMessageFile": "c:\\gone.dll"},
                "Good": {"EventMessageFile": "c:\\good.dll"},
            }
        }
    )
    dump = make_dumper(
        {
            "c:\\good.dll": [
                "ID 0x00000001 (1) Language: 0409",
                "ok",
                "ID 0x00000002 (2) Language: 0409",
            ]
        },
        failing=["c:\\broken.dll"],
    )

    summary = extract_source_messages(
        store, dump, path_exists=lambda path: path != "c:\\gone.dll"
    )

    assert summary.failed_dumps == ["c:\\broken.dll"]
    assert summary.missing_files == ["c:\\gone.dll"]
    assert summary.dumped_files == 1
    assert [r.source for r in summary.records] == ["Good"]
    assert summary.has_errors


def test_mui_companion_is_dumped_when_present(make_store, make_dumper) -> None:
    store = make_store({"System": {"Svc": {"EventMessageFile": "c:\\win\\svc.dll"}}})
    mui = "c:\\win\\en-us\\svc.dll.mui"
    dump = make_dumper(
        {
            mui: [
                "ID 0x00000001 (1) Language: 0409",
                "Localized",
                "ID 0x00000002 (2) Language: 0409",
            ]
        }
    )

    summary = extract_source_messages(
        store, dump, mui_language="en-US", path_exists=lambda path: True
    )

    assert dump.calls == ["c:\\win\\svc.dll", mui]
    assert [r.resource_file for r in summary.records] == [mui]


def test_include_trailing_block_is_passed_through(make_store, make_dumper) -> None:
    store = make_store({"System": {"Svc": {"EventMessageFile": "c:\\a.dll"}}})
    dump = make_dumper({"c:\\a.dll": ["ID 0x00000001 (1) Language: 0409", "only"]})

    summary = extract_source_messages(
        store, dump, include_trailing_block=True, path_exists=lambda path: True
    )

    assert [r.message for r in summary.records] == ["only"]
    assert summary.dropped_trailing_blocks == 0


def test_missing_registry_root_propagates(make_store, make_dumper) -> None:
    store = make_store({}, root="SOFTWARE\\Elsewhere")

    with pytest.raises(RegistryRootNotFoundError):
        extract_source_messages(store, make_dumper({}))


def test_progress_callback_sees_every_source(make_store, make_dumper) -> None:
    store = make_store({"Application": {"A": {}, "B": {}}})
    seen: List[tuple] = []

    extract_source_messages(
        store,
        make_dumper({}),
        path_exists=lambda path: True,
        progress_callback=lambda current, total, label: seen.append((current, total, label)),
    )

    assert seen == [(1, 2, "Application:A"), (2, 2, "Application:B")]


class FakeEnumerator:
    def __init__(self, providers: List[ProviderMetadata], failing=()):
        self.providers = {p.name: p for p in providers}
        self.failing = list(failing)

    def list_provider_names(self, pattern: str = "*") -> List[str]:
        return list(self.providers) + self.failing

    def get_provider(self, name: str) -> ProviderMetadata:
        if name in self.failing:
            raise ProviderEnumerationError("metadata unavailable", name)
        return self.providers[name]


def test_provider_pipeline_skips_empty_and_failing_providers(tmp_path: Path) -> None:
    enumerator = FakeEnumerator(
        [
            ProviderMetadata(
                "Contoso",
                events=[
                    EventDefinition(
                        id=1,
                        log_link="System",
                        keywords=[NamedItem("A"), NamedItem("B")],
                    ),
                    EventDefinition(id=2),
                ],
            ),
            ProviderMetadata("Empty"),
        ],
        failing=["Locked"],
    )

    summary = extract_provider_events(enumerator)

    assert summary.providers == 3
    assert summary.exported_providers == 1
    assert summary.empty_providers == ["Empty"]
    assert summary.failed_providers == ["Locked"]
    assert [(r.event_id, r.channel, r.keywords) for r in summary.records] == [
        ("1", "System", "A;B"),
        ("2", "ETW", "None"),
    ]

    output = export_provider_events(tmp_path / "providers.tsv", summary)
    lines = output.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 3
    assert lines[1].split("\t")[8] == '"No Description"'


def test_empty_provider_list_writes_header_only(tmp_path: Path) -> None:
    summary = extract_provider_events(FakeEnumerator([]))

    output = export_provider_events(tmp_path / "providers.tsv", summary)

    lines = output.read_text(encoding="utf-8").splitlines()
    assert lines == [
        "ProviderName\tEventId\tEventVersion\tEventChannel\tEventLevel\t"
        "Keywords\tTasks\tOpCodes\tEventDescriptionText\tEventXmlTemplate"
    ]
