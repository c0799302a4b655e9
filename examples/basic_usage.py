#!/usr/bin/env python3
"""
Basic Usage Examples for the Event Definition Extractor

Example 1 runs anywhere. Examples 2 and 3 read the live system and need
Windows (plus the message dump tool for example 2).

Requirements:
    - Python 3.8+
    - evt_defs package installed
"""

from evt_defs import (
    EventDefinition,
    ExternalDumper,
    NamedItem,
    WevtutilProviderEnumerator,
    WinregStore,
    export_provider_events,
    export_source_messages,
    extract_provider_events,
    extract_source_messages,
    normalize_event,
    parse_message_dump,
)
from evt_defs.exceptions import (
    DumperNotFoundError,
    PlatformNotSupportedError,
    ProviderEnumerationError,
)


def example_1_offline_parsing() -> None:
    """
    Example 1: Parse a captured dump and normalize a provider event.

    Neither step touches the registry or any external tool.
    """
    print("=" * 70)
    print("Example 1: Offline Parsing")
    print("=" * 70)

    lines = [
        "ID 0xC0000064 (3221225572) Language: 0409",
        "The service failed to start.%n",
        "Error code: %1",
        "ID 0x40000065 (1073741925) Language: 0409",
        "The service started.",
    ]
    result = parse_message_dump(
        lines, "Application", "MySvc", "c:\\msgs.dll", include_trailing_block=True
    )
    for record in result.records:
        print(f"{record.event_id:>5} {record.message_type:<15} {record.message}")

    event = EventDefinition(
        id=1,
        keywords=[NamedItem("Perf"), NamedItem("Net")],
        description="Started\r\nok",
    )
    print(normalize_event("Contoso", event).to_row())
    print()


def example_2_legacy_sources() -> None:
    """
    Example 2: Export the message tables of all legacy event sources.
    """
    print("=" * 70)
    print("Example 2: Legacy Event Sources")
    print("=" * 70)

    try:
        dumper = ExternalDumper("MessageDump.exe", timeout=60)
        summary = extract_source_messages(WinregStore(), dumper, mui_language="en-US")
        path = export_source_messages("EventSourceMessages.tsv", summary)
        print(f"Wrote {len(summary.records)} messages to {path}")
    except (DumperNotFoundError, PlatformNotSupportedError) as e:
        print(f"Error: {e}")

    print()


def example_3_providers() -> None:
    """
    Example 3: Export the event definitions of the kernel providers.
    """
    print("=" * 70)
    print("Example 3: Manifest Providers")
    print("=" * 70)

    try:
        summary = extract_provider_events(
            WevtutilProviderEnumerator(), "Microsoft-Windows-Kernel-*"
        )
        path = export_provider_events("KernelProviders.tsv", summary)
        print(f"Wrote {len(summary.records)} events to {path}")
        for name in summary.empty_providers:
            print(f"  no events: {name}")
    except (PlatformNotSupportedError, ProviderEnumerationError) as e:
        print(f"Error: {e}")

    print()


if __name__ == "__main__":
    example_1_offline_parsing()
    example_2_legacy_sources()
    example_3_providers()
