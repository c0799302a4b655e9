"""Windows event definition extractor.

This library exports the event definitions (not event instances) known to
a Windows system into flat, tab-separated files:

- Legacy event sources: the registry names the message files of every
  (channel, source) pair; each file's message table is dumped with an
  external tool and parsed into one row per message, with the packed
  message ID decoded into event ID, facility code and a message type hint.
- Manifest-based providers: the event definitions of every provider are
  read with wevtutil and flattened into one row per event, with keywords,
  tasks and opcodes joined into single fields.

The parsing and normalization steps take their collaborators (registry,
dump tool, provider enumeration) as arguments, so they run on any
platform against in-memory data.

Basic Usage:
    Legacy event source messages (Windows only):
        >>> from evt_defs import WinregStore, ExternalDumper
        >>> from evt_defs import extract_source_messages, export_source_messages
        >>> summary = extract_source_messages(WinregStore(), ExternalDumper("MessageDump.exe"))
        >>> export_source_messages("EventSourceMessages.tsv", summary)

    Provider events (Windows only):
        >>> from evt_defs import WevtutilProviderEnumerator
        >>> from evt_defs import extract_provider_events, export_provider_events
        >>> summary = extract_provider_events(WevtutilProviderEnumerator(), "Microsoft-*")
        >>> export_provider_events("ProviderEvents.tsv", summary)

    Parsing a dump (cross-platform):
        >>> from evt_defs import parse_message_dump
        >>> result = parse_message_dump(lines, "Application", "MySvc", "c:\\\\msgs.dll")
        >>> print(f"Parsed {len(result.records)} messages")

Platform Requirements:
    - Registry scan and wevtutil enumeration: Windows
    - Dump parsing, normalization, TSV output: Cross-platform (Python 3.8+)
"""

from .dumper import ExternalDumper, ResourceDumper

from .exceptions import (
    EvtDefsError,
    PlatformNotSupportedError,
    DumperNotFoundError,
    KeyNotFoundError,
    RegistryRootNotFoundError,
    DumpError,
    ParserError,
    MessageHeaderError,
    ProviderEnumerationError,
    OutputWriteError,
)

from .registry import (
    EVENTLOG_ROOT,
    MESSAGE_FILE_VALUES,
    ChannelSourceKey,
    KeyValueStore,
    SourceScanResult,
    WinregStore,
    scan_event_sources,
)

from .messages import (
    MESSAGE_COLUMNS,
    MESSAGE_TYPE_MAP,
    MessageHeader,
    MessageRecord,
    MessageParseResult,
    classify_message_type,
    flatten_message_body,
    parse_header_line,
    parse_message_dump,
)

from .providers import (
    NamedItem,
    EventDefinition,
    ProviderMetadata,
    ProviderEnumerator,
    WevtutilProviderEnumerator,
    parse_provider_xml,
)

from .normalizer import (
    PROVIDER_COLUMNS,
    ProviderEventRecord,
    normalize_event,
    normalize_provider,
)

from .formatters import TsvFormatter, write_tsv

from .pipeline import (
    SourceExtractionSummary,
    ProviderExtractionSummary,
    extract_source_messages,
    extract_provider_events,
    export_source_messages,
    export_provider_events,
)

__version__ = "1.0.0"
__author__ = "moex01"
__license__ = "MIT"

__all__ = [
    # Pipelines
    "extract_source_messages",
    "extract_provider_events",
    "export_source_messages",
    "export_provider_events",
    "SourceExtractionSummary",
    "ProviderExtractionSummary",
    # Legacy event sources
    "EVENTLOG_ROOT",
    "MESSAGE_FILE_VALUES",
    "ChannelSourceKey",
    "KeyValueStore",
    "SourceScanResult",
    "WinregStore",
    "scan_event_sources",
    "ExternalDumper",
    "ResourceDumper",
    # Message dump parsing
    "MESSAGE_COLUMNS",
    "MESSAGE_TYPE_MAP",
    "MessageHeader",
    "MessageRecord",
    "MessageParseResult",
    "classify_message_type",
    "flatten_message_body",
    "parse_header_line",
    "parse_message_dump",
    # Providers
    "NamedItem",
    "EventDefinition",
    "ProviderMetadata",
    "ProviderEnumerator",
    "WevtutilProviderEnumerator",
    "parse_provider_xml",
    "PROVIDER_COLUMNS",
    "ProviderEventRecord",
    "normalize_event",
    "normalize_provider",
    # Output
    "TsvFormatter",
    "write_tsv",
    # Exceptions
    "EvtDefsError",
    "PlatformNotSupportedError",
    "DumperNotFoundError",
    "KeyNotFoundError",
    "RegistryRootNotFoundError",
    "DumpError",
    "ParserError",
    "MessageHeaderError",
    "ProviderEnumerationError",
    "OutputWriteError",
    # Metadata
    "__version__",
    "__author__",
    "__license__",
]
