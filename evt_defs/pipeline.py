"""Extraction pipelines for legacy event sources and manifest providers.

Sources pipeline:
    registry scan -> dump each resource file -> parse messages -> TSV

Providers pipeline:
    enumerate providers -> normalize each event -> TSV

Both pipelines collect their rows in a summary object that is returned to
the caller; nothing is written until the export functions run. Per-item
failures (a missing file, a failing dump, a malformed message header, an
unreadable provider) are logged, counted and skipped.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from .dumper import ResourceDumper
from .exceptions import DumpError, ProviderEnumerationError
from .formatters import write_tsv
from .messages import MESSAGE_COLUMNS, MessageRecord, parse_message_dump
from .normalizer import PROVIDER_COLUMNS, ProviderEventRecord, normalize_provider
from .providers import ProviderEnumerator
from .registry import (
    EVENTLOG_ROOT,
    MESSAGE_FILE_VALUES,
    KeyValueStore,
    scan_event_sources,
)
from .utils import mui_companion_path

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class SourceExtractionSummary:
    """Summary of a legacy event source extraction.

    Attributes:
        sources: Number of event sources found.
        resource_files: Number of distinct resource files accepted.
        missing_files: Referenced resource files that did not exist.
        dumped_files: Number of files dumped successfully.
        failed_dumps: Files the dump tool failed on.
        parse_errors: Number of message blocks skipped as malformed.
        dropped_trailing_blocks: Number of final blocks not exported.
        records: Extracted message records in output order.
        total_duration_seconds: Time taken for the whole extraction.
    """

    sources: int = 0
    resource_files: int = 0
    missing_files: List[str] = field(default_factory=list)
    dumped_files: int = 0
    failed_dumps: List[str] = field(default_factory=list)
    parse_errors: int = 0
    dropped_trailing_blocks: int = 0
    records: List[MessageRecord] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.missing_files or self.failed_dumps or self.parse_errors)


@dataclass
class ProviderExtractionSummary:
    """Summary of a manifest provider extraction.

    Attributes:
        providers: Number of providers matched.
        exported_providers: Providers with at least one event.
        empty_providers: Names of providers without events.
        failed_providers: Names of providers whose metadata could not be read.
        records: Normalized event records in output order.
        total_duration_seconds: Time taken for the whole extraction.
    """

    providers: int = 0
    exported_providers: int = 0
    empty_providers: List[str] = field(default_factory=list)
    failed_providers: List[str] = field(default_factory=list)
    records: List[ProviderEventRecord] = field(default_factory=list)
    total_duration_seconds: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.failed_providers)


def extract_source_messages(
    store: KeyValueStore,
    dumper: ResourceDumper,
    root: str = EVENTLOG_ROOT,
    value_names: Sequence[str] = MESSAGE_FILE_VALUES,
    include_trailing_block: bool = False,
    mui_language: Optional[str] = None,
    path_exists: Callable[[str], bool] = os.path.exists,
    progress_callback: Optional[ProgressCallback] = None,
) -> SourceExtractionSummary:
    """Extract the message tables of every legacy event source.

    Each resource file is dumped once per run even when several sources
    reference it. With ``mui_language`` set, the MUI companion of every
    resource file is dumped as well when it exists.

    Args:
        store: Key-value store holding the event log registrations.
        dumper: Callable returning the dump lines of a resource file.
        root: Key path of the event log root.
        value_names: Names of the values that hold message file paths.
        include_trailing_block: Also export the message after the last header.
        mui_language: Language directory of MUI companions, e.g. ``en-US``.
        path_exists: Predicate used to verify a resource file exists.
        progress_callback: Optional callback called before each source.
                          Signature: callback(current: int, total: int, label: str)

    Returns:
        SourceExtractionSummary with the records and statistics.

    Raises:
        RegistryRootNotFoundError: If the event log root cannot be read.

    Example:
        >>> summary = extract_source_messages(WinregStore(), ExternalDumper("MessageDump.exe"))
        >>> print(f"{len(summary.records)} messages from {summary.sources} sources")
    """
    start_time = time.time()
    scan = scan_event_sources(store, root, value_names, path_exists)

    summary = SourceExtractionSummary(
        sources=scan.source_count,
        resource_files=len(scan.resource_files),
        missing_files=list(scan.missing_files),
    )
    dumps: Dict[str, Optional[List[str]]] = {}

    def dump_once(resource_file: str) -> Optional[List[str]]:
        if resource_file not in dumps:
            try:
                dumps[resource_file] = dumper(resource_file)
                summary.dumped_files += 1
            except DumpError as e:
                logger.warning(str(e))
                summary.failed_dumps.append(resource_file)
                dumps[resource_file] = None
        return dumps[resource_file]

    total = scan.source_count
    for index, (key, resource_files) in enumerate(scan.sources.items(), start=1):
        if progress_callback:
            progress_callback(index, total, str(key))

        for resource_file in resource_files:
            candidates = [resource_file]
            if mui_language:
                mui_file = mui_companion_path(resource_file, mui_language)
                if path_exists(mui_file):
                    candidates.append(mui_file)

            for candidate in candidates:
                lines = dump_once(candidate)
                if lines is None:
                    continue

                result = parse_message_dump(
                    lines,
                    key.channel,
                    key.source,
                    candidate,
                    include_trailing_block=include_trailing_block,
                )
                summary.records.extend(result.records)
                summary.parse_errors += result.parse_errors
                summary.dropped_trailing_blocks += result.dropped_trailing_blocks

    summary.total_duration_seconds = time.time() - start_time
    logger.info(
        f"Extracted {len(summary.records)} messages from "
        f"{summary.dumped_files} resource files"
    )
    return summary


def extract_provider_events(
    enumerator: ProviderEnumerator,
    pattern: str = "*",
    progress_callback: Optional[ProgressCallback] = None,
) -> ProviderExtractionSummary:
    """Extract the event definitions of every matching provider.

    Providers without events are skipped with an info message. Providers
    whose metadata cannot be read are skipped with a warning.

    Args:
        enumerator: Source of provider metadata.
        pattern: Case-insensitive glob matched against provider names.
        progress_callback: Optional callback called before each provider.

    Returns:
        ProviderExtractionSummary with the records and statistics.

    Raises:
        ProviderEnumerationError: If the provider names cannot be listed.
    """
    start_time = time.time()
    names = enumerator.list_provider_names(pattern)
    summary = ProviderExtractionSummary(providers=len(names))

    for index, name in enumerate(names, start=1):
        if progress_callback:
            progress_callback(index, len(names), name)

        try:
            provider = enumerator.get_provider(name)
        except ProviderEnumerationError as e:
            logger.warning(f"Skipping provider: {e}")
            summary.failed_providers.append(name)
            continue

        if not provider.events:
            logger.info(f"Provider {name} declares no events, skipping")
            summary.empty_providers.append(name)
            continue

        summary.records.extend(normalize_provider(provider))
        summary.exported_providers += 1

    summary.total_duration_seconds = time.time() - start_time
    logger.info(
        f"Extracted {len(summary.records)} events from "
        f"{summary.exported_providers} providers"
    )
    return summary


def export_source_messages(
    output_file: Union[str, Path], summary: SourceExtractionSummary
) -> Path:
    """Write the records of a source extraction as TSV.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    return write_tsv(
        output_file, MESSAGE_COLUMNS, (record.to_row() for record in summary.records)
    )


def export_provider_events(
    output_file: Union[str, Path], summary: ProviderExtractionSummary
) -> Path:
    """Write the records of a provider extraction as TSV.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    return write_tsv(
        output_file, PROVIDER_COLUMNS, (record.to_row() for record in summary.records)
    )
