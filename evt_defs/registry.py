"""Legacy event source discovery from the registry.

Legacy (pre-manifest) event sources are registered under
``HKLM\\SYSTEM\\CurrentControlSet\\Services\\EventLog\\<channel>\\<source>``.
Each source key may carry message-file values naming the binaries whose
message tables hold the event text. This module walks that hierarchy
through a small key-value store interface so the scan itself can run
against any backing store.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from .exceptions import KeyNotFoundError, RegistryRootNotFoundError
from .utils import check_platform, split_resource_paths

logger = logging.getLogger(__name__)

EVENTLOG_ROOT = r"SYSTEM\CurrentControlSet\Services\EventLog"

MESSAGE_FILE_VALUES = (
    "EventMessageFile",
    "ParameterMessageFile",
    "CategoryMessageFile",
)


class KeyValueStore(Protocol):
    """Read-only hierarchical key-value store.

    Paths are backslash-separated key paths relative to the store's hive.
    """

    def list_children(self, path: str) -> List[str]:
        """Return the names of the subkeys of ``path``.

        Raises:
            KeyNotFoundError: If ``path`` does not exist.
        """
        ...

    def get_value(self, path: str, name: str) -> Optional[str]:
        """Return a value of ``path`` as a string, or None if it is not set."""
        ...


class WinregStore:
    """KeyValueStore backed by the Windows registry (HKEY_LOCAL_MACHINE).

    Environment variables are expanded in every string value, whatever its
    type. REG_MULTI_SZ values are joined with semicolons so they read like
    the single-string form.
    """

    def __init__(self) -> None:
        check_platform()
        import winreg

        self._winreg = winreg

    def list_children(self, path: str) -> List[str]:
        winreg = self._winreg
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path) as key:
                subkey_count = winreg.QueryInfoKey(key)[0]
                return [winreg.EnumKey(key, i) for i in range(subkey_count)]
        except OSError:
            raise KeyNotFoundError(path)

    def get_value(self, path: str, name: str) -> Optional[str]:
        winreg = self._winreg
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, path) as key:
                value, value_type = winreg.QueryValueEx(key, name)
        except OSError:
            return None

        if value is None:
            return None
        if value_type == winreg.REG_MULTI_SZ:
            return ";".join(winreg.ExpandEnvironmentStrings(part) for part in value)
        if isinstance(value, str):
            return winreg.ExpandEnvironmentStrings(value)
        return str(value)


@dataclass(frozen=True)
class ChannelSourceKey:
    """Identity of a legacy event source: the channel it logs to and its name."""

    channel: str
    source: str

    def __str__(self) -> str:
        return f"{self.channel}:{self.source}"


@dataclass
class SourceScanResult:
    """Result of scanning the registry for legacy event sources.

    Attributes:
        sources: Resource files per source, deduplicated, in discovery order.
        resource_files: Every accepted resource file, deduplicated globally.
        missing_files: Referenced paths that did not exist on disk.
    """

    sources: Dict[ChannelSourceKey, List[str]] = field(default_factory=dict)
    resource_files: List[str] = field(default_factory=list)
    missing_files: List[str] = field(default_factory=list)

    @property
    def source_count(self) -> int:
        return len(self.sources)


def _sorted_names(names: List[str]) -> List[str]:
    return sorted(names, key=lambda name: (name.lower(), name))


def scan_event_sources(
    store: KeyValueStore,
    root: str = EVENTLOG_ROOT,
    value_names: Sequence[str] = MESSAGE_FILE_VALUES,
    path_exists: Callable[[str], bool] = os.path.exists,
) -> SourceScanResult:
    """Collect the resource files referenced by every legacy event source.

    Walks ``root\\<channel>\\<source>`` and reads each value in
    ``value_names``. Every path is normalized (trimmed, lower-cased), split
    on semicolons and checked with ``path_exists``. Paths that do not exist
    are logged and skipped; they never abort the scan.

    Channels and sources are visited in case-insensitive name order so that
    repeated runs produce the same output.

    Args:
        store: Key-value store to read from.
        root: Key path of the event log root.
        value_names: Names of the values that hold message file paths.
        path_exists: Predicate used to verify a resource file exists.

    Returns:
        SourceScanResult with the per-source mapping and the global file list.

    Raises:
        RegistryRootNotFoundError: If ``root`` cannot be read.

    Example:
        >>> result = scan_event_sources(WinregStore())
        >>> for key, files in result.sources.items():
        ...     print(key, files)
    """
    result = SourceScanResult()
    known_files = set()
    missing = set()

    try:
        channels = store.list_children(root)
    except KeyNotFoundError:
        raise RegistryRootNotFoundError(root)

    for channel in _sorted_names(channels):
        channel_path = f"{root}\\{channel}"
        try:
            sources = store.list_children(channel_path)
        except KeyNotFoundError:
            logger.warning(f"Channel key disappeared during scan: {channel_path}")
            continue

        for source in _sorted_names(sources):
            source_path = f"{channel_path}\\{source}"
            key = ChannelSourceKey(channel, source)
            source_files = result.sources.setdefault(key, [])

            for value_name in value_names:
                raw = store.get_value(source_path, value_name)
                for resource_file in split_resource_paths(raw):
                    if not path_exists(resource_file):
                        logger.warning(
                            f"{key}: {value_name} file not found: {resource_file}"
                        )
                        if resource_file not in missing:
                            missing.add(resource_file)
                            result.missing_files.append(resource_file)
                        continue

                    if resource_file not in known_files:
                        known_files.add(resource_file)
                        result.resource_files.append(resource_file)

                    if resource_file not in source_files:
                        source_files.append(resource_file)

            logger.debug(f"{key}: {len(source_files)} resource file(s)")

    logger.info(
        f"Found {result.source_count} event sources referencing "
        f"{len(result.resource_files)} resource files"
    )
    return result
