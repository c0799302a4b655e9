"""Utility functions for platform detection, tool lookup, and field cleanup.

This module provides helper functions used throughout the library for
platform checks, resolving the external tools and default locations, and
turning free text into single-line, tab-safe field values.
"""

import ntpath
import os
import platform
import re
import shutil
from pathlib import Path
from typing import Iterable, List, Optional

from .exceptions import DumperNotFoundError, PlatformNotSupportedError

DUMPER_ENV_VAR = "EVT_DEFS_DUMPER"
OUTPUT_DIR_ENV_VAR = "EVT_DEFS_OUTPUT_DIR"
DEFAULT_DUMPER = "MessageDump.exe"

DEFAULT_SOURCES_FILENAME = "EventSourceMessages.tsv"
DEFAULT_PROVIDERS_FILENAME = "ProviderEvents.tsv"

# Separator used inside a single field for multi-valued data
LIST_SEPARATOR = ";"

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_LINE_BREAKS = re.compile(r"[\r\n\t]")


def check_platform() -> None:
    """Verify that the current platform is Windows.

    Registry enumeration and wevtutil both require a Windows host.

    Raises:
        PlatformNotSupportedError: If the current platform is not Windows.

    Example:
        >>> check_platform()  # On Windows - no exception
        >>> check_platform()  # On Linux - raises PlatformNotSupportedError
    """
    current_platform = platform.system()
    if current_platform != "Windows":
        raise PlatformNotSupportedError(current_platform)


def resolve_dumper(executable: Optional[str] = None) -> str:
    """Return the dump tool name to use.

    An explicit value wins, then the EVT_DEFS_DUMPER environment variable,
    then the built-in default.
    """
    if executable:
        return executable
    return os.environ.get(DUMPER_ENV_VAR) or DEFAULT_DUMPER


def check_dumper_available(executable: str) -> str:
    """Verify that the message dump tool exists and return its full path.

    Accepts either a path to the executable or a bare name that is looked
    up on the system PATH with shutil.which().

    Args:
        executable: Path or command name of the dump tool.

    Returns:
        The resolved path of the executable.

    Raises:
        DumperNotFoundError: If the tool cannot be found.

    Example:
        >>> check_dumper_available("C:/Tools/MessageDump.exe")
        'C:/Tools/MessageDump.exe'
        >>> check_dumper_available("missing.exe")  # Raises DumperNotFoundError
    """
    if Path(executable).is_file():
        return executable

    found = shutil.which(executable)
    if found is None:
        raise DumperNotFoundError(executable)
    return found


def default_output_dir() -> Path:
    """Return the directory output files go to when no path is given.

    Uses EVT_DEFS_OUTPUT_DIR when set, otherwise the current directory.
    """
    configured = os.environ.get(OUTPUT_DIR_ENV_VAR)
    if configured:
        return Path(configured)
    return Path.cwd()


def resolve_output_path(output_file: Optional[str], default_name: str) -> Path:
    """Return the output file path, falling back to the default directory."""
    if output_file:
        return Path(output_file)
    return default_output_dir() / default_name


def normalize_resource_path(raw: str) -> str:
    """Lower-case and trim a resource file path."""
    return raw.strip().lower()


def split_resource_paths(raw: Optional[str]) -> List[str]:
    """Split a raw message-file registry value into normalized paths.

    Values may hold several paths separated by semicolons. Empty pieces
    (from doubled or trailing separators) are discarded.

    Example:
        >>> split_resource_paths(" C:/A.dll ; c:/b.dll;")
        ['c:/a.dll', 'c:/b.dll']
    """
    if not raw:
        return []

    paths = []
    for piece in normalize_resource_path(raw).split(LIST_SEPARATOR):
        piece = piece.strip()
        if piece:
            paths.append(piece)
    return paths


def mui_companion_path(resource_file: str, language: str) -> str:
    """Return the MUI file that carries the localized resources of a binary.

    Modern system binaries keep their message tables in
    ``<dir>\\<language>\\<name>.mui`` rather than in the binary itself.
    Paths are treated as Windows paths on every platform.
    """
    directory, name = ntpath.split(resource_file)
    return ntpath.join(directory, language.lower(), name + ".mui")


def replace_control_chars(value: str, replacement: str = " ") -> str:
    """Replace every ASCII control character with the replacement string."""
    return _CONTROL_CHARS.sub(replacement, value)


def flatten_text(value: Optional[str]) -> str:
    """Turn free text into a single line.

    Carriage returns, line feeds and tabs become single spaces, any other
    control character is dropped to a space as well, and the result is
    stripped.
    """
    if not value:
        return ""
    value = _LINE_BREAKS.sub(" ", value)
    return replace_control_chars(value).strip()


def join_names(names: Iterable[Optional[str]], empty: str = "None") -> str:
    """Join display names with the list separator.

    Blank names are ignored. When nothing remains the ``empty`` sentinel is
    returned instead of an empty string.

    Example:
        >>> join_names(["A", "B"])
        'A;B'
        >>> join_names([])
        'None'
    """
    cleaned = [flatten_text(name) for name in names]
    cleaned = [name for name in cleaned if name]
    if not cleaned:
        return empty
    return LIST_SEPARATOR.join(cleaned)
