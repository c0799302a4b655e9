"""Manifest-based event provider metadata.

Provider metadata is read with the Windows-native wevtutil tool:

    wevtutil ep                                   (list provider names)
    wevtutil gp <name> /ge:true /gm:true /f:xml   (events and messages)

The XML returned by ``gp`` declares the provider's channels, levels,
tasks, opcodes and keywords once, and each event refers to them by value
(or by bit mask for keywords). ``parse_provider_xml`` resolves those
references so every EventDefinition carries its own named items.
"""

from __future__ import annotations

import fnmatch
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Tuple
from xml.etree import ElementTree as ET

from .exceptions import ProviderEnumerationError
from .utils import check_platform

logger = logging.getLogger(__name__)


@dataclass
class NamedItem:
    """A level, task, opcode or keyword declared by a provider."""

    name: str
    display_name: Optional[str] = None
    value: Optional[int] = None

    @property
    def label(self) -> str:
        """Display name, falling back to the symbolic name."""
        return self.display_name or self.name


@dataclass
class EventDefinition:
    """One event declared by a provider manifest."""

    id: Optional[int]
    version: Optional[int] = None
    level: Optional[NamedItem] = None
    log_link: Optional[str] = None
    keywords: List[NamedItem] = field(default_factory=list)
    tasks: List[NamedItem] = field(default_factory=list)
    opcodes: List[NamedItem] = field(default_factory=list)
    description: Optional[str] = None
    template: Optional[str] = None


@dataclass
class ProviderMetadata:
    """A provider and the events it declares."""

    name: str
    events: List[EventDefinition] = field(default_factory=list)


class ProviderEnumerator(Protocol):
    """Source of provider metadata."""

    def list_provider_names(self, pattern: str = "*") -> List[str]:
        """Return provider names matching a case-insensitive glob pattern."""
        ...

    def get_provider(self, name: str) -> ProviderMetadata:
        """Return the metadata of one provider.

        Raises:
            ProviderEnumerationError: If the metadata cannot be read.
        """
        ...


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _strip_namespaces(element: ET.Element) -> None:
    for node in element.iter():
        if isinstance(node.tag, str):
            node.tag = _local_name(node.tag)


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None or not value.strip():
        return None
    try:
        return int(value.strip(), 0)
    except ValueError:
        return None


def _named_items(root: ET.Element, section: str, key_attr: str = "value") -> List[NamedItem]:
    items = []
    container = root.find(section)
    if container is None:
        return items
    for node in container:
        items.append(
            NamedItem(
                name=node.get("name", ""),
                display_name=node.get("message") or None,
                value=_parse_int(node.get(key_attr)),
            )
        )
    return items


def _by_value(items: List[NamedItem]) -> Dict[int, NamedItem]:
    return {item.value: item for item in items if item.value is not None}


def _by_opcode_and_task(items: List[NamedItem]) -> Dict[Tuple[int, int], NamedItem]:
    # Declared opcode values pack the opcode in the high word, the task in the low.
    return {
        (item.value >> 16, item.value & 0xFFFF): item
        for item in items
        if item.value is not None
    }


def _event_template(event: ET.Element) -> Optional[str]:
    template = event.find("template")
    if template is not None:
        return ET.tostring(template, encoding="unicode").strip()
    return event.get("template")


def parse_provider_xml(text: str) -> ProviderMetadata:
    """Parse the XML printed by ``wevtutil gp /ge:true /gm:true /f:xml``.

    Args:
        text: The XML document.

    Returns:
        ProviderMetadata with fully resolved events.

    Raises:
        ProviderEnumerationError: If the document is not well-formed.
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ProviderEnumerationError(f"Invalid provider metadata XML: {e}")

    _strip_namespaces(root)
    name = root.get("name", "")

    channels = _named_items(root, "channels", key_attr="id")
    levels = _by_value(_named_items(root, "levels"))
    tasks = _by_value(_named_items(root, "tasks"))
    opcodes = _by_opcode_and_task(_named_items(root, "opcodes"))
    keywords = _named_items(root, "keywords", key_attr="mask")
    channel_names = {item.value: item.name for item in channels if item.value is not None}

    provider = ProviderMetadata(name=name)
    events = root.find("events")
    if events is None:
        return provider

    for node in events:
        level_value = _parse_int(node.get("level"))
        task_value = _parse_int(node.get("task"))
        opcode_value = _parse_int(node.get("opcode"))
        channel_value = _parse_int(node.get("channel"))
        keyword_mask = _parse_int(node.get("keywords")) or 0

        event = EventDefinition(
            id=_parse_int(node.get("value")),
            version=_parse_int(node.get("version")),
            level=levels.get(level_value) if level_value is not None else None,
            log_link=channel_names.get(channel_value),
            keywords=[
                item for item in keywords if item.value and item.value & keyword_mask
            ],
            description=node.get("message"),
            template=_event_template(node),
        )
        if task_value is not None and task_value in tasks:
            event.tasks.append(tasks[task_value])
        if opcode_value is not None:
            opcode = opcodes.get((opcode_value, task_value or 0)) or opcodes.get(
                (opcode_value, 0)
            )
            if opcode is not None:
                event.opcodes.append(opcode)
        provider.events.append(event)

    return provider


class WevtutilProviderEnumerator:
    """ProviderEnumerator backed by wevtutil.

    Args:
        timeout: Seconds to wait per wevtutil call. None waits indefinitely.
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        check_platform()
        if shutil.which("wevtutil") is None:
            raise ProviderEnumerationError(
                "wevtutil command not found. Ensure Windows Event Log utilities "
                "are installed and available in the system PATH."
            )
        self.timeout = timeout

    def _run(self, arguments: List[str], provider: Optional[str] = None) -> str:
        command = ["wevtutil"] + arguments
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except subprocess.TimeoutExpired:
            raise ProviderEnumerationError(
                f"wevtutil timed out after {self.timeout} seconds", provider
            )
        except subprocess.CalledProcessError as e:
            error_msg = f"wevtutil failed with return code {e.returncode}"
            if e.stderr:
                error_msg += f": {e.stderr.strip()}"
            raise ProviderEnumerationError(error_msg, provider)
        except UnicodeDecodeError as e:
            raise ProviderEnumerationError(
                f"wevtutil output could not be decoded: {e}", provider
            )
        return completed.stdout

    def list_provider_names(self, pattern: str = "*") -> List[str]:
        output = self._run(["ep"])
        names = [line.strip() for line in output.splitlines() if line.strip()]
        matched = [
            name for name in names if fnmatch.fnmatchcase(name.lower(), pattern.lower())
        ]
        logger.debug(f"{len(matched)} of {len(names)} providers match {pattern!r}")
        return matched

    def get_provider(self, name: str) -> ProviderMetadata:
        output = self._run(["gp", name, "/ge:true", "/gm:true", "/f:xml"], name)
        provider = parse_provider_xml(output)
        if not provider.name:
            provider.name = name
        return provider
