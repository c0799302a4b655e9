"""Flatten provider event definitions into tab-safe output records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .providers import EventDefinition, ProviderMetadata
from .utils import flatten_text, join_names

DEFAULT_CHANNEL = "ETW"
DEFAULT_LEVEL = "UnDefined"
EMPTY_LIST = "None"
NO_DESCRIPTION = "No Description"
NO_TEMPLATE = "No Event Template"

PROVIDER_COLUMNS = [
    "ProviderName",
    "EventId",
    "EventVersion",
    "EventChannel",
    "EventLevel",
    "Keywords",
    "Tasks",
    "OpCodes",
    "EventDescriptionText",
    "EventXmlTemplate",
]


@dataclass
class ProviderEventRecord:
    """One (provider, event) row."""

    provider_name: str
    event_id: str
    version: str
    channel: str
    level: str
    keywords: str
    tasks: str
    opcodes: str
    description: str
    template: str

    def to_row(self) -> List[str]:
        """Return the field values in PROVIDER_COLUMNS order.

        The description is quoted, with embedded quotes doubled, so
        spreadsheet imports keep separators and leading symbols as text.
        """
        return [
            self.provider_name,
            self.event_id,
            self.version,
            self.channel,
            self.level,
            self.keywords,
            self.tasks,
            self.opcodes,
            '"' + self.description.replace('"', '""') + '"',
            self.template,
        ]


def normalize_event(provider_name: str, event: EventDefinition) -> ProviderEventRecord:
    """Build the output record for one event.

    Each field falls back to its own sentinel when the source value is
    missing; the version alone falls back to an empty string.

    Example:
        >>> record = normalize_event("MyProvider", EventDefinition(id=1))
        >>> record.channel, record.level, record.keywords
        ('ETW', 'UnDefined', 'None')
    """
    level = DEFAULT_LEVEL
    if event.level is not None and event.level.label:
        level = flatten_text(event.level.label) or DEFAULT_LEVEL

    return ProviderEventRecord(
        provider_name=provider_name,
        event_id="" if event.id is None else str(event.id),
        version="" if event.version is None else str(event.version),
        channel=flatten_text(event.log_link) or DEFAULT_CHANNEL,
        level=level,
        keywords=join_names((item.label for item in event.keywords), EMPTY_LIST),
        tasks=join_names((item.label for item in event.tasks), EMPTY_LIST),
        opcodes=join_names((item.label for item in event.opcodes), EMPTY_LIST),
        description=flatten_text(event.description) or NO_DESCRIPTION,
        template=flatten_text(event.template) or NO_TEMPLATE,
    )


def normalize_provider(provider: ProviderMetadata) -> List[ProviderEventRecord]:
    """Build the output records for every event of a provider."""
    return [normalize_event(provider.name, event) for event in provider.events]
