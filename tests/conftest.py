from typing import Dict, List, Optional

import pytest

from evt_defs.exceptions import DumpError, KeyNotFoundError
from evt_defs.registry import EVENTLOG_ROOT


class FakeStore:
    """In-memory key-value store.

    ``channels`` maps channel -> source -> value name -> value.
    """

    def __init__(self, channels: Dict[str, Dict[str, Dict[str, str]]], root: str = EVENTLOG_ROOT):
        self.root = root
        self.channels = channels

    def _parts(self, path: str) -> List[str]:
        if not path.startswith(self.root):
            raise KeyNotFoundError(path)
        rest = path[len(self.root):].strip("\\")
        return rest.split("\\") if rest else []

    def list_children(self, path: str) -> List[str]:
        parts = self._parts(path)
        if not parts:
            return list(self.channels)
        if len(parts) == 1 and parts[0] in self.channels:
            return list(self.channels[parts[0]])
        if len(parts) == 2 and parts[1] in self.channels.get(parts[0], {}):
            return []
        raise KeyNotFoundError(path)

    def get_value(self, path: str, name: str) -> Optional[str]:
        parts = self._parts(path)
        if len(parts) != 2:
            return None
        return self.channels.get(parts[0], {}).get(parts[1], {}).get(name)


class FakeDumper:
    """Dumper returning canned lines per file and recording calls."""

    def __init__(self, dumps: Dict[str, List[str]], failing: Optional[List[str]] = None):
        self.dumps = dumps
        self.failing = failing or []
        self.calls: List[str] = []

    def __call__(self, resource_file: str) -> List[str]:
        self.calls.append(resource_file)
        if resource_file in self.failing:
            raise DumpError(f"Dump tool failed for {resource_file}", return_code=1)
        return self.dumps.get(resource_file, [])


@pytest.fixture
def sample_dump() -> List[str]:
    return [
        "ID 0x40000001 (1073741825) Language: 0409",
        "Service started.%n",
        "",
        "ID 0xC0000064 (3221225572) Language: 0409",
        "  Service failed:  ",
        "%1%0",
        "ID 0x80000002 (2147483650) Language: 0409",
        "Trailing message",
    ]


@pytest.fixture
def make_store():
    """Factory for in-memory registry stores."""
    return FakeStore


@pytest.fixture
def make_dumper():
    """Factory for canned dumpers."""
    return FakeDumper
