"""Shared fakes: raw property builders, an in-memory source provider and durable store."""
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from workgraph.caching.manager import CacheManager
from workgraph.caching.store import DurableStore
from workgraph.config.mappings import SourceConfig, WorkspaceConfig
from workgraph.fetching.providers.base import SourcePage, SourceProvider
from workgraph.fetching.retry import RetryPolicy

SOURCE_A = "aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa"
SOURCE_B = "bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb"


# ===== Raw property payloads =====

def title(text: str) -> Dict[str, Any]:
    return {"type": "title", "title": [{"plain_text": text}]}


def rich_text(text: str) -> Dict[str, Any]:
    return {"type": "rich_text", "rich_text": [{"plain_text": text}]}


def select(name: Optional[str]) -> Dict[str, Any]:
    return {"type": "select", "select": {"name": name} if name is not None else None}


def status(name: Optional[str]) -> Dict[str, Any]:
    return {"type": "status", "status": {"name": name} if name is not None else None}


def multi_select(*names: str) -> Dict[str, Any]:
    return {"type": "multi_select", "multi_select": [{"name": n} for n in names]}


def number(value: Optional[float]) -> Dict[str, Any]:
    return {"type": "number", "number": value}


def date(start: Optional[str]) -> Dict[str, Any]:
    return {"type": "date", "date": {"start": start, "end": None} if start is not None else None}


def people(*entries: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "people", "people": list(entries)}


def relation(*ids: str) -> Dict[str, Any]:
    return {"type": "relation", "relation": [{"id": i} for i in ids]}


def raw_record(record_id: str, **properties: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": record_id,
        "url": f"https://www.notion.so/{record_id.replace('-', '')}",
        "created_time": "2024-01-01T00:00:00.000Z",
        "last_edited_time": "2024-01-02T00:00:00.000Z",
        "properties": {name.replace("_", " "): value for name, value in properties.items()},
    }


def uid(n: int) -> str:
    """Deterministic hyphenated UUID for test records."""
    return f"{n:08x}-0000-4000-8000-{n:012x}"


# ===== Fakes =====

class FakeProvider(SourceProvider):
    """Serves scripted pages per source; an Exception in the script is raised for that page."""

    name = "fake"

    def __init__(self, pages: Optional[Dict[str, List[Any]]] = None, records: Optional[Dict[str, Dict]] = None):
        self.pages = pages or {}
        self.records = records or {}
        self.page_calls: List[tuple] = []
        self.updates: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None

    async def fetch_page(self, source_id: str, cursor: Optional[str], page_size: int) -> SourcePage:
        self.page_calls.append((source_id, cursor))
        if self.gate is not None:
            await self.gate.wait()

        script = self.pages.get(source_id, [])
        index = int(cursor) if cursor else 0
        entry = script[index] if index < len(script) else []
        if isinstance(entry, Exception):
            raise entry

        has_more = index + 1 < len(script)
        return SourcePage(records=entry, has_more=has_more, next_cursor=str(index + 1) if has_more else None)

    async def fetch_record(self, record_id: str) -> Dict[str, Any]:
        record = self.records.get(record_id)
        if isinstance(record, Exception):
            raise record
        return record

    async def update_properties(self, record_id: str, properties: Dict[str, Any]) -> None:
        self.updates.append((record_id, properties))


class MemoryStore(DurableStore):
    def __init__(self, data: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(data or {})
        self.fail_writes = False
        self.writes = 0

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        if self.fail_writes:
            raise OSError("quota exceeded")
        self.writes += 1
        self.data[key] = value

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self.data.pop(key, None)


class FakeClock:
    """Epoch-millisecond clock under test control."""

    def __init__(self, now: float = 1_700_000_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds * 1000


async def no_sleep(delay: float) -> None:
    return None


# ===== Fixtures =====

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def cache(store, clock):
    return CacheManager(store, ttl_seconds=300, durable_ttl_seconds=86400,
                        key_prefix="wg-", manifest_key="wg-meta", clock=clock)


@pytest.fixture
def workspace():
    return WorkspaceConfig(sources=[
        SourceConfig(source_id=SOURCE_A, type_tag="project"),
        SourceConfig(source_id=SOURCE_B, type_tag="task"),
    ])


@pytest.fixture
def fast_retry():
    return RetryPolicy(max_attempts=2, base_delay=0.0, max_delay=0.0)
