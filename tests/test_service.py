import math

import pytest

from conftest import SOURCE_A, SOURCE_B, FakeProvider, no_sleep, raw_record, select, status, title, uid
from workgraph.config.loader import ConfigError
from workgraph.config.mappings import SourceConfig, WorkspaceConfig
from workgraph.config.system_settings import SystemSettings
from workgraph.fetching.errors import MalformedResponseError
from workgraph.fetching.orchestrator import FetchOrchestrator
from workgraph.fetching.retry import RetryPolicy
from workgraph.fetching.service import WorkspaceService


def make_service(provider, workspace, cache):
    orch = FetchOrchestrator(provider, workspace, cache=cache, retry_policy=RetryPolicy(max_attempts=1),
                             progress_interval=0, sleep=no_sleep)
    return WorkspaceService(provider, workspace, cache=cache, settings=SystemSettings(), orchestrator=orch)


@pytest.mark.asyncio
async def test_fetch_one_uses_cached_type_and_source_mapping(cache):
    workspace = WorkspaceConfig(sources=[
        SourceConfig(source_id=SOURCE_A, type_tag="project"),
        SourceConfig(source_id=SOURCE_B, type_tag="task", mappings={"title": "Task"}),
    ])
    record = raw_record(uid(7), Task=title("From task mapping"), Name=title("wrong"))
    provider = FakeProvider(
        {SOURCE_A: [[]], SOURCE_B: [[record]]},
        records={uid(7): record},
    )
    service = make_service(provider, workspace, cache)
    await service.fetch_all()

    item = await service.fetch_one(uid(7))
    assert item.type == "task"
    assert item.title == "From task mapping"


@pytest.mark.asyncio
async def test_fetch_one_defaults_type(workspace, cache):
    provider = FakeProvider(records={uid(1): raw_record(uid(1), Name=title("x"))})
    item = await make_service(provider, workspace, cache).fetch_one(uid(1))
    assert item.type == "project"


@pytest.mark.asyncio
async def test_fetch_one_rejects_malformed_record(workspace, cache):
    provider = FakeProvider(records={uid(1): {"properties": {}}})
    with pytest.raises(MalformedResponseError):
        await make_service(provider, workspace, cache).fetch_one(uid(1))


@pytest.mark.asyncio
async def test_mutate_status_payload_follows_observed_kind(workspace, cache):
    provider = FakeProvider({
        SOURCE_A: [[raw_record(uid(1), Name=title("a"), Status=status("Todo"))]],
        SOURCE_B: [[raw_record(uid(2), Name=title("b"), Status=select("Todo"))]],
    })
    service = make_service(provider, workspace, cache)
    await service.fetch_all()

    await service.mutate_status(uid(1), "  Done ")
    assert provider.updates[-1] == (uid(1), {"Status": {"status": {"name": "Done"}}})
    assert cache.get_stale(workspace.scope_key()) is None

    await service.fetch_all()
    await service.mutate_status(uid(2), "Done")
    assert provider.updates[-1] == (uid(2), {"Status": {"select": {"name": "Done"}}})


@pytest.mark.asyncio
async def test_mutate_status_defaults_to_select_and_validates(workspace, cache):
    provider = FakeProvider()
    service = make_service(provider, workspace, cache)
    await service.mutate_status(uid(3), "Blocked")
    assert provider.updates == [(uid(3), {"Status": {"select": {"name": "Blocked"}}})]

    with pytest.raises(ValueError):
        await service.mutate_status(uid(3), "   ")


@pytest.mark.asyncio
async def test_mutate_progress_clamps_and_validates(workspace, cache):
    provider = FakeProvider()
    service = make_service(provider, workspace, cache)

    assert await service.mutate_progress(uid(1), 140) == 100.0
    assert await service.mutate_progress(uid(1), -5) == 0.0
    assert provider.updates[0] == (uid(1), {"Progress": {"number": 100.0}})

    for bad in (math.nan, math.inf, "50", True):
        with pytest.raises(ValueError):
            await service.mutate_progress(uid(1), bad)


@pytest.mark.asyncio
async def test_force_invalidate_and_stats(workspace, cache):
    provider = FakeProvider({SOURCE_A: [[raw_record(uid(1), Name=title("a"))]], SOURCE_B: [[]]})
    service = make_service(provider, workspace, cache)
    await service.fetch_all()
    assert service.cache_stats()["entries"] == 1

    await service.force_invalidate()
    stats = service.cache_stats()
    assert stats["entries"] == 0
    assert stats["in_flight"] is False


@pytest.mark.asyncio
async def test_mutation_with_bad_mapping_is_a_config_error(workspace, cache):
    provider = FakeProvider({SOURCE_A: [[]], SOURCE_B: [[raw_record(uid(2), Name=title("t"))]]})
    service = make_service(provider, workspace, cache)
    await service.fetch_all()
    workspace.sources[1].mappings = {"assignee": "Lead"}

    with pytest.raises(ConfigError):
        await service.mutate_progress(uid(2), 50)
    assert provider.updates == []
