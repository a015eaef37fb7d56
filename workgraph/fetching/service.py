"""
WorkspaceService: outbound API over the ingestion pipeline.

Owns one provider, one transformer, one cache and one orchestrator for a
workspace. Reads go through the orchestrator (cache-first); mutations go
straight to the provider and invalidate the cache after they succeed.
"""
import logging
import math
from typing import Any, Dict, Optional

from workgraph.caching.manager import CacheManager
from workgraph.caching.store import RedisDurableStore
from workgraph.config.loader import ConfigError, load_workspace_config
from workgraph.config.mappings import MappingConfig, WorkspaceConfig
from workgraph.config.system_settings import SystemSettings, system_settings
from workgraph.core.identifiers import normalize_uuid
from workgraph.fetching.cancellation import CancellationToken
from workgraph.fetching.errors import MalformedResponseError
from workgraph.fetching.orchestrator import FetchOrchestrator
from workgraph.fetching.progress import ProgressCallback
from workgraph.fetching.providers import get_provider
from workgraph.fetching.providers.base import SourceProvider
from workgraph.fetching.retry import RetryPolicy
from workgraph.ingestion.transformer import RecordTransformer
from workgraph.schemas.items import FetchOutcome, NormalizedItem
from workgraph.schemas.properties import ExternalRecord, PropertyKind

logger = logging.getLogger(__name__)


class WorkspaceService:
    """Fetch, read and mutate items for one configured workspace."""

    def __init__(
        self,
        provider: SourceProvider,
        config: WorkspaceConfig,
        cache: Optional[CacheManager] = None,
        settings: Optional[SystemSettings] = None,
        orchestrator: Optional[FetchOrchestrator] = None,
    ):
        self.settings = settings or system_settings
        self.provider = provider
        self.config = config
        self.cache = cache or CacheManager(
            ttl_seconds=self.settings.CACHE_TTL_SECONDS,
            durable_ttl_seconds=self.settings.DURABLE_CACHE_TTL_SECONDS,
        )
        self.orchestrator = orchestrator or FetchOrchestrator(
            provider,
            config,
            transformer=RecordTransformer(
                config.default_mappings,
                config.aliases,
                strict_relation_fallback=self.settings.RELATION_FALLBACK_STRICT,
            ),
            cache=self.cache,
            retry_policy=RetryPolicy.from_settings(self.settings),
            page_size=self.settings.PAGE_SIZE,
            timeout=self.settings.FETCH_TIMEOUT_SECONDS,
            progress_interval=self.settings.PROGRESS_INTERVAL_SECONDS,
        )
        logger.info(f"WorkspaceService initialized for scope {config.scope_key()}")

    @property
    def transformer(self) -> RecordTransformer:
        return self.orchestrator.transformer

    # ===== Reads =====

    async def fetch_all(
        self,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
        force_refresh: bool = False,
    ) -> FetchOutcome:
        return await self.orchestrator.fetch_all(token=token, on_progress=on_progress, force_refresh=force_refresh)

    async def fetch_one(self, record_id: str, type_tag: Optional[str] = None) -> NormalizedItem:
        """Fetch one record live and normalize it with its source's mapping."""
        type_tag = type_tag or self._known_type(record_id) or self.settings.DEFAULT_ITEM_TYPE

        raw = await self.provider.fetch_record(record_id)
        try:
            record = ExternalRecord.from_raw(raw)
        except ValueError as e:
            raise MalformedResponseError(f"Record {record_id} could not be read: {e}") from e

        return self.transformer.transform(record, type_tag, overrides=self._overrides_for(type_tag))

    # ===== Mutations =====

    async def mutate_status(self, record_id: str, value: str) -> None:
        """Set the status label; payload kind follows the observed property kind."""
        status = (value or "").strip()
        if not status:
            raise ValueError("Status must be a non-empty string")

        type_tag = self._known_type(record_id)
        name = self._mapping_for(type_tag).status
        kind = self.transformer.property_kind(name, type_tag) if type_tag else None
        if kind is None:
            kind = self.transformer.property_kind(name)

        payload_kind = PropertyKind.STATUS.value if kind == PropertyKind.STATUS.value else PropertyKind.SELECT.value
        await self.provider.update_properties(record_id, {name: {payload_kind: {"name": status}}})
        logger.info(f"WorkspaceService: status of {record_id} set to '{status}' via {payload_kind}")
        await self.force_invalidate()

    async def mutate_progress(self, record_id: str, value: float) -> float:
        """Set numeric progress, clamped to [0, 100]; returns the stored value."""
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError("Progress must be a finite number")
        clamped = float(min(100.0, max(0.0, value)))

        name = self._mapping_for(self._known_type(record_id)).progress
        await self.provider.update_properties(record_id, {name: {"number": clamped}})
        logger.info(f"WorkspaceService: progress of {record_id} set to {clamped}")
        await self.force_invalidate()
        return clamped

    async def force_invalidate(self) -> None:
        await self.cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        stats = self.cache.stats()
        stats["in_flight"] = self.orchestrator.is_in_flight()
        return stats

    async def close(self) -> None:
        await self.provider.close()
        if self.cache.store is not None:
            await self.cache.store.close()

    # ===== Helpers =====

    def _known_type(self, record_id: str) -> Optional[str]:
        entry = self.cache.get_stale(self.config.scope_key())
        if entry is None:
            return None
        wanted = normalize_uuid(record_id) or record_id
        for item in entry.items:
            if item.id == wanted:
                return item.type
        return None

    def _overrides_for(self, type_tag: Optional[str]) -> Optional[Dict[str, str]]:
        source = self.config.source_for_type(type_tag) if type_tag else None
        return source.mappings if source else None

    def _mapping_for(self, type_tag: Optional[str]) -> MappingConfig:
        try:
            return self.transformer.effective_mapping(overrides=self._overrides_for(type_tag))
        except ValueError as e:
            raise ConfigError(f"Invalid mapping for type '{type_tag}': {e}") from e


async def build_workspace_service(
    settings: Optional[SystemSettings] = None,
    config: Optional[WorkspaceConfig] = None,
    provider_name: str = "notion",
) -> WorkspaceService:
    """Wire settings, workspace file, provider and cache; hydrates the cache."""
    settings = settings or system_settings

    if config is None:
        if not settings.WORKSPACE_CONFIG_PATH:
            raise ConfigError("WORKSPACE_CONFIG_PATH is not set")
        config = load_workspace_config(settings.WORKSPACE_CONFIG_PATH)

    try:
        provider = get_provider(
            provider_name,
            api_key=settings.NOTION_API_KEY,
            base_url=settings.NOTION_BASE_URL,
            version=settings.NOTION_VERSION,
            timeout=settings.FETCH_TIMEOUT_SECONDS,
        )
    except ValueError as e:
        raise ConfigError(str(e)) from e
    if provider is None:
        raise ConfigError(f"Unknown provider: {provider_name}")

    store = RedisDurableStore(settings.REDIS_URL) if settings.REDIS_URL else None
    if store is None:
        logger.info("build_workspace_service: REDIS_URL not set, durable cache tier disabled")

    cache = CacheManager(
        store,
        ttl_seconds=settings.CACHE_TTL_SECONDS,
        durable_ttl_seconds=settings.DURABLE_CACHE_TTL_SECONDS,
        key_prefix=settings.CACHE_KEY_PREFIX,
        manifest_key=settings.CACHE_MANIFEST_KEY,
    )
    loaded = await cache.bootstrap()
    logger.info(f"build_workspace_service: {loaded} cache entries hydrated")

    return WorkspaceService(provider, config, cache=cache, settings=settings)
