"""
FetchOrchestrator: concurrent, cancellable, paginated retrieval across sources.

Lifecycle of one orchestrated fetch:
    IDLE -> FETCHING -> AGGREGATING -> DONE | ABORTED

1. Serve a fresh cache entry unless a refresh is forced
2. Join an identical in-flight fetch if one exists (keyed by scope key)
3. Run every source as its own task; pages within a source are sequential
4. Transform each page as it lands and report throttled progress
5. Link parent/child relationships across the union of successful sources
6. Cache the result when any records were fetched

A failing source is captured as a SourceFailure; it never aborts its siblings
and never raises out of fetch_all. When every source fails, the last cached
entry (however old) is served with stale=True. Cancellation is checked before
any work and before every page request; a cancelled fetch writes nothing to
the cache and emits no further progress.
"""
import asyncio
import logging
from collections import Counter
from typing import Awaitable, Callable, Dict, List, Optional, Union

from workgraph.caching.manager import CacheManager
from workgraph.config.mappings import SourceConfig, WorkspaceConfig
from workgraph.config.system_settings import system_settings
from workgraph.fetching.cancellation import CancellationToken
from workgraph.fetching.errors import TransportError, WorkspaceError
from workgraph.fetching.progress import ProgressAggregator, ProgressCallback
from workgraph.fetching.providers.base import SourcePage, SourceProvider
from workgraph.fetching.retry import RetryPolicy
from workgraph.graphs.relationships import build_relationships
from workgraph.ingestion.transformer import RecordTransformer
from workgraph.schemas.items import FetchOutcome, FetchState, NormalizedItem, SourceFailure

logger = logging.getLogger(__name__)

# Result of one source task; None means the source stopped on cancellation
SourceResult = Union[List[NormalizedItem], SourceFailure, None]


class FetchOrchestrator:
    """Drives fetches for one workspace configuration."""

    def __init__(
        self,
        provider: SourceProvider,
        config: WorkspaceConfig,
        transformer: Optional[RecordTransformer] = None,
        cache: Optional[CacheManager] = None,
        retry_policy: Optional[Callable] = None,
        page_size: Optional[int] = None,
        timeout: Optional[float] = None,
        progress_interval: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.config = config
        self.transformer = transformer or RecordTransformer(
            config.default_mappings,
            config.aliases,
            strict_relation_fallback=system_settings.RELATION_FALLBACK_STRICT,
        )
        self.cache = cache or CacheManager()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.page_size = page_size or system_settings.PAGE_SIZE
        self.timeout = timeout or system_settings.FETCH_TIMEOUT_SECONDS
        self.progress_interval = (
            progress_interval if progress_interval is not None else system_settings.PROGRESS_INTERVAL_SECONDS
        )
        self.sleep = sleep

        self.state = FetchState.IDLE
        self._in_flight: Dict[str, asyncio.Future] = {}

        logger.info(
            f"FetchOrchestrator initialized: {len(config.sources)} sources, "
            f"page_size={self.page_size}, timeout={self.timeout}s"
        )

    @property
    def scope_key(self) -> str:
        return self.config.scope_key()

    def source_tags(self) -> Dict[str, str]:
        """source_id -> tag; the type tag, disambiguated when two sources share one."""
        counts = Counter(s.type_tag for s in self.config.sources)
        return {
            s.source_id: s.type_tag if counts[s.type_tag] == 1 else f"{s.type_tag}:{s.source_id[:8]}"
            for s in self.config.sources
        }

    def is_in_flight(self, key: Optional[str] = None) -> bool:
        return (key or self.scope_key) in self._in_flight

    # ===== Entry point =====

    async def fetch_all(
        self,
        token: Optional[CancellationToken] = None,
        on_progress: Optional[ProgressCallback] = None,
        force_refresh: bool = False,
    ) -> FetchOutcome:
        """
        Fetch every configured source, or serve the cache.

        Concurrent callers for the same scope share one flight. The flight is
        bound to the first caller's token and progress callback; joiners only
        receive the shared outcome.
        """
        key = self.scope_key

        if token is not None and token.cancelled:
            logger.info(f"FetchOrchestrator: fetch for {key} cancelled before start")
            return FetchOutcome.aborted(key)

        if not force_refresh:
            entry = self.cache.get(key)
            if entry is not None:
                return FetchOutcome(
                    state=FetchState.DONE, scope_key=key, from_cache=True,
                    items=[item.model_copy(deep=True) for item in entry.items],
                )

        existing = self._in_flight.get(key)
        if existing is not None:
            logger.info(f"FetchOrchestrator: joining in-flight fetch for {key}")
            return await asyncio.shield(existing)

        flight = asyncio.ensure_future(self._run(key, token or CancellationToken(), on_progress))
        self._in_flight[key] = flight
        flight.add_done_callback(lambda done: self._release(key, done))
        return await asyncio.shield(flight)

    def _release(self, key: str, flight: asyncio.Future) -> None:
        if self._in_flight.get(key) is flight:
            del self._in_flight[key]

    # ===== One orchestrated fetch =====

    async def _run(
        self,
        key: str,
        token: CancellationToken,
        on_progress: Optional[ProgressCallback],
    ) -> FetchOutcome:
        if token.cancelled:
            self.state = FetchState.ABORTED
            return FetchOutcome.aborted(key)

        self.state = FetchState.FETCHING
        tags = self.source_tags()
        progress = ProgressAggregator(
            [tags[s.source_id] for s in self.config.sources],
            on_progress,
            interval=self.progress_interval,
            token=token,
        )
        logger.info(f"FetchOrchestrator: fetching {len(self.config.sources)} sources for {key}")

        results: List[SourceResult] = await asyncio.gather(*[
            self._fetch_source(source, tags[source.source_id], token, progress)
            for source in self.config.sources
        ])

        if token.cancelled:
            self.state = FetchState.ABORTED
            logger.info(f"FetchOrchestrator: fetch for {key} aborted ({token.reason or 'cancelled'})")
            return FetchOutcome.aborted(key)

        self.state = FetchState.AGGREGATING
        items: List[NormalizedItem] = []
        failures: List[SourceFailure] = []
        for result in results:
            if isinstance(result, SourceFailure):
                failures.append(result)
            elif result:
                items.extend(result)

        if failures and len(failures) == len(self.config.sources):
            outcome = self._fallback(key, failures)
            self.state = FetchState.DONE
            progress.complete(outcome.items, outcome.orphan_count)
            return outcome

        orphan_count = build_relationships(items)
        if items:
            await self.cache.set(key, items)

        progress.complete(items, orphan_count)
        self.state = FetchState.DONE
        logger.info(
            f"FetchOrchestrator: fetched {len(items)} items for {key} "
            f"({len(failures)} failed sources, {orphan_count} orphans)"
        )
        return FetchOutcome(
            state=FetchState.DONE, scope_key=key, items=items, failures=failures, orphan_count=orphan_count,
            source_count=len(self.config.sources),
        )

    def _fallback(self, key: str, failures: List[SourceFailure]) -> FetchOutcome:
        """Every source failed: serve the last known-good entry when there is one."""
        stale = self.cache.get_stale(key)
        if stale is None:
            logger.warning(f"FetchOrchestrator: all {len(failures)} sources failed for {key}, nothing cached")
            return FetchOutcome(
                state=FetchState.DONE, scope_key=key, failures=failures, source_count=len(self.config.sources),
            )

        logger.warning(
            f"FetchOrchestrator: all {len(failures)} sources failed for {key}, "
            f"serving {len(stale.items)} stale items"
        )
        items = [item.model_copy(deep=True) for item in stale.items]
        orphan_count = build_relationships(items)
        return FetchOutcome(
            state=FetchState.DONE, scope_key=key, items=items, failures=failures,
            orphan_count=orphan_count, from_cache=True, stale=True, source_count=len(self.config.sources),
        )

    # ===== Per source =====

    async def _fetch_source(
        self,
        source: SourceConfig,
        tag: str,
        token: CancellationToken,
        progress: ProgressAggregator,
    ) -> SourceResult:
        items: List[NormalizedItem] = []
        cursor: Optional[str] = None
        pages = 0

        try:
            mapping = self.transformer.effective_mapping(overrides=source.mappings)
            while True:
                page = await self._fetch_page(source, tag, cursor, token)
                if page is None or token.cancelled:
                    return None

                pages += 1
                new_items = self.transformer.transform_batch(page.records, source.type_tag, mapping)
                items.extend(new_items)
                progress.record_page(tag, new_items)
                logger.debug(f"FetchOrchestrator: {tag} page {pages}: {len(new_items)} items ({len(items)} total)")

                if not page.has_more or not page.next_cursor:
                    break
                if page.next_cursor == cursor:
                    logger.warning(f"FetchOrchestrator: {tag} returned the same cursor twice, stopping")
                    break
                cursor = page.next_cursor

        except WorkspaceError as e:
            return self._fail(tag, e.message, progress, token)
        except Exception as e:
            logger.error(f"FetchOrchestrator: unexpected error fetching {tag}: {e}", exc_info=True)
            return self._fail(tag, str(e) or type(e).__name__, progress, token)

        if token.cancelled:
            return None
        progress.finish_source(tag)
        return items

    def _fail(self, tag: str, message: str, progress: ProgressAggregator, token: CancellationToken) -> SourceResult:
        if token.cancelled:
            return None
        logger.warning(f"FetchOrchestrator: source {tag} failed: {message}")
        failure = SourceFailure(source_tag=tag, message=message)
        progress.finish_source(tag, failure)
        return failure

    async def _fetch_page(
        self,
        source: SourceConfig,
        tag: str,
        cursor: Optional[str],
        token: CancellationToken,
    ) -> Optional[SourcePage]:
        """One page with timeout and retries; None when cancelled between attempts."""
        attempt = 0
        while True:
            attempt += 1
            if token.cancelled:
                return None

            try:
                return await asyncio.wait_for(
                    self.provider.fetch_page(source.source_id, cursor, self.page_size),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError:
                error: WorkspaceError = TransportError(f"Request for {tag} timed out after {self.timeout}s")
            except WorkspaceError as e:
                error = e

            decision = self.retry_policy(attempt, error)
            if not decision.retry:
                raise error

            logger.info(f"FetchOrchestrator: {tag} attempt {attempt} failed ({error.message}), retrying in {decision.delay}s")
            await self.sleep(decision.delay)
