"""
Cross-source progress aggregation with throttled emission.

Each source reports its cumulative loaded count page by page. Updates are
forwarded to the callback at most once per interval, except a source's final
update, which is always forwarded at once. total stays None until every
source has finished. Nothing is emitted after the token is cancelled.
"""
import logging
import time
from typing import Callable, Dict, List, Optional

from workgraph.fetching.cancellation import CancellationToken
from workgraph.schemas.items import FetchProgress, NormalizedItem, SourceFailure

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[FetchProgress], None]


class ProgressAggregator:
    def __init__(
        self,
        source_tags: List[str],
        callback: Optional[ProgressCallback],
        interval: float = 0.1,
        token: Optional[CancellationToken] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source_tags = list(source_tags)
        self.callback = callback
        self.interval = interval
        self.token = token
        self.clock = clock

        self.loaded: Dict[str, int] = {tag: 0 for tag in self.source_tags}
        self.items: Dict[str, List[NormalizedItem]] = {tag: [] for tag in self.source_tags}
        self.finished: Dict[str, bool] = {tag: False for tag in self.source_tags}
        self.failures: List[SourceFailure] = []
        self.emitted = 0
        self._last_emit: Optional[float] = None

    @property
    def total_loaded(self) -> int:
        return sum(self.loaded.values())

    @property
    def all_finished(self) -> bool:
        return all(self.finished.values())

    def record_page(self, source_tag: str, new_items: List[NormalizedItem]) -> None:
        """A page arrived for source_tag; loaded counts only ever grow."""
        self.items[source_tag].extend(new_items)
        self.loaded[source_tag] = len(self.items[source_tag])

        now = self.clock()
        if self._last_emit is not None and now - self._last_emit < self.interval:
            return
        self._emit(source_tag)

    def finish_source(self, source_tag: str, failure: Optional[SourceFailure] = None) -> None:
        """Final update for a source; always emitted."""
        self.finished[source_tag] = True
        if failure is not None:
            self.failures.append(failure)
        self._emit(source_tag)

    def snapshot(self, current_source: Optional[str] = None, done: bool = False, orphan_count: int = 0,
                 items: Optional[List[NormalizedItem]] = None) -> FetchProgress:
        if items is None:
            items = [item for tag in self.source_tags for item in self.items[tag]]
        return FetchProgress(
            loaded=self.total_loaded,
            total=self.total_loaded if self.all_finished else None,
            items=items,
            done=done,
            current_source=current_source,
            failures=list(self.failures),
            orphan_count=orphan_count,
        )

    def complete(self, items: List[NormalizedItem], orphan_count: int) -> None:
        """Emit the terminal update once items are linked."""
        if self._suppressed():
            return
        self._deliver(self.snapshot(done=True, orphan_count=orphan_count, items=items))

    def _suppressed(self) -> bool:
        return self.callback is None or (self.token is not None and self.token.cancelled)

    def _emit(self, source_tag: str) -> None:
        if self._suppressed():
            return
        self._last_emit = self.clock()
        self._deliver(self.snapshot(current_source=source_tag))

    def _deliver(self, progress: FetchProgress) -> None:
        try:
            self.callback(progress)
            self.emitted += 1
        except Exception as e:
            logger.error(f"ProgressAggregator: progress callback raised: {e}")
