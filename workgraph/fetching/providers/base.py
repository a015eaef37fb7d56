"""
Base provider contract for source fetching.

All providers must implement this contract:
- fetch_page returns one bounded page plus an opaque continuation cursor
- fetch_record returns a single raw record by id
- update_properties patches raw property payloads on one record
- failures are raised as TransportError (retryable) or UpstreamError

The orchestrator owns pagination, retries, timeouts and cancellation;
providers perform exactly one upstream call per method invocation.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class SourcePage(BaseModel):
    """One page of raw records from a source."""
    records: List[Dict[str, Any]] = Field(default_factory=list)
    has_more: bool = False
    next_cursor: Optional[str] = None


class SourceProvider(ABC):
    """Abstract base class for workspace source providers."""

    name = "base"

    @abstractmethod
    async def fetch_page(self, source_id: str, cursor: Optional[str], page_size: int) -> SourcePage:
        """
        Fetch one page of records from a source.

        Args:
            source_id: normalized source (database) id
            cursor: continuation cursor from the previous page, None for the first
            page_size: upper bound on records returned

        Returns:
            SourcePage; next_cursor is None on the last page
        """
        pass

    @abstractmethod
    async def fetch_record(self, record_id: str) -> Dict[str, Any]:
        """Fetch one raw record by id."""
        pass

    @abstractmethod
    async def update_properties(self, record_id: str, properties: Dict[str, Any]) -> None:
        """Patch raw property payloads on a record."""
        pass

    async def close(self) -> None:
        """Release transport resources. Optional."""
        return None
