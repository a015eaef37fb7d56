"""
Notion source provider.

One HTTP call per method. requests is blocking, so every call runs in a worker
thread via asyncio.to_thread and never stalls the event loop. Non-2xx answers
are mapped onto the error taxonomy; 2xx answers are shape-checked before being
handed back.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from workgraph.config.system_settings import system_settings
from workgraph.fetching.errors import MalformedResponseError, TransportError, error_for_status
from workgraph.fetching.providers.base import SourcePage, SourceProvider

logger = logging.getLogger(__name__)


class NotionProvider(SourceProvider):
    """Notion REST API (databases/query, pages)."""

    name = "notion"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        version: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or system_settings.NOTION_API_KEY
        if not self.api_key:
            raise ValueError("NotionProvider requires an API key (NOTION_API_KEY)")

        self.base_url = (base_url or system_settings.NOTION_BASE_URL).rstrip("/")
        self.version = version or system_settings.NOTION_VERSION
        self.timeout = timeout or system_settings.FETCH_TIMEOUT_SECONDS
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {self.api_key}",
            "Notion-Version": self.version,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })

        logger.info(f"NotionProvider initialized: base_url={self.base_url}, version={self.version}")

    def _request(self, method: str, endpoint: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise TransportError(f"Request to {endpoint} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise TransportError(f"Could not reach upstream API: {e}") from e

        if not response.ok:
            logger.debug(f"NotionProvider: {method} {endpoint} -> {response.status_code}")
            raise error_for_status(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Upstream returned non-JSON body for {endpoint}") from e

        if not isinstance(data, dict):
            raise MalformedResponseError(f"Upstream returned {type(data).__name__} for {endpoint}, expected object")
        return data

    def _query_database(self, source_id: str, cursor: Optional[str], page_size: int) -> SourcePage:
        body: Dict[str, Any] = {"page_size": page_size}
        if cursor:
            body["start_cursor"] = cursor

        data = self._request("POST", f"/databases/{source_id}/query", body)

        results = data.get("results")
        if not isinstance(results, list):
            raise MalformedResponseError(f"Query response for {source_id} has no results list")

        next_cursor = data.get("next_cursor")
        has_more = bool(data.get("has_more")) and isinstance(next_cursor, str) and bool(next_cursor)
        return SourcePage(
            records=[r for r in results if isinstance(r, dict)],
            has_more=has_more,
            next_cursor=next_cursor if has_more else None,
        )

    async def fetch_page(self, source_id: str, cursor: Optional[str], page_size: int) -> SourcePage:
        return await asyncio.to_thread(self._query_database, source_id, cursor, page_size)

    async def fetch_record(self, record_id: str) -> Dict[str, Any]:
        data = await asyncio.to_thread(self._request, "GET", f"/pages/{record_id}")
        if not isinstance(data.get("id"), str):
            raise MalformedResponseError(f"Page response for {record_id} has no id")
        return data

    async def update_properties(self, record_id: str, properties: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._request, "PATCH", f"/pages/{record_id}", {"properties": properties})
        logger.info(f"NotionProvider: updated {list(properties)} on {record_id}")

    async def close(self) -> None:
        self.session.close()
