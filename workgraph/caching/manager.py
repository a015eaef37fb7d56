"""Two-tier item cache: in-memory ephemeral tier over an optional durable store.

Ephemeral entries expire after CACHE_TTL_SECONDS for get(); get_stale() ignores
age and serves as the fallback when a live fetch fails outright. The durable
tier survives restarts: bootstrap() hydrates every well-formed entry younger
than DURABLE_CACHE_TTL_SECONDS and garbage-collects the rest.

Persisted layout:
    <prefix><scope key>  -> {"items": [...], "timestamp": <epoch ms>}
    <manifest key>       -> {"keys": [...], "lastCleanupTimestamp": <epoch ms>}

Durable-tier errors never propagate out of this module.
"""
import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from workgraph.caching.store import DurableStore
from workgraph.config.system_settings import system_settings
from workgraph.schemas.items import NormalizedItem

logger = logging.getLogger(__name__)


def epoch_ms() -> float:
    return time.time() * 1000


class CacheEntry(BaseModel):
    items: List[NormalizedItem] = Field(default_factory=list)
    timestamp: float


def _is_entry_shape(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    timestamp = payload.get("timestamp")
    return (
        isinstance(payload.get("items"), list)
        and isinstance(timestamp, (int, float))
        and not isinstance(timestamp, bool)
    )


class CacheManager:
    """Ephemeral + durable cache keyed by fetch scope."""

    def __init__(
        self,
        store: Optional[DurableStore] = None,
        ttl_seconds: Optional[float] = None,
        durable_ttl_seconds: Optional[float] = None,
        key_prefix: Optional[str] = None,
        manifest_key: Optional[str] = None,
        clock: Callable[[], float] = epoch_ms,
    ):
        self.store = store
        self.ttl_ms = (ttl_seconds if ttl_seconds is not None else system_settings.CACHE_TTL_SECONDS) * 1000
        self.durable_ttl_seconds = (
            durable_ttl_seconds if durable_ttl_seconds is not None else system_settings.DURABLE_CACHE_TTL_SECONDS
        )
        self.key_prefix = key_prefix if key_prefix is not None else system_settings.CACHE_KEY_PREFIX
        self.manifest_key = manifest_key or system_settings.CACHE_MANIFEST_KEY
        self.clock = clock

        self._entries: Dict[str, CacheEntry] = {}
        self._manifest_lock = asyncio.Lock()
        self.hits = 0
        self.misses = 0

    # ===== Ephemeral tier =====

    def get(self, key: str) -> Optional[CacheEntry]:
        """Entry if younger than the ephemeral TTL."""
        entry = self._entries.get(key)
        if entry is not None and self.clock() - entry.timestamp < self.ttl_ms:
            self.hits += 1
            logger.debug(f"CacheManager: hit for {key} ({len(entry.items)} items)")
            return entry
        self.misses += 1
        logger.debug(f"CacheManager: miss for {key}")
        return None

    def get_stale(self, key: str) -> Optional[CacheEntry]:
        """Entry regardless of age."""
        return self._entries.get(key)

    def has(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self.clock() - entry.timestamp < self.ttl_ms

    async def set(self, key: str, items: List[NormalizedItem]) -> CacheEntry:
        """Write the ephemeral tier, then attempt the durable write.

        Items are copied in; callers keep ownership of the list they passed.
        """
        entry = CacheEntry(items=[item.model_copy(deep=True) for item in items], timestamp=self.clock())
        self._entries[key] = entry
        await self._save_durable(key, entry)
        return entry

    async def clear(self) -> None:
        """Wipe both tiers and the manifest."""
        keys = list(self._entries)
        self._entries.clear()
        logger.info(f"CacheManager: cleared {len(keys)} ephemeral entries")

        if self.store is None:
            return
        try:
            manifest = await self._read_manifest()
            persisted = set(manifest["keys"]) | set(keys)
            await self.store.delete(*[self.key_prefix + k for k in persisted], self.manifest_key)
        except Exception as e:
            logger.warning(f"CacheManager: failed to clear durable tier: {e}")

    def stats(self) -> Dict[str, Any]:
        return {
            "keys": list(self._entries),
            "entries": len(self._entries),
            "hits": self.hits,
            "misses": self.misses,
            "durable": self.store is not None,
        }

    # ===== Durable tier =====

    async def bootstrap(self) -> int:
        """Hydrate the ephemeral tier from the durable store; returns entries loaded."""
        if self.store is None:
            return 0

        try:
            manifest = await self._read_manifest()
        except Exception as e:
            logger.warning(f"CacheManager: failed to read cache manifest: {e}")
            return 0

        now = self.clock()
        durable_ttl_ms = self.durable_ttl_seconds * 1000
        kept: List[str] = []
        dropped: List[str] = []

        for key in manifest["keys"]:
            try:
                raw = await self.store.get(self.key_prefix + key)
            except Exception as e:
                logger.warning(f"CacheManager: failed to read durable entry {key}: {e}")
                kept.append(key)
                continue

            if raw is None:
                dropped.append(key)
                continue

            entry = self._parse_entry(key, raw)
            if entry is None:
                dropped.append(key)
                continue

            if now - entry.timestamp >= durable_ttl_ms:
                logger.debug(f"CacheManager: durable entry {key} expired")
                dropped.append(key)
                continue

            self._entries[key] = entry
            kept.append(key)
            logger.info(f"CacheManager: loaded {len(entry.items)} items for {key} from durable cache")

        if dropped or manifest.get("reset"):
            await self._collect(dropped, kept, now)

        return len(self._entries)

    def _parse_entry(self, key: str, raw: str) -> Optional[CacheEntry]:
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning(f"CacheManager: unparseable durable entry for {key}, removing")
            return None

        if not _is_entry_shape(payload):
            logger.warning(f"CacheManager: invalid durable entry for {key}, removing")
            return None

        try:
            return CacheEntry.model_validate(payload)
        except ValidationError as e:
            logger.warning(f"CacheManager: durable entry for {key} has invalid items ({e.error_count()} errors), removing")
            return None

    async def _collect(self, dropped: List[str], kept: List[str], now: float) -> None:
        try:
            if dropped:
                await self.store.delete(*[self.key_prefix + k for k in dropped])
            await self._write_manifest({"keys": kept, "lastCleanupTimestamp": now})
            if dropped:
                logger.info(f"CacheManager: garbage-collected {len(dropped)} durable entries")
        except Exception as e:
            logger.warning(f"CacheManager: durable cleanup failed: {e}")

    async def _read_manifest(self) -> Dict[str, Any]:
        """Manifest from the store; a corrupt one reads as empty with reset=True."""
        empty = {"keys": [], "lastCleanupTimestamp": self.clock()}
        raw = await self.store.get(self.manifest_key)
        if raw is None:
            return empty

        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.warning("CacheManager: corrupted cache manifest, resetting")
            return {**empty, "reset": True}

        if not isinstance(parsed, dict) or not isinstance(parsed.get("keys"), list):
            logger.warning("CacheManager: invalid cache manifest structure, resetting")
            return {**empty, "reset": True}

        keys = [k for k in parsed["keys"] if isinstance(k, str)]
        last_cleanup = parsed.get("lastCleanupTimestamp")
        if not isinstance(last_cleanup, (int, float)):
            last_cleanup = empty["lastCleanupTimestamp"]
        return {"keys": keys, "lastCleanupTimestamp": last_cleanup}

    async def _write_manifest(self, manifest: Dict[str, Any]) -> None:
        await self.store.set(self.manifest_key, json.dumps({
            "keys": manifest["keys"],
            "lastCleanupTimestamp": manifest["lastCleanupTimestamp"],
        }))

    async def _save_durable(self, key: str, entry: CacheEntry) -> None:
        if self.store is None:
            return
        try:
            await self.store.set(
                self.key_prefix + key,
                entry.model_dump_json(),
                ttl_seconds=int(self.durable_ttl_seconds),
            )
            async with self._manifest_lock:
                manifest = await self._read_manifest()
                if key not in manifest["keys"]:
                    manifest["keys"].append(key)
                await self._write_manifest(manifest)
            logger.info(f"CacheManager: saved {len(entry.items)} items for {key} to durable cache")
        except Exception as e:
            logger.warning(f"CacheManager: failed to save durable cache for {key}: {e}")
