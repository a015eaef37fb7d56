"""Item cache: ephemeral in-memory tier plus an optional durable Redis tier."""

from .manager import CacheEntry, CacheManager
from .store import DurableStore, RedisDurableStore

__all__ = ["CacheEntry", "CacheManager", "DurableStore", "RedisDurableStore"]
