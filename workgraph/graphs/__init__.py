"""Hierarchy construction over normalized items.

Deterministic and in-memory. parent_id is authoritative; children is derived.
"""

from .relationships import build_relationships, find_ancestors, index_items

__all__ = ["build_relationships", "find_ancestors", "index_items"]
