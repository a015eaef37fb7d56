"""Parent/child linking over a normalized item set.

build_relationships is a single flat pass: no recursion, safe on arbitrarily
large sets and on cyclic parent pointers (a cycle simply links items to each
other). Walking up the hierarchy is a separate concern; find_ancestors carries
its own visited set and iteration cap because upstream data may contain
cycles.
"""
import logging
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from workgraph.schemas.items import NormalizedItem, OrphanRecord

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 100


def index_items(items: Iterable[NormalizedItem]) -> Dict[str, NormalizedItem]:
    """id -> item. Later duplicates win."""
    return {item.id: item for item in items}


def build_relationships(
    items: List[NormalizedItem],
    on_orphans: Optional[Callable[[List[OrphanRecord]], None]] = None,
) -> int:
    """Rebuild every item's children from parent_id links, in place.

    Returns the number of orphans (items whose parent is absent from `items`).
    Orphans keep their parent_id and stay valid standalone items.
    """
    index = index_items(items)
    for item in items:
        item.children = []

    orphans: List[OrphanRecord] = []
    linked: Set[Tuple[str, str]] = set()
    for item in items:
        if not item.parent_id:
            continue
        parent = index.get(item.parent_id)
        if parent is None:
            orphans.append(OrphanRecord(id=item.id, title=item.title, parent_id=item.parent_id))
            continue
        if (parent.id, item.id) in linked:
            continue
        linked.add((parent.id, item.id))
        parent.children.append(item.id)

    if orphans:
        logger.warning(
            f"RelationshipBuilder: {len(orphans)} orphaned items (parent not found). "
            f"This may indicate missing sources or cross-source relations that could not be resolved."
        )
        logger.debug(
            "RelationshipBuilder: orphans: "
            + "; ".join(f"{o.id} '{o.title}' -> {o.parent_id}" for o in orphans)
        )
        if on_orphans is not None:
            on_orphans(orphans)

    return len(orphans)


def find_ancestors(
    item_id: str,
    index: Dict[str, NormalizedItem],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> List[NormalizedItem]:
    """Ancestors of `item_id`, nearest first.

    Stops at a missing parent, a cycle, or after `max_depth` steps.
    """
    ancestors: List[NormalizedItem] = []
    visited = {item_id}

    current = index.get(item_id)
    steps = 0
    while current is not None and current.parent_id:
        if steps >= max_depth:
            logger.warning(f"find_ancestors: depth cap {max_depth} reached from {item_id}")
            break
        steps += 1

        parent_id = current.parent_id
        if parent_id in visited:
            logger.warning(f"find_ancestors: cycle detected at {parent_id} walking up from {item_id}")
            break
        visited.add(parent_id)

        parent = index.get(parent_id)
        if parent is None:
            break
        ancestors.append(parent)
        current = parent

    return ancestors
