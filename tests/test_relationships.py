import time

from workgraph.graphs.relationships import build_relationships, find_ancestors, index_items
from workgraph.schemas.items import NormalizedItem


def item(item_id, parent_id=None):
    return NormalizedItem(id=item_id, title=item_id.upper(), type="task", parent_id=parent_id)


def test_children_match_parent_links():
    items = [item("a"), item("b", "a"), item("c", "a"), item("d", "b")]
    assert build_relationships(items) == 0

    by_id = index_items(items)
    assert by_id["a"].children == ["b", "c"]
    assert by_id["b"].children == ["d"]
    assert by_id["c"].children == []


def test_orphans_counted_and_reported():
    items = [item("a"), item("b", "missing"), item("c", "gone"), item("d", "a")]
    seen = []
    assert build_relationships(items, on_orphans=seen.extend) == 2

    assert [(o.id, o.parent_id) for o in seen] == [("b", "missing"), ("c", "gone")]
    orphan = index_items(items)["b"]
    assert orphan.parent_id == "missing"
    assert orphan.children == []


def test_rebuild_is_idempotent_and_never_duplicates():
    items = [item("a"), item("b", "a")]
    items[0].children = ["b", "stale"]
    build_relationships(items)
    build_relationships(items)
    assert items[0].children == ["b"]


def test_duplicate_ids_do_not_duplicate_children():
    items = [item("a"), item("b", "a"), item("b", "a")]
    build_relationships(items)
    assert items[0].children == ["b"]


def test_cycle_is_linked_without_recursion():
    items = [item("a", "b"), item("b", "a")]
    assert build_relationships(items) == 0
    assert items[0].children == ["b"]
    assert items[1].children == ["a"]


def test_large_flat_chain():
    items = [item("n0")] + [item(f"n{i}", f"n{i - 1}") for i in range(1, 5000)]
    assert build_relationships(items) == 0
    assert items[4998].children == ["n4999"]


def test_wide_parent_links_quickly():
    children = [item(f"c{i}", "root") for i in range(40000)]
    items = [item("root")] + children + [children[0].model_copy()]

    started = time.perf_counter()
    assert build_relationships(items) == 0
    assert time.perf_counter() - started < 1.0

    assert len(items[0].children) == 40000
    assert items[0].children[:3] == ["c0", "c1", "c2"]


def test_find_ancestors():
    items = [item("a"), item("b", "a"), item("c", "b")]
    index = index_items(items)
    assert [a.id for a in find_ancestors("c", index)] == ["b", "a"]
    assert find_ancestors("a", index) == []


def test_find_ancestors_stops_on_cycle_and_cap():
    index = index_items([item("a", "c"), item("b", "a"), item("c", "b")])
    assert [a.id for a in find_ancestors("a", index)] == ["c", "b"]

    chain = index_items([item("n0")] + [item(f"n{i}", f"n{i - 1}") for i in range(1, 50)])
    assert len(find_ancestors("n49", chain, max_depth=10)) == 10
