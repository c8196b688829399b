from types import SimpleNamespace

from storefront.hierarchy import (
    ancestor_chain,
    build_children_map,
    build_tree,
    category_path,
    count_products,
    descendant_ids,
    flatten_tree,
    generate_slug,
    slugify,
    would_create_cycle,
)


def _category(id, name, parent=None, sort_order=0):
    return SimpleNamespace(
        id=id,
        name=name,
        slug=slugify(name),
        description="",
        image="",
        visibility="public",
        sort_order=sort_order,
        parent_category=parent,
    )


def _wood():
    return [
        _category(1, "Wood"),
        _category(2, "Oak", parent=1),
        _category(3, "Tables", parent=2),
    ]


def _counter(products):
    def counter(ids):
        return sum(1 for product in products if product["category"] in ids)

    return counter


def test_generate_slug_collapses_non_alphanumerics():
    assert generate_slug("  Modern Oak -- Table! ", set()) == "modern-oak-table"
    assert generate_slug("Éco Chair", set()) == "co-chair"


def test_generate_slug_appends_counter_on_collision():
    assert generate_slug("Modern Oak Table!", {"modern-oak-table"}) == "modern-oak-table-1"
    taken = {"oak", "oak-1", "oak-2"}
    assert generate_slug("Oak", taken) == "oak-3"


def test_generate_slug_reapplied_to_its_output_yields_new_value():
    existing = {"oak", "oak-1"}
    first = generate_slug("Oak", existing)
    second = generate_slug(first, existing | {first})
    assert first == "oak-2"
    assert second not in existing | {first}


def test_no_parent_never_cycles():
    assert would_create_cycle(1, None, _wood()) is False
    assert would_create_cycle(99, None, []) is False


def test_category_cannot_be_its_own_parent():
    for category in _wood():
        assert would_create_cycle(category.id, category.id, _wood()) is True


def test_parent_under_descendant_is_a_cycle():
    assert would_create_cycle(1, 3, _wood()) is True
    assert ancestor_chain(3, _wood()) == [3, 2, 1]


def test_valid_reparenting_is_not_a_cycle():
    categories = _wood() + [_category(4, "Metal")]
    assert would_create_cycle(3, 4, categories) is False
    assert would_create_cycle(4, 3, categories) is False


def test_dangling_parent_terminates_walk():
    categories = [_category(1, "Orphan", parent=42)]
    assert would_create_cycle(2, 1, categories) is False
    assert ancestor_chain(1, categories) == [1]


def test_corrupted_snapshot_does_not_loop():
    categories = [_category(1, "A", parent=2), _category(2, "B", parent=1)]
    assert would_create_cycle(3, 1, categories) is True
    assert ancestor_chain(1, categories) == [1, 2]
    assert descendant_ids(1, categories) == {2}


def test_category_path_runs_root_to_leaf():
    assert category_path(3, _wood()) == ["Wood", "Oak", "Tables"]
    assert category_path(1, _wood()) == ["Wood"]
    assert category_path(42, _wood()) == []


def test_descendants_follow_all_levels():
    categories = _wood() + [_category(4, "Chairs", parent=2), _category(5, "Metal")]
    assert descendant_ids(1, categories) == {2, 3, 4}
    assert descendant_ids(3, categories) == set()


def test_count_products_includes_descendants():
    products = [{"category": 2}, {"category": 3}, {"category": 3}]
    assert count_products(1, _wood(), _counter(products)) == 3
    assert count_products(2, _wood(), _counter(products)) == 3
    assert count_products(3, _wood(), _counter(products)) == 2


def test_count_products_skips_descendant_query_for_leaves():
    calls = []

    def counter(ids):
        calls.append(set(ids))
        return len(ids)

    assert count_products(3, _wood(), counter) == 1
    assert calls == [{3}]


def test_build_tree_nests_with_levels():
    tree = build_tree(_wood())
    assert [node.name for node in tree] == ["Wood"]
    oak = tree[0].children[0]
    assert oak.level == 1
    assert oak.parent == 1
    assert oak.children[0].name == "Tables"
    assert oak.children[0].level == 2


def test_build_tree_orders_siblings_by_sort_order_then_name():
    categories = [
        _category(1, "Zebra", sort_order=0),
        _category(2, "Apple", sort_order=1),
        _category(3, "Mango", sort_order=0),
    ]
    assert [node.name for node in build_tree(categories)] == ["Mango", "Zebra", "Apple"]


def test_build_tree_from_subtree_root():
    tree = build_tree(_wood(), parent_id=2, depth=5)
    assert [(node.name, node.level) for node in tree] == [("Tables", 5)]


def test_flatten_recovers_ids_parents_first():
    categories = _wood() + [_category(4, "Chairs", parent=2), _category(5, "Metal")]
    flat = flatten_tree(build_tree(categories))
    ids = [node.id for node in flat]
    assert sorted(ids) == [1, 2, 3, 4, 5]
    for node in flat:
        if node.parent is not None:
            assert ids.index(node.parent) < ids.index(node.id)


def test_build_tree_does_not_mutate_input():
    categories = _wood()
    before = [(c.id, c.parent_category) for c in categories]
    build_tree(categories)
    build_children_map(categories)
    assert [(c.id, c.parent_category) for c in categories] == before
