"""
Pure helpers for keeping the category forest consistent.

Every function works on a flat snapshot of categories (ORM rows or any
object with ``id``, ``name``, ``sort_order`` and ``parent_category``
attributes) and never mutates it. Parent lookups go through maps built
once per call, and every upward or downward walk carries a visited set so
that a snapshot which is already corrupted cannot make it loop.
"""

import re
from collections import defaultdict
from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")


@dataclass
class TreeNode:
    id: Any
    name: str
    slug: str
    description: str
    image: str
    visibility: str
    sort_order: int
    parent: Optional[Any]
    level: int
    product_count: int = 0
    children: list["TreeNode"] = field(default_factory=list)


def slugify(name: str) -> str:
    return _NON_SLUG_CHARS.sub("-", name.lower()).strip("-")


def generate_slug(name: str, existing_slugs: Iterable[str]) -> str:
    """
    Derive a URL-safe slug from ``name`` that is not in ``existing_slugs``.

    Collisions get a numeric suffix: ``oak``, ``oak-1``, ``oak-2`` ...
    """
    taken = set(existing_slugs)
    base = slugify(name)
    candidate = base
    counter = 1
    while candidate in taken:
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate


def _sibling_key(category) -> tuple:
    return (category.sort_order or 0, category.name or "")


def index_by_id(categories: Iterable) -> dict:
    return {category.id: category for category in categories}


def build_children_map(categories: Iterable) -> dict[Optional[Hashable], list]:
    """Map parent id (``None`` for roots) to its children, ordered for display."""
    children = defaultdict(list)
    for category in categories:
        children[category.parent_category].append(category)
    for siblings in children.values():
        siblings.sort(key=_sibling_key)
    return dict(children)


def ancestor_chain(category_id, categories: Iterable) -> list:
    """
    Ids from ``category_id`` up to its root, inclusive.

    A dangling parent reference ends the chain. Stops on the first repeated
    id so a cyclic snapshot still yields a finite chain.
    """
    by_id = categories if isinstance(categories, Mapping) else index_by_id(categories)
    chain = []
    seen = set()
    current = category_id
    while current is not None and current not in seen and current in by_id:
        seen.add(current)
        chain.append(current)
        current = by_id[current].parent_category
    return chain


def would_create_cycle(category_id, proposed_parent_id, categories: Iterable) -> bool:
    if proposed_parent_id is None:
        return False

    by_id = categories if isinstance(categories, Mapping) else index_by_id(categories)
    visited = set()
    current = proposed_parent_id
    while current is not None:
        if current == category_id:
            return True
        if current in visited:
            # The snapshot already contains a cycle
            return True
        visited.add(current)
        ancestor = by_id.get(current)
        if ancestor is None:
            break
        current = ancestor.parent_category
    return False


def category_path(category_id, categories: Iterable) -> list[str]:
    """Names of the ancestors of ``category_id`` from the root down, itself last."""
    by_id = categories if isinstance(categories, Mapping) else index_by_id(categories)
    chain = ancestor_chain(category_id, by_id)
    return [by_id[ancestor_id].name for ancestor_id in reversed(chain)]


def descendant_ids(category_id, categories) -> set:
    """
    Every category that transitively has ``category_id`` as a parent.

    ``categories`` may be a flat iterable or a map from
    :func:`build_children_map`, so callers working on many categories can
    build the adjacency once.
    """
    children = categories if isinstance(categories, Mapping) else build_children_map(categories)
    found = set()
    stack = [category_id]
    while stack:
        parent_id = stack.pop()
        for child in children.get(parent_id, ()):
            if child.id in found or child.id == category_id:
                continue
            found.add(child.id)
            stack.append(child.id)
    return found


def count_products(
    category_id,
    categories,
    product_counter: Callable[[set], int],
) -> int:
    direct = product_counter({category_id})
    descendants = descendant_ids(category_id, categories)
    if not descendants:
        return direct
    return direct + product_counter(descendants)


def build_tree(
    categories,
    parent_id=None,
    depth: int = 0,
    product_counts: Optional[Mapping] = None,
) -> list[TreeNode]:
    children = categories if isinstance(categories, Mapping) else build_children_map(categories)
    return _build_level(children, parent_id, depth, product_counts or {}, set())


def _build_level(children, parent_id, depth, product_counts, seen) -> list[TreeNode]:
    nodes = []
    for category in children.get(parent_id, ()):
        if category.id in seen:
            continue
        seen.add(category.id)
        nodes.append(
            TreeNode(
                id=category.id,
                name=category.name,
                slug=category.slug,
                description=category.description,
                image=category.image,
                visibility=category.visibility,
                sort_order=category.sort_order,
                parent=category.parent_category,
                level=depth,
                product_count=product_counts.get(category.id, 0),
                children=_build_level(children, category.id, depth + 1, product_counts, seen),
            )
        )
    return nodes


def flatten_tree(nodes: Iterable[TreeNode]) -> list[TreeNode]:
    """Pre-order walk: every parent comes before its children."""
    flat = []
    for node in nodes:
        flat.append(node)
        flat.extend(flatten_tree(node.children))
    return flat
