"""
Category service - create, update, delete and read views of the hierarchy.

Every check (fields, parent existence, cycles, slug uniqueness, children)
runs before anything is written. Storage constraints remain the final word
for the races that a read-then-write cannot close.
"""

import math
from dataclasses import asdict
from typing import Any, Optional

from loguru import logger

from storefront import hierarchy
from storefront.exceptions import (
    ConflictError,
    CycleError,
    DependencyError,
    FieldError,
    NotFoundError,
    ValidationError,
)
from storefront.models import Category as CategoryModel
from storefront.repository import PUBLIC, CategoryRepository, ProductRepository
from storefront.schemas import (
    BreadcrumbItem,
    Category as CategorySchema,
    CategoryPage,
    CategoryTree,
    CategoryTreeNode,
    FlatCategory,
    Pagination,
    PriceRange,
    Product as ProductSchema,
    SortOption,
)
from storefront.validation import validate_category

SORT_OPTIONS = [
    SortOption(value="newest", label="Newest"),
    SortOption(value="price-low", label="Price: Low to High"),
    SortOption(value="price-high", label="Price: High to Low"),
    SortOption(value="popular", label="Most Popular"),
    SortOption(value="name", label="Name A-Z"),
]


def _product_counts(categories: list[CategoryModel], per_category: dict[str, int]) -> dict:
    """Direct plus descendant product totals for every category in one pass."""
    children = hierarchy.build_children_map(categories)

    def counter(ids):
        return sum(per_category.get(str(category_id), 0) for category_id in ids)

    return {
        category.id: hierarchy.count_products(category.id, children, counter)
        for category in categories
    }


def _to_schema(db_category: CategoryModel, product_count: int = 0) -> CategorySchema:
    category = CategorySchema.model_validate(db_category)
    category.product_count = product_count
    return category


class CategoryService:
    def __init__(
        self,
        categories: CategoryRepository,
        products: Optional[ProductRepository] = None,
    ):
        self.categories = categories
        self.products = products

    async def _get_or_404(self, category_id: int) -> CategoryModel:
        db_category = await self.categories.get(category_id)
        if db_category is None:
            raise NotFoundError(category_id)
        return db_category

    async def _unique_slug(self, name: str, own_slug: Optional[str] = None) -> str:
        existing = await self.categories.existing_slugs(prefix=hierarchy.slugify(name))
        existing.discard(own_slug)
        slug = hierarchy.generate_slug(name, existing)
        if not slug:
            raise ValidationError(
                [FieldError("slug", "Could not derive a slug from the category name")]
            )
        return slug

    async def _check_parent(self, parent_id: int) -> None:
        if await self.categories.get(parent_id) is None:
            raise ValidationError([FieldError("parent_category", "Parent category not found")])

    async def create(self, fields: dict[str, Any]) -> CategorySchema:
        fields = validate_category(fields)

        parent_id = fields.get("parent_category")
        if parent_id is not None:
            # A new category has no descendants yet, so no cycle is possible
            await self._check_parent(parent_id)

        if fields.get("slug"):
            if await self.categories.slug_taken(fields["slug"]):
                raise ConflictError(fields["slug"])
        else:
            fields["slug"] = await self._unique_slug(fields["name"])

        db_category = await self.categories.insert(fields)
        logger.info("Category created: {} {}", db_category.id, db_category.name)
        return _to_schema(db_category)

    async def update(self, category_id: int, fields: dict[str, Any]) -> CategorySchema:
        db_category = await self._get_or_404(category_id)
        fields = validate_category(fields, partial=True)
        # Null detaches the parent and regenerates the slug; any other null is ignored
        fields = {
            key: value
            for key, value in fields.items()
            if value is not None or key in ("parent_category", "slug")
        }

        if "parent_category" in fields:
            parent_id = fields["parent_category"]
            if parent_id is not None and parent_id != db_category.parent_category:
                await self._check_parent(parent_id)
                # Fresh snapshot right before the write keeps the race window narrow
                snapshot = hierarchy.index_by_id(await self.categories.list_categories())
                if hierarchy.would_create_cycle(category_id, parent_id, snapshot):
                    chain = hierarchy.ancestor_chain(parent_id, snapshot)
                    raise CycleError(category_id, parent_id, chain)

        if "slug" in fields:
            if fields["slug"]:
                if fields["slug"] != db_category.slug and await self.categories.slug_taken(
                    fields["slug"], exclude_id=category_id
                ):
                    raise ConflictError(fields["slug"])
            else:
                name = fields.get("name") or db_category.name
                fields["slug"] = await self._unique_slug(name, own_slug=db_category.slug)

        db_category = await self.categories.update(db_category, fields)
        logger.info("Category updated: {} {}", db_category.id, db_category.name)
        return _to_schema(db_category, await self._count_for(db_category.id))

    async def delete(self, category_id: int) -> CategorySchema:
        db_category = await self._get_or_404(category_id)

        child_count = await self.categories.count_children(category_id)
        if child_count:
            raise DependencyError(category_id, child_count)

        deleted = _to_schema(db_category)
        await self.categories.delete(category_id)
        logger.info("Category deleted: {} {}", deleted.id, deleted.name)
        return deleted

    async def _count_for(self, category_id: int) -> int:
        categories = await self.categories.list_categories()
        descendants = hierarchy.descendant_ids(category_id, categories)
        return await self.categories.count_products({category_id} | descendants)

    async def get(self, category_id: int) -> CategorySchema:
        db_category = await self._get_or_404(category_id)
        return _to_schema(db_category, await self._count_for(category_id))

    async def list_categories(self, visibility: Optional[str] = None) -> list[CategorySchema]:
        categories = await self.categories.list_categories()
        counts = _product_counts(categories, await self.categories.count_products_by_category())
        return [
            _to_schema(category, counts[category.id])
            for category in categories
            if visibility is None or category.visibility == visibility
        ]

    async def get_tree(self, include_private: bool = False) -> CategoryTree:
        categories = await self.categories.list_categories()
        counts = _product_counts(categories, await self.categories.count_products_by_category())
        if not include_private:
            categories = [category for category in categories if category.visibility == PUBLIC]

        nodes = hierarchy.build_tree(categories, product_counts=counts)
        return CategoryTree(
            categories=[CategoryTreeNode.model_validate(asdict(node)) for node in nodes],
            flat_categories=[
                FlatCategory(
                    id=node.id, name=node.name, slug=node.slug, parent=node.parent, level=node.level
                )
                for node in hierarchy.flatten_tree(nodes)
            ],
        )

    async def get_path(self, category_id: int) -> list[str]:
        await self._get_or_404(category_id)
        categories = await self.categories.list_categories()
        return hierarchy.category_path(category_id, categories)

    async def get_page(
        self,
        slug: str,
        page: int = 1,
        limit: int = 24,
        sort: str = "newest",
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        in_stock: bool = False,
        subcategory: Optional[int] = None,
    ) -> CategoryPage:
        """
        Storefront view of a public category: its subcategories, breadcrumb and
        the published products of the whole subtree, paginated.
        """
        db_category = await self.categories.get_by_slug(slug.lower(), visibility=PUBLIC)
        if db_category is None:
            raise NotFoundError(slug)

        categories = await self.categories.list_categories()
        by_id = hierarchy.index_by_id(categories)
        children = hierarchy.build_children_map(categories)
        counts = _product_counts(categories, await self.categories.count_products_by_category())

        subcategories = [
            _to_schema(child, counts[child.id])
            for child in children.get(db_category.id, ())
            if child.visibility == PUBLIC
        ]
        parent = by_id.get(db_category.parent_category)
        breadcrumb = [
            BreadcrumbItem.model_validate(by_id[ancestor_id])
            for ancestor_id in reversed(hierarchy.ancestor_chain(db_category.id, by_id)[1:])
        ]

        subtree = {db_category.id} | hierarchy.descendant_ids(db_category.id, children)
        listed = subtree
        if subcategory is not None:
            listed = {subcategory} | hierarchy.descendant_ids(subcategory, children)

        filters = {"in_stock": in_stock, "min_price": min_price, "max_price": max_price}
        total = await self.products.count(listed, **filters)
        products = await self.products.search(
            listed, sort=sort, offset=(page - 1) * limit, limit=limit, **filters
        )
        low, high = await self.products.price_range(subtree)

        return CategoryPage(
            category=_to_schema(db_category, counts[db_category.id]),
            parent=_to_schema(parent, counts[parent.id]) if parent is not None else None,
            subcategories=subcategories,
            breadcrumb=breadcrumb,
            products=[ProductSchema.model_validate(product) for product in products],
            pagination=Pagination(
                page=page, limit=limit, total=total, pages=math.ceil(total / limit)
            ),
            price_range=PriceRange(min=low, max=high),
            sort_options=SORT_OPTIONS,
        )
