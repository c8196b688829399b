from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.exceptions import ConflictError, DependencyError
from storefront.models import Category as CategoryModel, Product as ProductModel

PUBLISHED = "published"
PUBLIC = "public"

PRODUCT_SORTS = {
    "price-low": (ProductModel.price.asc(),),
    "price-high": (ProductModel.price.desc(),),
    "newest": (ProductModel.created_at.desc(), ProductModel.id.desc()),
    "popular": (ProductModel.views.desc(),),
    "name": (ProductModel.name.asc(),),
}


def _category_keys(ids: Iterable[Any]) -> list[str]:
    # Products reference their category by the string form of its id
    return [str(category_id) for category_id in ids]


class CategoryRepository:
    """Storage access for categories and the product counts derived from them."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_categories(self) -> list[CategoryModel]:
        query = select(CategoryModel).order_by(
            CategoryModel.sort_order.asc(),
            CategoryModel.created_at.desc(),
            CategoryModel.id.desc(),
        )
        result = await self.session.scalars(query)
        return list(result.all())

    async def get(self, category_id: int) -> Optional[CategoryModel]:
        return await self.session.get(CategoryModel, category_id)

    async def get_by_slug(
        self, slug: str, visibility: Optional[str] = None
    ) -> Optional[CategoryModel]:
        query = select(CategoryModel).where(CategoryModel.slug == slug)
        if visibility is not None:
            query = query.where(CategoryModel.visibility == visibility)
        result = await self.session.scalars(query)
        return result.first()

    async def slug_taken(self, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = select(CategoryModel.id).where(CategoryModel.slug == slug)
        if exclude_id is not None:
            query = query.where(CategoryModel.id != exclude_id)
        return (await self.session.scalar(query)) is not None

    async def existing_slugs(self, prefix: str = "") -> set[str]:
        query = select(CategoryModel.slug)
        if prefix:
            query = query.where(CategoryModel.slug.startswith(prefix))
        result = await self.session.scalars(query)
        return set(result.all())

    async def count_children(self, category_id: int) -> int:
        return await self.session.scalar(
            select(func.count())
            .select_from(CategoryModel)
            .where(CategoryModel.parent_category == category_id)
        ) or 0

    async def count_products(self, category_ids: Iterable[Any]) -> int:
        keys = _category_keys(category_ids)
        if not keys:
            return 0
        return await self.session.scalar(
            select(func.count())
            .select_from(ProductModel)
            .where(ProductModel.category.in_(keys))
        ) or 0

    async def count_products_by_category(self) -> dict[str, int]:
        result = await self.session.execute(
            select(ProductModel.category, func.count()).group_by(ProductModel.category)
        )
        return {category: count for category, count in result.all()}

    async def insert(self, fields: dict[str, Any]) -> CategoryModel:
        db_category = CategoryModel(**fields)
        self.session.add(db_category)
        await self._commit(fields.get("slug"))
        await self.session.refresh(db_category)
        return db_category

    async def update(self, db_category: CategoryModel, fields: dict[str, Any]) -> CategoryModel:
        if fields:
            await self.session.execute(
                update(CategoryModel)
                .where(CategoryModel.id == db_category.id)
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            await self._commit(fields.get("slug"))
        await self.session.refresh(db_category)
        return db_category

    async def delete(self, category_id: int) -> None:
        await self.session.execute(
            delete(CategoryModel).where(CategoryModel.id == category_id)
        )
        try:
            await self.session.commit()
        except IntegrityError as exc:
            # A child was attached after the service checked; the FK refuses the delete
            await self.session.rollback()
            raise DependencyError(category_id, await self.count_children(category_id)) from exc

    async def _commit(self, slug: Optional[str]) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if slug and "slug" in str(exc.orig):
                raise ConflictError(slug) from exc
            raise


class ProductRepository:
    """Read-only queries over the storefront's published products."""

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _storefront_filter(query, category_ids: Iterable[Any]):
        return query.where(
            ProductModel.category.in_(_category_keys(category_ids)),
            ProductModel.status == PUBLISHED,
            ProductModel.visibility == PUBLIC,
        )

    def _filtered(
        self,
        query,
        category_ids: Iterable[Any],
        in_stock: bool = False,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
    ):
        query = self._storefront_filter(query, category_ids)
        if in_stock:
            query = query.where(ProductModel.in_stock == True)
        if min_price is not None:
            query = query.where(ProductModel.price >= min_price)
        if max_price is not None:
            query = query.where(ProductModel.price <= max_price)
        return query

    async def search(
        self,
        category_ids: Iterable[Any],
        sort: str = "newest",
        offset: int = 0,
        limit: int = 24,
        **filters,
    ) -> list[ProductModel]:
        query = self._filtered(select(ProductModel), category_ids, **filters)
        query = query.order_by(*PRODUCT_SORTS.get(sort, PRODUCT_SORTS["newest"]))
        result = await self.session.scalars(query.offset(offset).limit(limit))
        return list(result.all())

    async def count(self, category_ids: Iterable[Any], **filters) -> int:
        query = self._filtered(
            select(func.count()).select_from(ProductModel), category_ids, **filters
        )
        return await self.session.scalar(query) or 0

    async def price_range(self, category_ids: Iterable[Any]) -> tuple[float, float]:
        query = self._storefront_filter(
            select(func.min(ProductModel.price), func.max(ProductModel.price)),
            category_ids,
        )
        low, high = (await self.session.execute(query)).one()
        return (low or 0, high or 0)
