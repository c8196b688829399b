from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config import settings
from storefront.db_depends import get_async_db
from storefront.exceptions import (
    CatalogError,
    ConflictError,
    CycleError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from storefront.repository import CategoryRepository, ProductRepository
from storefront.schemas import (
    Category as CategorySchema,
    CategoryCreate,
    CategoryPage,
    CategoryPath,
    CategoryTree,
    CategoryUpdate,
)
from storefront.services.categories import CategoryService

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
)

ERROR_STATUS = {
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ConflictError: status.HTTP_409_CONFLICT,
    CycleError: status.HTTP_400_BAD_REQUEST,
    DependencyError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
}


def get_category_service(db: AsyncSession = Depends(get_async_db)) -> CategoryService:
    return CategoryService(CategoryRepository(db), ProductRepository(db))


def _http_error(exc: CatalogError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST),
        detail=exc.to_dict(),
    )


@router.get("/", response_model=list[CategorySchema])
async def get_all_categories(
        visibility: Optional[Literal["public", "private"]] = None,
        service: CategoryService = Depends(get_category_service),
):
    """
    Returns every category with its product count, subcategories included.
    """
    return await service.list_categories(visibility=visibility)


@router.post("/", response_model=CategorySchema, status_code=status.HTTP_201_CREATED)
async def create_category(
        category: CategoryCreate,
        service: CategoryService = Depends(get_category_service),
):
    """
    Creates a category; the slug is derived from the name when left blank.
    """
    try:
        return await service.create(category.model_dump())
    except CatalogError as exc:
        raise _http_error(exc)


@router.get("/tree", response_model=CategoryTree)
async def get_category_tree(
        include_private: bool = False,
        service: CategoryService = Depends(get_category_service),
):
    """
    Returns the categories nested under their parents, plus the same nodes as a flat list.
    """
    return await service.get_tree(include_private=include_private)


@router.get("/slug/{slug}", response_model=CategoryPage)
async def get_category_page(
        slug: str,
        page: int = Query(1, ge=1),
        limit: int = Query(
            settings.CATEGORY_PAGE_SIZE_DEFAULT, ge=1, le=settings.CATEGORY_PAGE_SIZE_MAX
        ),
        sort: Literal["newest", "price-low", "price-high", "popular", "name"] = "newest",
        min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
        max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
        in_stock: bool = Query(False, alias="inStock"),
        subcategory: Optional[int] = None,
        service: CategoryService = Depends(get_category_service),
):
    """
    Storefront page of a public category with its products and those of its subcategories.
    """
    try:
        return await service.get_page(
            slug,
            page=page,
            limit=limit,
            sort=sort,
            min_price=min_price,
            max_price=max_price,
            in_stock=in_stock,
            subcategory=subcategory,
        )
    except CatalogError as exc:
        raise _http_error(exc)


@router.get("/{category_id}", response_model=CategorySchema)
async def get_category(
        category_id: int,
        service: CategoryService = Depends(get_category_service),
):
    try:
        return await service.get(category_id)
    except CatalogError as exc:
        raise _http_error(exc)


@router.get("/{category_id}/path", response_model=CategoryPath)
async def get_category_path(
        category_id: int,
        service: CategoryService = Depends(get_category_service),
):
    """
    Returns the names from the root category down to this one, for breadcrumbs.
    """
    try:
        return CategoryPath(id=category_id, path=await service.get_path(category_id))
    except CatalogError as exc:
        raise _http_error(exc)


@router.put("/{category_id}", response_model=CategorySchema)
async def update_category(
        category_id: int,
        category: CategoryUpdate,
        service: CategoryService = Depends(get_category_service),
):
    """
    Updates the fields present in the body; a parent change is checked for cycles.
    """
    try:
        return await service.update(category_id, category.model_dump(exclude_unset=True))
    except CatalogError as exc:
        raise _http_error(exc)


@router.delete("/{category_id}", response_model=CategorySchema, status_code=status.HTTP_200_OK)
async def delete_category(
        category_id: int,
        service: CategoryService = Depends(get_category_service),
):
    """
    Deletes a category that has no subcategories.
    """
    try:
        return await service.delete(category_id)
    except CatalogError as exc:
        raise _http_error(exc)
