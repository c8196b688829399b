from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

SLUG_PATTERN = r"^[a-z0-9-]+$"
TEXT_FIELDS = ("description", "image", "seo_title", "seo_description")

Visibility = Literal["public", "private"]


def _strip(value):
    return value.strip() if isinstance(value, str) else value


def _normalize_slug(value):
    if isinstance(value, str):
        value = value.strip().lower()
        # Blank means "derive it from the name"
        return value or None
    return value


def _strip_keywords(value):
    if isinstance(value, list):
        return [_strip(keyword) for keyword in value]
    return value


class CategoryCreate(BaseModel):
    """Payload for creating a category."""
    name: str = Field(..., min_length=1, max_length=200, description="Category name")
    slug: Optional[str] = Field(None, max_length=255, pattern=SLUG_PATTERN)
    description: str = Field("", max_length=1000)
    image: str = ""
    visibility: Visibility = "public"
    sort_order: int = Field(0, ge=0)
    parent_category: Optional[int] = None
    seo_title: str = Field("", max_length=60)
    seo_description: str = Field("", max_length=160)
    seo_keywords: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return _strip(v)

    @field_validator("slug", mode="before")
    @classmethod
    def normalize_slug(cls, v):
        return _normalize_slug(v)

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def null_text_is_blank(cls, v):
        return "" if v is None else _strip(v)

    @field_validator("visibility", "sort_order", mode="before")
    @classmethod
    def null_is_default(cls, v, info: ValidationInfo):
        return cls.model_fields[info.field_name].default if v is None else v

    @field_validator("seo_keywords", mode="before")
    @classmethod
    def strip_keywords(cls, v):
        return [] if v is None else _strip_keywords(v)


class CategoryUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=200, description="Category name")
    slug: Optional[str] = Field(None, max_length=255, pattern=SLUG_PATTERN)
    description: Optional[str] = Field(None, max_length=1000)
    image: Optional[str] = None
    visibility: Optional[Visibility] = None
    sort_order: Optional[int] = Field(None, ge=0)
    parent_category: Optional[int] = None
    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)
    seo_keywords: Optional[list[str]] = None

    @field_validator("name", *TEXT_FIELDS, mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v):
        if v is None:
            raise ValueError("Category name is required")
        return v

    @field_validator("slug", mode="before")
    @classmethod
    def normalize_slug(cls, v):
        return _normalize_slug(v)

    @field_validator("seo_keywords", mode="before")
    @classmethod
    def strip_keywords(cls, v):
        return _strip_keywords(v)


class Category(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: str
    image: str
    visibility: str
    sort_order: int
    parent_category: Optional[int] = None
    seo_title: str
    seo_description: str
    seo_keywords: list[str]
    created_at: datetime
    updated_at: datetime
    product_count: int = 0


class CategoryTreeNode(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    description: str
    image: str
    visibility: str
    sort_order: int
    parent: Optional[int] = None
    level: int
    product_count: int = 0
    children: list["CategoryTreeNode"] = Field(default_factory=list)


class FlatCategory(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    parent: Optional[int] = None
    level: int


class CategoryTree(BaseModel):
    categories: list[CategoryTreeNode]
    flat_categories: list[FlatCategory]


class CategoryPath(BaseModel):
    id: int
    path: list[str]


class BreadcrumbItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class Product(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    category: str
    price: float
    stock: int
    in_stock: bool
    views: int
    created_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PriceRange(BaseModel):
    min: float = 0
    max: float = 0


class SortOption(BaseModel):
    value: str
    label: str


class CategoryPage(BaseModel):
    category: Category
    parent: Optional[Category] = None
    subcategories: list[Category]
    breadcrumb: list[BreadcrumbItem]
    products: list[Product]
    pagination: Pagination
    price_range: PriceRange
    sort_options: list[SortOption]
