from dataclasses import asdict, dataclass
from typing import Any, Optional


@dataclass
class FieldError:
    field: str
    message: str


class CatalogError(Exception):
    """Base class for every outcome the category service reports to callers."""

    code = "catalog_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(CatalogError):
    code = "validation_failed"

    def __init__(self, errors: list[FieldError]):
        fields = ", ".join(error.field for error in errors)
        super().__init__(f"Invalid category fields: {fields}")
        self.errors = errors

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "errors": [asdict(error) for error in self.errors]}


class ConflictError(CatalogError):
    code = "slug_conflict"

    def __init__(self, slug: str):
        super().__init__(f"Slug '{slug}' already exists")
        self.slug = slug

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "slug": self.slug}


class CycleError(CatalogError):
    code = "circular_reference"

    def __init__(self, category_id: int, parent_id: int, chain: Optional[list[int]] = None):
        super().__init__(
            "Circular reference detected: cannot set a category as its own parent or descendant"
        )
        self.category_id = category_id
        self.parent_id = parent_id
        self.chain = chain or []

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "category_id": self.category_id,
            "parent_id": self.parent_id,
            "chain": self.chain,
        }


class DependencyError(CatalogError):
    code = "has_children"

    def __init__(self, category_id: int, child_count: int):
        noun = "subcategory" if child_count == 1 else "subcategories"
        super().__init__(
            f"Cannot delete category with {child_count} {noun}. "
            "Please move or delete subcategories first."
        )
        self.category_id = category_id
        self.child_count = child_count

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "child_count": self.child_count}


class NotFoundError(CatalogError):
    code = "not_found"

    def __init__(self, category_id: Any):
        super().__init__(f"Category {category_id} not found")
        self.category_id = category_id
