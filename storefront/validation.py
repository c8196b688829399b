"""
Field validation for category writes.

The rules live on the ``CategoryCreate`` and ``CategoryUpdate`` schemas.
The service runs them through :func:`validate_category` before touching
storage, and the app's request validation handler reports body errors with
the same :func:`field_errors` mapping, so every 422 carries one shape.
"""

from collections.abc import Iterable
from typing import Any

from pydantic import ValidationError as SchemaValidationError

from storefront.exceptions import FieldError, ValidationError
from storefront.schemas import CategoryCreate, CategoryUpdate

_LOCATIONS = ("body", "query", "path", "header", "cookie")


def field_errors(errors: Iterable[dict]) -> list[FieldError]:
    """Turn pydantic error dicts into ``FieldError`` entries keyed by field name."""
    result = []
    for error in errors:
        loc = list(error.get("loc", ()))
        if len(loc) > 1 and loc[0] in _LOCATIONS:
            loc = loc[1:]
        field = ".".join(str(part) for part in loc) or "body"
        result.append(FieldError(field, error.get("msg", "Invalid value")))
    return result


def validate_category(fields: dict[str, Any], partial: bool = False) -> dict[str, Any]:
    """
    Validate a create (``partial=False``) or update (``partial=True``) payload.

    Returns the normalised fields; an update keeps only the keys it was given.
    A blank slug comes back as ``None`` and is derived by the service.
    Raises ``ValidationError`` listing every violated field at once.
    """
    schema = CategoryUpdate if partial else CategoryCreate
    try:
        category = schema.model_validate(fields)
    except SchemaValidationError as exc:
        raise ValidationError(field_errors(exc.errors())) from exc
    return category.model_dump(exclude_unset=partial)
