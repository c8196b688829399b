import pytest

from storefront.exceptions import ValidationError
from storefront.validation import field_errors, validate_category


def _rejected_fields(fields, partial=False):
    with pytest.raises(ValidationError) as excinfo:
        validate_category(fields, partial=partial)
    return {error.field for error in excinfo.value.errors}


def test_valid_payload_passes_and_is_normalised():
    fields = validate_category(
        {"name": "  Oak  ", "slug": " Solid-Oak ", "sort_order": 2, "seo_keywords": [" oak "]}
    )
    assert fields["name"] == "Oak"
    assert fields["slug"] == "solid-oak"
    assert fields["seo_keywords"] == ["oak"]
    assert fields["visibility"] == "public"
    assert fields["description"] == ""


def test_name_is_required_on_create():
    assert _rejected_fields({}) == {"name"}
    assert _rejected_fields({"name": "   "}) == {"name"}


def test_partial_update_keeps_only_sent_fields():
    assert validate_category({"description": " Hand finished "}, partial=True) == {
        "description": "Hand finished"
    }
    assert _rejected_fields({"name": None}, partial=True) == {"name"}


def test_all_violations_reported_together():
    fields = {
        "name": "x" * 201,
        "slug": "bad slug!",
        "description": "d" * 1001,
        "seo_title": "t" * 61,
        "seo_description": "s" * 161,
        "visibility": "hidden",
        "sort_order": -1,
    }
    assert _rejected_fields(fields) == {
        "name",
        "slug",
        "description",
        "seo_title",
        "seo_description",
        "visibility",
        "sort_order",
    }


def test_wrong_types_are_field_errors():
    assert _rejected_fields({"name": "Oak", "sort_order": "abc"}) == {"sort_order"}
    assert _rejected_fields({"name": "Oak", "seo_keywords": ["oak", 3]}) == {"seo_keywords.1"}


def test_blank_slug_is_left_for_generation():
    assert validate_category({"name": "Oak", "slug": ""})["slug"] is None
    assert validate_category({"name": "Oak", "slug": None})["slug"] is None
    assert validate_category({"slug": "  "}, partial=True) == {"slug": None}


def test_null_text_on_create_becomes_blank():
    fields = validate_category({"name": "Oak", "description": None, "seo_title": None})
    assert fields["description"] == ""
    assert fields["seo_title"] == ""


def test_limits_are_inclusive():
    validate_category({"name": "n" * 200, "seo_title": "t" * 60, "seo_description": "s" * 160})


def test_field_errors_drop_request_location():
    errors = field_errors(
        [
            {"loc": ("body", "sort_order"), "msg": "Input should be a valid integer"},
            {"loc": ("query", "limit"), "msg": "Input should be less than or equal to 100"},
            {"loc": ("body",), "msg": "Input should be a valid dictionary"},
        ]
    )
    assert [error.field for error in errors] == ["sort_order", "limit", "body"]
    assert errors[0].message == "Input should be a valid integer"
