import pytest

from product_form.core.validation import (
    CREATE, UPDATE, IMAGES_REQUIRED, FormValidationError, ValidationState,
    validate_all, validate_field,
)
from product_form.models.draft import ProductDraft
from product_form.models.images import LocalFile, PendingImage, PersistedImage


@pytest.mark.parametrize("value", ["", "ab", "x" * 101])
def test_title_out_of_range_is_rejected(value):
    assert "title" in validate_field("title", value)


@pytest.mark.parametrize("value", ["abc", "Red Mug", "x" * 100])
def test_title_in_range_is_accepted(value):
    assert validate_field("title", value) == {}


def test_title_messages():
    assert validate_field("title", "") == {"title": "Product title is required"}
    assert validate_field("title", "ab") == {"title": "Title must be at least 3 characters long"}
    assert validate_field("title", "y" * 101) == {"title": "Title cannot exceed 100 characters"}


def test_description_needs_ten_characters():
    assert validate_field("description", "") == {"description": "Product description is required"}
    assert "description" in validate_field("description", "too short")
    assert validate_field("description", "long enough") == {}


def test_category_and_brand_required():
    assert validate_field("category_id", "") == {"category_id": "Category is required"}
    assert validate_field("brand_id", "") == {"brand_id": "Brand is required"}
    assert validate_field("category_id", "c1") == {}
    assert validate_field("brand_id", "b1") == {}


@pytest.mark.parametrize("value,message", [
    ("", "Base price is required"),
    ("abc", "Base price must be a number"),
    ("0", "Base price must be a positive number"),
    ("-3", "Base price must be a positive number"),
])
def test_base_price_errors(value, message):
    assert validate_field("base_price", value) == {"base_price": message}


def test_base_price_accepts_decimals():
    assert validate_field("base_price", "9.99") == {}


@pytest.mark.parametrize("value", ["", "1.5", "abc", "-1"])
def test_stock_invalid_values(value):
    assert "stock" in validate_field("stock", value)


@pytest.mark.parametrize("value", ["0", "10", "10.0"])
def test_stock_valid_values(value):
    assert validate_field("stock", value) == {}


def test_stock_empty_is_required_not_zero():
    assert validate_field("stock", "") == {"stock": "Stock quantity is required"}
    assert validate_field("stock", "-1") == {"stock": "Stock cannot be negative"}
    assert validate_field("stock", "2.5") == {"stock": "Stock must be a whole number"}


@pytest.mark.parametrize("dtype,value,has_error", [
    ("percentage", "101", True),
    ("percentage", "100", False),
    ("fixed", "150", False),
    ("percentage", "-1", True),
    ("fixed", "-0.5", True),
])
def test_discount_value_depends_on_type(dtype, value, has_error):
    result = validate_field("discount_value", value, {"discount_type": dtype})
    assert ("discount_value" in result) is has_error


def test_discount_type_must_be_known():
    assert validate_field("discount_type", "percentage") == {}
    assert validate_field("discount_type", "fixed") == {}
    assert "discount_type" in validate_field("discount_type", "bogo")


def test_unknown_field_has_no_rule():
    assert validate_field("colour", "red") == {}


def _pending():
    return PendingImage(id="t1", display_url="file:///tmp/t1.jpg",
                        file=LocalFile("a.jpg", b"x", "image/jpeg"))


def _persisted():
    return PersistedImage(id="i1", remote_asset_id="pub1", display_url="https://cdn.test/1.jpg")


def test_images_required_when_creating_without_files():
    draft = ProductDraft()
    assert validate_all(draft, CREATE)["images"] == IMAGES_REQUIRED


def test_images_satisfied_by_pending_file_in_create_mode():
    draft = ProductDraft(images=(_pending(),))
    assert "images" not in validate_all(draft, CREATE)


def test_images_in_update_mode_only_required_when_empty():
    assert "images" not in validate_all(ProductDraft(images=(_persisted(),)), UPDATE)
    assert validate_all(ProductDraft(images=()), UPDATE)["images"] == IMAGES_REQUIRED


def test_validate_all_is_idempotent():
    draft = ProductDraft(title="ab", stock="", discount_value="500")
    first = validate_all(draft, CREATE)
    second = validate_all(draft, CREATE)
    assert first == second
    assert set(first) == {"title", "description", "category_id", "brand_id",
                          "base_price", "stock", "discount_value", "images"}


def test_visible_errors_follow_touched_but_images_always_show():
    state = ValidationState(errors={"title": "bad", "stock": "bad", "images": IMAGES_REQUIRED},
                            touched=frozenset({"stock"}))
    assert state.visible_errors() == {"stock": "bad", "images": IMAGES_REQUIRED}
    assert state.first_error_field() == "stock"


def test_form_validation_error_carries_mapping():
    err = FormValidationError({"title": "Product title is required"})
    assert err.errors == {"title": "Product title is required"}
    assert "title" in str(err)
