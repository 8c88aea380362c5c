"""
Field and whole-record validation for the product draft.

Rules are declared in RULES (field -> validator). A validator receives the
field value plus the sibling values of the draft and raises
FieldValidationError with the user-facing message. Nothing here performs I/O,
so running validation twice on the same draft yields the same mapping.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from product_form.models.draft import DISCOUNT_TYPES, FIELD_ORDER, ProductDraft
from product_form.models.images import pending_images, persisted_images

CREATE = "create"
UPDATE = "update"

IMAGES_REQUIRED = "At least one product image is required"


class FieldValidationError(ValueError):
    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field_name = field_name


class FormValidationError(ValueError):
    def __init__(self, errors: Mapping[str, str]):
        self.errors = dict(errors)
        super().__init__(f"{len(self.errors)} field(s) invalid: {', '.join(self.errors)}")


def _to_number(value: Any) -> Optional[Decimal]:
    """Parse a form value into a finite Decimal, None when not numeric."""
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not number.is_finite():
        return None
    return number


def check_title(value, siblings):
    if not value:
        raise FieldValidationError("Product title is required")
    if len(value) < 3:
        raise FieldValidationError("Title must be at least 3 characters long")
    if len(value) > 100:
        raise FieldValidationError("Title cannot exceed 100 characters")


def check_description(value, siblings):
    if not value:
        raise FieldValidationError("Product description is required")
    if len(value) < 10:
        raise FieldValidationError("Description must be at least 10 characters long")


def check_category(value, siblings):
    if not value:
        raise FieldValidationError("Category is required")


def check_brand(value, siblings):
    if not value:
        raise FieldValidationError("Brand is required")


def check_base_price(value, siblings):
    if value is None or str(value).strip() == "":
        raise FieldValidationError("Base price is required")
    number = _to_number(value)
    if number is None:
        raise FieldValidationError("Base price must be a number")
    if number <= 0:
        raise FieldValidationError("Base price must be a positive number")


def check_stock(value, siblings):
    # "0" is a valid stock, only the empty value counts as missing
    if value is None or str(value).strip() == "":
        raise FieldValidationError("Stock quantity is required")
    number = _to_number(value)
    if number is None or number != number.to_integral_value():
        raise FieldValidationError("Stock must be a whole number")
    if number < 0:
        raise FieldValidationError("Stock cannot be negative")


def check_discount_type(value, siblings):
    if value not in DISCOUNT_TYPES:
        raise FieldValidationError('Discount type must be either "percentage" or "fixed"')


def check_discount_value(value, siblings):
    number = _to_number(value)
    if number is None:
        raise FieldValidationError("Discount value must be a number")
    if number < 0:
        raise FieldValidationError("Discount value cannot be negative")
    if siblings.get("discount_type") == "percentage" and number > 100:
        raise FieldValidationError("Discount percentage cannot exceed 100%")


Rule = Callable[[Any, Mapping[str, Any]], None]

RULES: Dict[str, Rule] = {
    "title": check_title,
    "description": check_description,
    "category_id": check_category,
    "brand_id": check_brand,
    "base_price": check_base_price,
    "stock": check_stock,
    "discount_type": check_discount_type,
    "discount_value": check_discount_value,
}


def validate_field(name: str, value: Any, siblings: Optional[Mapping[str, Any]] = None) -> Dict[str, str]:
    """
    Run the rule for a single field. Returns {name: message} when invalid,
    an empty dict when valid or when the field has no rule.
    """
    rule = RULES.get(name)
    if rule is None:
        return {}
    try:
        rule(value, siblings or {})
    except FieldValidationError as exc:
        return {name: exc.message}
    return {}


def images_required(draft: ProductDraft, mode: str) -> bool:
    """
    Creating needs at least one new file. Editing only needs one when
    nothing is left in the collection.
    """
    if pending_images(draft.images):
        return False
    if mode == CREATE:
        return True
    return not persisted_images(draft.images)


def validate_images(draft: ProductDraft, mode: str) -> Dict[str, str]:
    if images_required(draft, mode):
        return {"images": IMAGES_REQUIRED}
    return {}


def validate_all(draft: ProductDraft, mode: str) -> Dict[str, str]:
    """Recompute every rule against the draft; returns the full error mapping."""
    siblings = draft.scalars()
    errors: Dict[str, str] = {}
    for name in RULES:
        errors.update(validate_field(name, siblings[name], siblings))
    errors.update(validate_images(draft, mode))
    return errors


@dataclass(frozen=True)
class ValidationState:
    errors: Dict[str, str] = field(default_factory=dict)
    touched: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def visible_errors(self) -> Dict[str, str]:
        # the images error is shown whether or not the picker was touched
        return {
            name: msg for name, msg in self.errors.items()
            if name in self.touched or name == "images"
        }

    def first_error_field(self) -> Optional[str]:
        visible = self.visible_errors()
        for name in FIELD_ORDER:
            if name in visible:
                return name
        return None

    def with_field_result(self, name: str, result: Mapping[str, str], touch: bool = True) -> "ValidationState":
        errors = dict(self.errors)
        errors.pop(name, None)
        errors.update(result)
        touched = self.touched | {name} if touch else self.touched
        return ValidationState(errors=errors, touched=frozenset(touched))

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": dict(self.errors), "touched": sorted(self.touched)}
