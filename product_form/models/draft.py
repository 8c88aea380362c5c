# product_form/models/draft.py
from __future__ import annotations
from dataclasses import dataclass, asdict, field, replace
from typing import Optional, Dict, Any, Tuple

from product_form.models.images import ImageRef, PersistedImage

DISCOUNT_TYPES = ("percentage", "fixed")

# form order, used for "first error" lookups and touched-marking
FIELD_ORDER = (
    "title",
    "description",
    "category_id",
    "brand_id",
    "base_price",
    "stock",
    "discount_type",
    "discount_value",
    "images",
)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _nested_id(d: Dict[str, Any], key: str, flat_key: str) -> str:
    nested = d.get(key)
    if isinstance(nested, dict):
        return _as_text(nested.get("_id") or nested.get("id"))
    # some payloads return the relation as a bare id
    if nested:
        return _as_text(nested)
    return _as_text(d.get(flat_key))


@dataclass(frozen=True)
class ProductDraft:
    """
    The product record being edited. Scalar values are kept as entered
    (strings for numeric inputs) so validation sees exactly what the user typed.
    """
    title: str = ""
    description: str = ""
    category_id: str = ""
    brand_id: str = ""
    base_price: str = ""
    stock: str = ""
    discount_type: str = "percentage"
    discount_value: str = "0"
    images: Tuple[ImageRef, ...] = field(default_factory=tuple)
    old_public_id: Optional[str] = None

    @classmethod
    def blank(cls) -> "ProductDraft":
        return cls()

    @classmethod
    def from_entity(cls, d: Dict[str, Any]) -> "ProductDraft":
        """Seed a draft from a product entity as returned by the API."""
        if d is None:
            raise ValueError("Cannot construct ProductDraft from None")
        discount = d.get("discount") or {}
        raw_images = d.get("images") or []
        images = tuple(PersistedImage.from_dict(img) for img in raw_images if isinstance(img, dict))

        return cls(
            title=_as_text(d.get("title")),
            description=_as_text(d.get("description")),
            category_id=_nested_id(d, "category", "categoryId"),
            brand_id=_nested_id(d, "brand", "brandId"),
            base_price=_as_text(d.get("basePrice", d.get("baseprice"))),
            # stock 0 is a real value and must not seed as blank
            stock=_as_text(d.get("stock")),
            discount_type=_as_text(discount.get("type")) or "percentage",
            discount_value=_as_text(discount.get("value", "0")) or "0",
            images=images,
        )

    def with_field(self, name: str, value: Any) -> "ProductDraft":
        if name not in SCALAR_FIELDS:
            raise KeyError(f"Unknown draft field: {name}")
        return replace(self, **{name: _as_text(value)})

    def get(self, name: str) -> Any:
        return getattr(self, name)

    def scalars(self) -> Dict[str, str]:
        return {name: getattr(self, name) for name in SCALAR_FIELDS}

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["images"] = [img.to_dict() for img in self.images]
        return out


SCALAR_FIELDS = tuple(name for name in FIELD_ORDER if name != "images")
