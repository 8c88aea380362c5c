# product_form/schemas/product.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional, Union


class DirectoryEntry(BaseModel):
    """A category or brand as listed by the directory endpoints."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias="_id")
    name: str = ""


class ImageOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias="_id")
    public_id: Optional[str] = ""
    secure_url: Optional[str] = ""


class DiscountOut(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = "percentage"
    value: Optional[float] = 0.0


class ProductOut(BaseModel):
    """
    Product entity as returned under `data` by create/update. The server has
    already saved it, so fields other than the id are loosely typed.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias="_id")
    title: Optional[str] = ""
    description: Optional[str] = ""
    basePrice: Optional[float] = None
    stock: Optional[Union[int, float]] = None
    discount: Optional[DiscountOut] = None
    images: List[ImageOut] = Field(default_factory=list)
    category: Optional[Any] = None
    brand: Optional[Any] = None

    def to_entity(self) -> Dict[str, Any]:
        """Plain dict in the API's own shape, suitable for ProductDraft.from_entity."""
        return self.model_dump(by_alias=True, exclude_none=True)
