"""
Create/update submission: turns the draft into a multipart payload and
sends it to the product service.
"""
from __future__ import annotations
import json
import logging
from typing import Dict

from product_form.core.transitions import FormState
from product_form.core.validation import CREATE, UPDATE
from product_form.models.images import PendingImage, PersistedImage
from product_form.schemas.product import ProductOut
from product_form.services.api_client import ProductApiClient, ProductPayload

logger = logging.getLogger(__name__)

# draft field -> name expected by the product API
WIRE_NAMES: Dict[str, str] = {
    "title": "title",
    "description": "description",
    "category_id": "categoryId",
    "brand_id": "brandId",
    "base_price": "baseprice",
    "stock": "stock",
    "discount_type": "discountType",
    "discount_value": "discountValue",
}


def build_payload(state: FormState) -> ProductPayload:
    draft = state.draft
    payload = ProductPayload()
    for name, wire_name in WIRE_NAMES.items():
        payload.add(wire_name, draft.get(name))

    for image in draft.images:
        if isinstance(image, PersistedImage):
            if state.mode == CREATE:
                raise ValueError("A new product cannot reference stored images")
            payload.add("existingImages", json.dumps(image.to_wire()))
        elif isinstance(image, PendingImage):
            payload.add_file(image.file.as_upload())
        else:
            raise TypeError(f"Unknown image reference: {image!r}")

    if state.mode == UPDATE and draft.old_public_id:
        payload.add("oldPublicId", draft.old_public_id)

    logger.debug(
        "Built %s payload: %d field(s), %d file(s)",
        state.mode, len(payload.fields), len(payload.files),
    )
    return payload


class SubmissionProtocol:
    def __init__(self, api: ProductApiClient):
        self.api = api

    async def send(self, state: FormState) -> ProductOut:
        """Send the draft in `state`. Raises SubmissionError on any failure."""
        payload = build_payload(state)
        if state.mode == UPDATE:
            return await self.api.update_product(state.entity_id, payload)
        return await self.api.create_product(state.draft.category_id, state.draft.brand_id, payload)
