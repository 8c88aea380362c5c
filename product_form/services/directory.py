from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from product_form.schemas.product import DirectoryEntry
from product_form.services.api_client import DirectoryLoadError, ProductApiClient

logger = logging.getLogger(__name__)

DIRECTORY_ERROR_NOTICE = "Error loading categories and brands. Please refresh the page."


@dataclass(frozen=True)
class Directory:
    """Category and brand reference lists, read-only for the life of a form."""
    categories: Tuple[DirectoryEntry, ...] = ()
    brands: Tuple[DirectoryEntry, ...] = ()

    def category(self, category_id: str) -> Optional[DirectoryEntry]:
        return next((c for c in self.categories if c.id == category_id), None)

    def brand(self, brand_id: str) -> Optional[DirectoryEntry]:
        return next((b for b in self.brands if b.id == brand_id), None)


class DirectoryLoader:
    def __init__(self, api: ProductApiClient):
        self.api = api

    async def load(self) -> Directory:
        """Fetch categories and brands concurrently. Raises DirectoryLoadError."""
        categories, brands = await asyncio.gather(
            self.api.list_categories(),
            self.api.list_brands(),
        )
        logger.info("Loaded %d categories and %d brands", len(categories), len(brands))
        return Directory(categories=tuple(categories), brands=tuple(brands))


__all__ = ["Directory", "DirectoryLoader", "DirectoryLoadError", "DIRECTORY_ERROR_NOTICE"]
