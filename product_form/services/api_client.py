"""
Async client for the remote catalog API (category/brand directory and
product create/update).

Usage:
    async with ProductApiClient(token="abc") as api:
        categories = await api.list_categories()
        product = await api.create_product("c1", "b1", payload)
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from product_form.config import get_settings
from product_form.schemas.product import DirectoryEntry, ProductOut

logger = logging.getLogger(__name__)

GENERIC_SUBMIT_ERROR = "An error occurred while saving the product. Please try again."

FilePart = Tuple[str, Tuple[str, bytes, str]]


def _segment(value: Any) -> str:
    """Quote an opaque id for use as a single path segment."""
    return quote(str(value), safe="")


class DirectoryLoadError(Exception):
    pass


class SubmissionError(Exception):
    def __init__(self, message: str = GENERIC_SUBMIT_ERROR, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


@dataclass
class ProductPayload:
    """
    Multipart body for create/update. `fields` keeps order and repeated
    names (existingImages); `files` holds one ("files", upload) per new image.
    """
    fields: List[Tuple[str, str]] = field(default_factory=list)
    files: List[FilePart] = field(default_factory=list)

    def add(self, name: str, value: Any) -> None:
        self.fields.append((name, "" if value is None else str(value)))

    def add_file(self, upload: Tuple[str, bytes, str], name: str = "files") -> None:
        self.files.append((name, upload))

    def values(self, name: str) -> List[str]:
        return [v for k, v in self.fields if k == name]

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        vals = self.values(name)
        return vals[0] if vals else default

    def data(self) -> Dict[str, Any]:
        """Fields grouped the way httpx expects repeated form values."""
        out: Dict[str, Any] = {}
        for name, value in self.fields:
            if name in out:
                if not isinstance(out[name], list):
                    out[name] = [out[name]]
                out[name].append(value)
            else:
                out[name] = value
        return out


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return GENERIC_SUBMIT_ERROR
    if isinstance(body, dict) and body.get("error_message"):
        return str(body["error_message"])
    return GENERIC_SUBMIT_ERROR


class ProductApiClient:
    def __init__(self, token: Optional[str] = None, base_url: Optional[str] = None,
                 timeout: Optional[float] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        settings = get_settings()
        self.token = token
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self._header_name = settings.ACCESS_TOKEN_HEADER
        self._header_prefix = settings.ACCESS_TOKEN_PREFIX
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.REQUEST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "ProductApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _auth_headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {self._header_name: f"{self._header_prefix}{self.token}"}

    # --- directory ---

    async def _get_list(self, path: str) -> List[DirectoryEntry]:
        try:
            resp = await self._client.get(path)
            resp.raise_for_status()
            rows = resp.json().get("data") or []
            return [DirectoryEntry.model_validate(row) for row in rows]
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            # pydantic ValidationError is a ValueError
            raise DirectoryLoadError(f"Failed to load {path}: {e}") from e

    async def list_categories(self) -> List[DirectoryEntry]:
        return await self._get_list("/category/")

    async def list_brands(self) -> List[DirectoryEntry]:
        return await self._get_list("/brand/")

    # --- products ---

    async def _send(self, method: str, path: str, payload: ProductPayload) -> ProductOut:
        try:
            resp = await self._client.request(
                method,
                path,
                data=payload.data(),
                files=payload.files or None,
                headers=self._auth_headers(),
            )
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise SubmissionError(GENERIC_SUBMIT_ERROR) from e

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.info("%s %s rejected with %s: %s", method, path, resp.status_code, message)
            raise SubmissionError(message, status_code=resp.status_code)

        try:
            return ProductOut.model_validate(resp.json()["data"])
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.warning("%s %s returned an unreadable body: %s", method, path, e)
            raise SubmissionError(GENERIC_SUBMIT_ERROR, status_code=resp.status_code) from e

    async def create_product(self, category_id: str, brand_id: str, payload: ProductPayload) -> ProductOut:
        return await self._send("POST", f"/product/{_segment(category_id)}/{_segment(brand_id)}", payload)

    async def update_product(self, entity_id: str, payload: ProductPayload) -> ProductOut:
        return await self._send("PUT", f"/product/{_segment(entity_id)}", payload)
