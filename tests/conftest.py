# tests/conftest.py
import io
import json
import os
import sys

import httpx
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from PIL import Image

# ensure project root is importable
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from product_form.form import ProductForm  # noqa: E402
from product_form.models.images import LocalFile  # noqa: E402
from product_form.services.api_client import ProductApiClient  # noqa: E402
from product_form.utils.images import PreviewStore  # noqa: E402


CATEGORIES = [{"_id": "c1", "name": "Kitchen"}, {"_id": "c2", "name": "Decor"}]
BRANDS = [{"_id": "b1", "name": "Acme"}]


class FakeBackend:
    """
    In-process stand-in for the remote catalog API. Records every product
    request as {"method", "path", "headers", "fields", "files"}.
    """

    def __init__(self):
        self.requests = []
        self.directory_status = 200
        self.reject = None  # (status_code, json_body) to fail product writes
        self.hold = None  # asyncio.Event; product writes wait on it when set
        self.arrived = None  # asyncio.Event set when a product write arrives
        self.app = self._build_app()

    def product_requests(self, method=None):
        return [r for r in self.requests if method is None or r["method"] == method]

    async def _record(self, request: Request):
        form = await request.form()
        fields, files = [], []
        for key, value in form.multi_items():
            if isinstance(value, str):
                fields.append((key, value))
            else:
                files.append((key, value.filename, await value.read()))
        entry = {
            "method": request.method,
            "path": request.url.path,
            "headers": dict(request.headers),
            "fields": fields,
            "files": files,
        }
        self.requests.append(entry)
        return entry

    def _entity(self, entity_id, entry):
        fields = dict(entry["fields"])
        kept = [json.loads(v) for k, v in entry["fields"] if k == "existingImages"]
        uploaded = [
            {"_id": f"img{i}", "public_id": f"pub{i}", "secure_url": f"https://cdn.test/{name}"}
            for i, (_, name, _) in enumerate(entry["files"], start=len(kept) + 1)
        ]
        return {
            "_id": entity_id,
            "title": fields.get("title", ""),
            "description": fields.get("description", ""),
            "basePrice": float(fields.get("baseprice") or 0),
            "stock": int(fields.get("stock") or 0),
            "discount": {"type": fields.get("discountType"), "value": float(fields.get("discountValue") or 0)},
            "category": {"_id": fields.get("categoryId")},
            "brand": {"_id": fields.get("brandId")},
            "images": kept + uploaded,
        }

    async def _write(self, request: Request, entity_id: str):
        entry = await self._record(request)
        if self.arrived is not None:
            self.arrived.set()
        if self.hold is not None:
            await self.hold.wait()
        if self.reject:
            status, body = self.reject
            return JSONResponse(body, status_code=status)
        return {"data": self._entity(entity_id, entry)}

    def _build_app(self) -> FastAPI:
        app = FastAPI()

        @app.get("/category/")
        async def categories():
            if self.directory_status != 200:
                return JSONResponse({"error_message": "down"}, status_code=self.directory_status)
            return {"data": CATEGORIES}

        @app.get("/brand/")
        async def brands():
            if self.directory_status != 200:
                return JSONResponse({"error_message": "down"}, status_code=self.directory_status)
            return {"data": BRANDS}

        @app.post("/product/{category_id}/{brand_id}")
        async def create_product(category_id: str, brand_id: str, request: Request):
            return await self._write(request, "p-new")

        @app.put("/product/{entity_id}")
        async def update_product(entity_id: str, request: Request):
            return await self._write(request, entity_id)

        return app


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(backend):
    return ProductApiClient(
        token="tok123",
        base_url="http://testserver",
        transport=httpx.ASGITransport(app=backend.app),
    )


@pytest.fixture
def previews(tmp_path):
    return PreviewStore(tmp_path / "previews", size=64)


@pytest.fixture
def make_form(api, previews):
    """
    Build a ProductForm wired to the fake backend.
    Usage: form = make_form(product=None, on_submit=cb)
    """
    def _fn(product=None, on_submit=None, on_cancel=None):
        return ProductForm(api, product=product, on_submit=on_submit,
                           on_cancel=on_cancel, previews=previews)
    return _fn


@pytest.fixture
def make_sample_jpeg_bytes():
    """
    Return a callable that generates JPEG bytes for tests that need image uploads.
    Usage: jpg = make_sample_jpeg_bytes(size=(200,200))
    """
    def _fn(size=(200, 200), color=(180, 120, 60)):
        bio = io.BytesIO()
        im = Image.new("RGB", size, color)
        im.save(bio, format="JPEG", quality=85)
        bio.seek(0)
        return bio.read()
    return _fn


@pytest.fixture
def jpeg_file(make_sample_jpeg_bytes):
    def _fn(name="mug.jpg"):
        return LocalFile(filename=name, content=make_sample_jpeg_bytes(), content_type="image/jpeg")
    return _fn


@pytest.fixture
def existing_product():
    return {
        "_id": "p42",
        "title": "Blue Bowl",
        "description": "A deep blue stoneware bowl",
        "category": {"_id": "c2", "name": "Decor"},
        "brand": {"_id": "b1", "name": "Acme"},
        "basePrice": 25.5,
        "stock": 0,
        "discount": {"type": "fixed", "value": 5},
        "images": [
            {"_id": "i1", "public_id": "shop/bowl-1", "secure_url": "https://cdn.test/bowl-1.jpg"},
        ],
    }


def fill_valid(form, **overrides):
    values = {
        "title": "Red Mug",
        "description": "A nice red ceramic mug",
        "category_id": "c1",
        "brand_id": "b1",
        "base_price": "9.99",
        "stock": "10",
        "discount_type": "percentage",
        "discount_value": "0",
    }
    values.update(overrides)
    for name, value in values.items():
        form.set_field(name, value)
    return form


@pytest.fixture
def fill():
    return fill_valid

