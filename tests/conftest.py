"""
Pytest configuration for quote_pdf
"""

import asyncio
import io

import httpx
import pytest
from PIL import Image

from quote_pdf.images import ImageFetcher
from quote_pdf.models import DocumentRecord

ORIGIN = "http://app.test"


def png_bytes(width=40, height=20, color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class FakeAssetServer:
    """Routes for an httpx.MockTransport, counting every request by path."""

    def __init__(self, routes=None, delay_paths=()):
        self.routes = dict(routes or {})
        self.delay_paths = set(delay_paths)
        self.calls = []

    async def handler(self, request):
        path = request.url.path
        self.calls.append(str(request.url))
        if path in self.delay_paths:
            await asyncio.sleep(5)
        body = self.routes.get(path)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=body, headers={"Content-Type": "image/png"})

    def count(self, path):
        return sum(1 for url in self.calls if httpx.URL(url).path == path)

    def fetcher(self, timeout=2.0, origin=ORIGIN):
        client = httpx.AsyncClient(transport=httpx.MockTransport(self.handler))
        return ImageFetcher(client, origin=origin, timeout=timeout)


@pytest.fixture
def asset_server():
    """Fake origin serving a letterhead and a couple of product images."""
    return FakeAssetServer(
        routes={
            "/letterhead.png": png_bytes(210, 297, (245, 245, 255)),
            "/uploads/caneca.png": png_bytes(60, 60),
            "/uploads/caderno.png": png_bytes(80, 40, (30, 30, 200)),
            "/uploads/logo-caneca.png": png_bytes(300, 150, (30, 160, 30)),
        }
    )


def make_item(name="Caneca 350ml", total="100.00", **extra):
    item = {
        "product": {"name": name, "image_url": extra.pop("image_url", None)},
        "quantity": extra.pop("quantity", "10"),
        "unit_price": extra.pop("unit_price", "10.00"),
        "total_price": total,
    }
    item.update(extra)
    return item


def make_record(**overrides):
    data = {
        "number": "ORC-0001",
        "title": "Brindes",
        "created_at": "2025-11-14",
        "total_value": "100.00",
        "client": {"name": "Contoso Ltda.", "email": "compras@contoso.test"},
        "vendor": {"name": "Rafael Souza", "phone": "(11) 98888-1234"},
        "branch": {
            "name": "Matriz",
            "phone": "(11) 3333-4444",
            "address": "Av. Paulista, 1000, São Paulo - SP",
            "tax_id": "98.765.432/0001-10",
        },
        "items": [make_item()],
    }
    data.update(overrides)
    return DocumentRecord.model_validate(data)


@pytest.fixture
def record():
    return make_record()
