from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

import quote_pdf.main as service
from quote_pdf.composer import generate
from quote_pdf.config import QuoteConfig

from conftest import make_record


@pytest.fixture
def client(monkeypatch, asset_server):
    settings = QuoteConfig(asset_origin="http://app.test", letterhead_url="/letterhead.png", api_key="")

    async def _generate(document):
        return await generate(document, fetcher=asset_server.fetcher(), settings=settings)

    monkeypatch.setattr(service, "config", settings)
    monkeypatch.setattr(service, "generate", _generate)
    return TestClient(service.app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_render_returns_pdf_attachment(client):
    body = make_record(number="ORC-0042").model_dump(mode="json")

    resp = client.post("/render", json=body)

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="orcamento-ORC-0042.pdf"' in resp.headers["content-disposition"]
    assert resp.content.startswith(b"%PDF")


def test_malformed_body_rejected(client):
    resp = client.post("/render", json={"title": "sem número"})
    assert resp.status_code == 422


def test_api_key_enforced(client, monkeypatch):
    monkeypatch.setattr(service, "config", replace(service.config, api_key="secret"))
    body = make_record().model_dump(mode="json")

    assert client.post("/render", json=body).status_code == 401
    ok = client.post("/render", json=body, headers={"X-API-Key": "secret"})
    assert ok.status_code == 200
