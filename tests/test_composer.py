import asyncio
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from quote_pdf.composer import DocumentComposer, MissingDocumentError, coerce_record, generate
from quote_pdf.config import QuoteConfig
from quote_pdf.images import ImageFetcher
from quote_pdf.models import DocumentRecord

from conftest import FakeAssetServer, make_item, make_record, png_bytes


def render(record, fetcher, letterhead_url="/letterhead.png"):
    composer = DocumentComposer(
        record, fetcher, letterhead_url=letterhead_url, generated_on=date(2025, 11, 14)
    )
    data = asyncio.run(composer.render())
    return composer, data


def test_single_item_document_fits_on_one_page(asset_server):
    record = make_record(items=[make_item(image_url="/uploads/caneca.png")])

    composer, data = render(record, asset_server.fetcher())

    assert data.startswith(b"%PDF")
    assert composer.page_count == 1
    assert len(composer.cursor.blocks("item_row")) == 1


def test_sections_drawn_in_fixed_order(asset_server):
    record = make_record(
        notes="Entrega em horário comercial.",
        payment={"method": "PIX"},
        items=[make_item(customization_photo="/uploads/logo-caneca.png")],
    )

    composer, _ = render(record, asset_server.fetcher())

    kinds = [p.kind for p in composer.placements if p.kind != "background"]
    assert kinds == [
        "branch_box",
        "header",
        "parties",
        "table_header",
        "item_row",
        "totals",
        "payment_shipping",
        "notes",
        "gallery_title",
        "gallery_block",
    ]


def test_long_document_reapplies_background_and_keeps_branch_on_page_one(asset_server):
    record = make_record(items=[make_item(name=f"Produto {i}") for i in range(40)])

    composer, _ = render(record, asset_server.fetcher())

    assert composer.page_count >= 2
    background_pages = [p.page for p in composer.cursor.blocks("background")]
    assert background_pages == list(range(1, composer.page_count + 1))
    branch = composer.cursor.blocks("branch_box")
    assert len(branch) == 1
    assert branch[0].page == 1
    assert asset_server.count("/letterhead.png") == 1


def test_rows_match_items_in_order(asset_server):
    names = [f"Produto {i:02d}" for i in range(25)]
    record = make_record(items=[make_item(name=n) for n in names])

    composer, _ = render(record, asset_server.fetcher())

    assert [p.label for p in composer.cursor.blocks("item_row")] == names


def test_shared_image_url_fetched_once(asset_server):
    record = make_record(
        items=[
            make_item(name="A", image_url="/uploads/caneca.png"),
            make_item(name="B", image_url="/uploads/caneca.png"),
            make_item(name="C", image_url="/uploads/caderno.png", customization_photo="/uploads/caneca.png"),
        ]
    )

    render(record, asset_server.fetcher())

    assert asset_server.count("/uploads/caneca.png") == 1
    assert asset_server.count("/uploads/caderno.png") == 1


def test_broken_images_degrade_to_placeholders():
    server = FakeAssetServer(
        routes={"/uploads/ok.png": png_bytes(), "/uploads/corrupt.png": b"garbage"},
        delay_paths={"/uploads/slow.png"},
    )
    record = make_record(
        items=[
            make_item(name="404", image_url="/uploads/missing.png", customization_photo="/uploads/missing.png"),
            make_item(name="Lento", image_url="/uploads/slow.png"),
            make_item(name="Corrompida", image_url="/uploads/corrupt.png"),
            make_item(name="Ok", image_url="/uploads/ok.png"),
        ]
    )
    fetcher = server.fetcher(timeout=0.2)

    composer, data = render(record, fetcher)

    assert data.startswith(b"%PDF")
    assert len(composer.cursor.blocks("item_row")) == 4
    assert [p.label for p in composer.cursor.blocks("gallery_block")] == ["404"]
    assert set(fetcher.failed) == {
        "/letterhead.png",
        "/uploads/missing.png",
        "/uploads/slow.png",
        "/uploads/corrupt.png",
    }
    assert composer.cursor.blocks("background") == []


def test_missing_optional_parts_still_render(asset_server):
    record = DocumentRecord(number="ORC-77", total_value="0")

    composer, data = render(record, asset_server.fetcher())

    assert data.startswith(b"%PDF")
    assert composer.cursor.blocks("item_row") == []
    assert composer.cursor.blocks("branch_box") == []
    assert len(composer.cursor.blocks("totals")) == 1


def test_composer_is_single_use(asset_server):
    composer, _ = render(make_record(), asset_server.fetcher())
    with pytest.raises(RuntimeError):
        asyncio.run(composer.render())


class TestGenerate:
    def test_returns_pdf_bytes(self, asset_server):
        settings = QuoteConfig(asset_origin="http://app.test", letterhead_url="/letterhead.png")

        data = asyncio.run(
            generate(make_record(), fetcher=asset_server.fetcher(), settings=settings)
        )

        assert isinstance(data, bytes)
        assert data.startswith(b"%PDF")

    def test_accepts_mapping(self, asset_server):
        settings = replace(QuoteConfig(), letterhead_url="")
        record = make_record().model_dump(mode="json")

        data = asyncio.run(generate(record, fetcher=asset_server.fetcher(), settings=settings))

        assert data.startswith(b"%PDF")
        assert asset_server.calls == []

    def test_missing_record_raises(self):
        with pytest.raises(MissingDocumentError):
            asyncio.run(generate(None))

    def test_malformed_record_raises_before_any_fetch(self, asset_server):
        with pytest.raises(MissingDocumentError, match="Malformed"):
            asyncio.run(generate({"title": "sem número"}, fetcher=asset_server.fetcher()))
        assert asset_server.calls == []


def test_coerce_record_rejects_other_types():
    with pytest.raises(MissingDocumentError):
        coerce_record(["not", "a", "record"])


def _with_nulls(patch):
    data = make_record(
        payment={"method": "Cartão"},
        shipping={"method": "Correios"},
        items=[make_item(customization={"mode": "flat", "value": "5.00", "description": "Logo"})],
    ).model_dump(mode="json")
    for path, value in patch.items():
        target = data
        *parents, leaf = path.split(".")
        for key in parents:
            target = target[int(key)] if isinstance(target, list) else target[key]
        target[leaf] = value
    return data


NULLABLE_FIELDS = [
    "title",
    "has_discount",
    "discount_type",
    "discount_percentage",
    "discount_value",
    "has_customization",
    "customization_percentage",
    "customization_value",
    "client.name",
    "branch.show_on_first_page",
    "payment.method",
    "payment.installments",
    "shipping.method",
    "shipping.delivery_type",
    "items.0.quantity",
    "items.0.unit_price",
    "items.0.total_price",
    "items.0.product.name",
    "items.0.customization.mode",
    "items.0.customization.percentage",
    "items.0.customization.value",
]


@pytest.mark.parametrize("path", NULLABLE_FIELDS)
def test_null_optional_field_renders_with_default(path, caplog):
    settings = replace(QuoteConfig(), letterhead_url="")
    document = _with_nulls({path: None})

    with caplog.at_level(logging.WARNING, logger="quote_pdf.models"):
        data = asyncio.run(generate(document, fetcher=ImageFetcher(origin="", timeout=1.0), settings=settings))

    assert data.startswith(b"%PDF")
    assert path.rsplit(".", 1)[-1] in caplog.text


def test_null_defaults_match_absent_fields():
    record = coerce_record(
        _with_nulls({"discount_type": None, "payment.installments": None, "items.0.quantity": None})
    )
    assert record.discount_type == "percentage"
    assert record.payment.installments == 1
    assert record.items[0].quantity == Decimal("1")


@pytest.mark.parametrize("path", ["number", "total_value"])
def test_null_required_field_still_rejected(path):
    with pytest.raises(MissingDocumentError, match="Malformed"):
        coerce_record(_with_nulls({path: None}))
