"""Quote renderer: FastAPI application.

POST /render: Render a quote record to a PDF download.
GET  /health: Liveness check.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse, Response

from quote_pdf.composer import MissingDocumentError, generate
from quote_pdf.config import config
from quote_pdf.models import DocumentRecord
from quote_pdf.telemetry import init_telemetry

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=getattr(logging, config.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
)
logger = logging.getLogger("quote_pdf")

# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Quote PDF Renderer",
    version="0.1.0",
    description="Paginated quote documents with letterhead and product images",
)


@app.on_event("startup")
async def _startup() -> None:
    init_telemetry()
    logger.info(
        "Quote renderer started, asset_origin=%s, auth=%s",
        config.asset_origin,
        config.auth_enabled,
    )


# ---------------------------------------------------------------------------
# Auth dependency
# ---------------------------------------------------------------------------


def _verify_api_key(x_api_key: str) -> None:
    if config.api_key and x_api_key != config.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.post("/render")
async def render_document(
    body: DocumentRecord,
    x_api_key: str = Header(default=""),
):
    """Render the posted record and return it as a PDF attachment."""
    _verify_api_key(x_api_key)

    try:
        pdf_bytes = await generate(body)
    except MissingDocumentError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    filename = f"orcamento-{body.number}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------------------
# Error handler
# ---------------------------------------------------------------------------


@app.exception_handler(Exception)
async def _global_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error": str(exc)},
    )
