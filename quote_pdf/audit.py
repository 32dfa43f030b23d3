"""Structured audit logging for document generation.

Rules:
- Never log document or image bytes
- Log metadata only
- Structured JSON format
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone


logger = logging.getLogger("quote_pdf.audit")


def _emit(event: str, **kwargs) -> None:
    """Emit a structured audit log entry."""
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "quote-pdf",
        "event": event,
        **kwargs,
    }
    logger.info(json.dumps(entry, default=str))


def log_generation_started(document_number: str, item_count: int) -> None:
    _emit(
        "generation_started",
        document_number=document_number,
        item_count=item_count,
    )


def log_asset_failed(url: str, reason: str) -> None:
    _emit("asset_failed", url=url, reason=reason)


def log_generation_completed(
    document_number: str,
    page_count: int,
    byte_size: int,
    failed_assets: int,
    duration_ms: float,
) -> None:
    _emit(
        "generation_completed",
        document_number=document_number,
        page_count=page_count,
        byte_size=byte_size,
        failed_assets=failed_assets,
        duration_ms=round(duration_ms, 2),
    )
