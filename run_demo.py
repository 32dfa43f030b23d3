#!/usr/bin/env python3
"""
run_demo.py: Render the sample quote to a PDF file.

Usage:
  python run_demo.py                               # sample_data/sample_quote.json -> quote.pdf
  python run_demo.py --record my_quote.json        # Custom record
  python run_demo.py --origin https://app.example  # Resolve /uploads/... against another origin

Images that cannot be reached (no app running at the origin) render as
placeholders; the document is still produced.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from quote_pdf.composer import MissingDocumentError, generate
from quote_pdf.config import config

HERE = Path(__file__).resolve().parent
DEFAULT_RECORD = HERE / "sample_data" / "sample_quote.json"

SEP = "--------------------------------------------------"


def main() -> int:
    parser = argparse.ArgumentParser(description="Render a quote record to PDF")
    parser.add_argument("--record", type=Path, default=DEFAULT_RECORD, help="Quote record JSON")
    parser.add_argument("--output", type=Path, default=Path("quote.pdf"), help="Output PDF path")
    parser.add_argument("--origin", default=None, help="Origin for /uploads/... image paths")
    parser.add_argument("--timeout", type=float, default=None, help="Per-image timeout in seconds")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    )

    settings = config
    if args.origin:
        settings = replace(settings, asset_origin=args.origin)
    if args.timeout is not None:
        settings = replace(settings, image_timeout=args.timeout)

    record = json.loads(args.record.read_text(encoding="utf-8"))

    try:
        pdf_bytes = asyncio.run(generate(record, settings=settings))
    except MissingDocumentError as exc:
        print(f"Cannot render {args.record}: {exc}", file=sys.stderr)
        return 1

    args.output.write_bytes(pdf_bytes)
    print(SEP)
    print(f"Quote {record.get('number')} -> {args.output} ({len(pdf_bytes)} bytes)")
    print(SEP)
    return 0


if __name__ == "__main__":
    sys.exit(main())
