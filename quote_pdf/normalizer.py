"""Document record normalizer.

Fills the optional parts of a record with neutral defaults so that the
section renderers never need to branch on ``None``:
- Missing client / vendor become an empty ``Party``
- Missing item list becomes ``[]``
- Items without a product get an empty ``Product``

Each substitution is logged as a warning; nothing here raises.
"""

from __future__ import annotations

import logging

from quote_pdf.models import DocumentRecord, Party, Product

logger = logging.getLogger(__name__)


def normalize(record: DocumentRecord) -> DocumentRecord:
    """Return a copy of *record* with neutral defaults for absent optionals."""
    updates: dict = {}

    for role in ("client", "vendor"):
        if getattr(record, role) is None:
            logger.warning("Document %s has no %s; rendering an empty block", record.number, role)
            updates[role] = Party()

    if record.items is None:
        logger.warning("Document %s has no item list; rendering an empty table", record.number)
        updates["items"] = []
    else:
        items = []
        for index, item in enumerate(record.items, start=1):
            if item.product is None:
                logger.warning("Document %s item %d has no product", record.number, index)
                item = item.model_copy(update={"product": Product()})
            items.append(item)
        updates["items"] = items

    if record.branch is None:
        logger.info("Document %s has no branch; skipping the branch box", record.number)

    return record.model_copy(update=updates)
