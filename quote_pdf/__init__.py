"""Quote PDF renderer: paginated, print-ready documents from quote records."""

from quote_pdf.composer import DocumentComposer, MissingDocumentError, generate
from quote_pdf.images import ImageFetcher
from quote_pdf.models import DocumentRecord

__all__ = [
    "DocumentComposer",
    "DocumentRecord",
    "ImageFetcher",
    "MissingDocumentError",
    "generate",
]
