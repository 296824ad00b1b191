"""Render uploaded PDF receipts to images using PyMuPDF."""

import logging

import fitz  # PyMuPDF

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


def is_pdf(data: bytes) -> bool:
    return data[:4] == PDF_MAGIC


class PDFProcessor:
    """Turn in-memory PDF uploads into PNG pages for the vision model."""

    def __init__(self, dpi: int = 200, max_pages: int = 3):
        """Initialize PDF processor.

        Args:
            dpi: Resolution for rendering PDF pages as images.
            max_pages: Pages beyond this are ignored.
        """
        self.dpi = dpi
        self.max_pages = max_pages

    def pdf_to_images(self, pdf_bytes: bytes) -> list[bytes]:
        """Convert the first ``max_pages`` pages to PNG bytes.

        Args:
            pdf_bytes: Raw PDF file contents.

        Returns:
            One PNG per rendered page, in page order.

        Raises:
            ValueError: If the PDF cannot be opened or has no pages.
        """
        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except Exception as e:
            raise ValueError(f"Cannot open PDF: {e}") from e

        images = []
        try:
            if len(doc) == 0:
                raise ValueError("PDF has no pages")
            if len(doc) > self.max_pages:
                logger.warning(f"PDF has {len(doc)} pages, only the first {self.max_pages} are used")

            mat = fitz.Matrix(self.dpi / 72, self.dpi / 72)
            for page_num in range(min(len(doc), self.max_pages)):
                pix = doc[page_num].get_pixmap(matrix=mat)
                images.append(pix.tobytes("png"))
        finally:
            doc.close()

        return images
