from __future__ import annotations

from io import BytesIO

import pdfplumber


def extract_pages_from_pdf(pdf_bytes: bytes) -> list[str]:
    if not pdf_bytes:
        return []

    pages: list[str] = []
    with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
        for page in pdf.pages:
            page_text = page.extract_text() or ""
            pages.append(page_text.replace("\u00a0", " "))
    return pages


def extract_text_from_pdf(pdf_bytes: bytes) -> str:
    return "\n".join(text for text in extract_pages_from_pdf(pdf_bytes) if text).strip()
