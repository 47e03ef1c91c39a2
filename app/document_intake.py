"""
Document Intake
================

Loads an uploaded bill (PDF or photo) into a DocumentPayload ready to be
sent inline to the document-understanding model.

PDFs are opened with PyMuPDF to reject unreadable files early and to cap
the number of pages sent to the model (LLM_MAX_PDF_PAGES, default 5).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pymupdf

from errors import UnsupportedDocument

log = logging.getLogger(__name__)

PDF_MIME = "application/pdf"

_EXTENSION_MIME = {
    ".pdf": PDF_MIME,
    ".jpg": "image/jpeg", ".jpeg": "image/jpeg",
    ".png": "image/png", ".webp": "image/webp",
    ".heic": "image/heic", ".heif": "image/heif",
}

_DEFAULT_MAX_PAGES = 5


@dataclass
class DocumentPayload:
    """Bytes and MIME type of a bill document, plus intake notes."""
    data: bytes
    mime_type: str
    page_count: int = 1
    filename: str = ""
    warnings: list[str] = field(default_factory=list)

    @property
    def is_pdf(self) -> bool:
        return self.mime_type == PDF_MIME


def max_pdf_pages() -> int:
    """Page cap from LLM_MAX_PDF_PAGES; falls back to the default on bad input."""
    raw = os.environ.get("LLM_MAX_PDF_PAGES", str(_DEFAULT_MAX_PAGES)).strip()
    try:
        return max(1, int(raw))
    except ValueError:
        return _DEFAULT_MAX_PAGES


def sniff_mime_type(data: bytes, filename: str = "") -> Optional[str]:
    """Guess the MIME type from the filename extension, then magic bytes."""
    ext = os.path.splitext(filename)[1].lower()
    if ext in _EXTENSION_MIME:
        return _EXTENSION_MIME[ext]

    if data.startswith(b"%PDF"):
        return PDF_MIME
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[4:12] in (b"ftypheic", b"ftypheix", b"ftypmif1"):
        return "image/heic"
    return None


def _read_source(source: bytes | str | Path, filename: Optional[str]) -> tuple[bytes, str]:
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise UnsupportedDocument(f"Cannot read document '{path}': {e}") from e
        return data, filename or path.name
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), filename or ""
    raise TypeError(
        f"source must be a path or bytes, got {type(source).__name__}"
    )


def _prepare_pdf(payload: DocumentPayload, max_pages: int) -> DocumentPayload:
    try:
        with pymupdf.open(stream=payload.data, filetype="pdf") as doc:
            page_count = doc.page_count
            if page_count == 0:
                raise UnsupportedDocument("PDF has no pages")
            if page_count > max_pages:
                doc.select(list(range(max_pages)))
                payload.data = doc.tobytes()
                payload.warnings.append(
                    f"LLM PDF context truncated to first {max_pages} of {page_count} pages"
                )
                log.warning(
                    "Trimmed %s from %d to %d pages",
                    payload.filename or "PDF", page_count, max_pages,
                )
    except UnsupportedDocument:
        raise
    except Exception as e:
        raise UnsupportedDocument(f"Cannot open PDF: {e}") from e

    payload.page_count = min(page_count, max_pages)
    return payload


def load_document(
    source: bytes | str | Path,
    filename: Optional[str] = None,
) -> DocumentPayload:
    """Load a bill document from a path or raw bytes.

    Args:
        source: File path, or the uploaded bytes.
        filename: Original upload name, used for MIME detection when
            ``source`` is bytes.

    Returns:
        DocumentPayload ready for the extractor.

    Raises:
        UnsupportedDocument: Empty upload, unknown file type, or a PDF
            that PyMuPDF cannot open.
    """
    data, name = _read_source(source, filename)
    if not data:
        raise UnsupportedDocument("No file uploaded")

    mime_type = sniff_mime_type(data, name)
    if mime_type is None:
        raise UnsupportedDocument(
            f"Unsupported document type{f' for {name!r}' if name else ''}; "
            f"expected a PDF or an image ({', '.join(sorted(_EXTENSION_MIME))})"
        )

    payload = DocumentPayload(data=data, mime_type=mime_type, filename=name)
    if payload.is_pdf:
        payload = _prepare_pdf(payload, max_pdf_pages())
    return payload
