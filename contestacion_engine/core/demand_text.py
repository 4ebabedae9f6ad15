"""Plain-text extraction of demand documents uploaded as PDF or Word.

PDFs are read with PyMuPDF and Word files with python-docx. Both libraries
are imported on first use so the API starts without loading them.
"""

import io
from pathlib import PurePath

from contestacion_engine.core.contestacion_errors import (
    DocumentExtractionFailure,
    UnsupportedDocumentError,
)
from contestacion_engine.core.logging import get_logger

logger = get_logger(__name__)

MAX_FILE_SIZE = 15 * 1024 * 1024  # 15 MB

MIME_PDF = "application/pdf"
MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
MIME_DOC = "application/msword"

_TYPES_BY_MIME = {MIME_PDF: "pdf", MIME_DOCX: "docx", MIME_DOC: "doc"}
_TYPES_BY_EXTENSION = {".pdf": "pdf", ".docx": "docx", ".doc": "doc"}


def detect_document_type(mime_type: str | None, filename: str | None = None) -> str | None:
    """
    Classify a document as "pdf", "docx" or "doc".

    The mime type wins; the file extension is used when the mime type is
    missing or generic (e.g. application/octet-stream).
    """
    mime = (mime_type or "").split(";")[0].strip().lower()
    doc_type = _TYPES_BY_MIME.get(mime)
    if doc_type is None and filename:
        doc_type = _TYPES_BY_EXTENSION.get(PurePath(filename).suffix.lower())
    return doc_type


def extract_pdf_text(file_bytes: bytes) -> str:
    import fitz

    try:
        with fitz.open(stream=file_bytes, filetype="pdf") as doc:
            pages = [page.get_text("text") for page in doc]
    except Exception as e:
        raise DocumentExtractionFailure("Failed to extract text from PDF") from e
    return "\n".join(text.strip() for text in pages if text.strip())


def extract_docx_text(file_bytes: bytes) -> str:
    """Paragraph text followed by table rows, cells joined with " | "."""
    from docx import Document

    try:
        doc = Document(io.BytesIO(file_bytes))
    except Exception as e:
        raise DocumentExtractionFailure(
            "Failed to extract text from Word document. Legacy .doc files must be saved as .docx"
        ) from e

    parts = [para.text for para in doc.paragraphs if para.text.strip()]
    for table in doc.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                parts.append(" | ".join(cells))
    return "\n".join(parts).strip()


def extract_demand_text(file_bytes: bytes, mime_type: str | None, filename: str | None = None) -> str:
    """
    Extract the plain text of a demand document.

    Raises:
        UnsupportedDocumentError: Empty file, over MAX_FILE_SIZE, or not PDF/Word
        DocumentExtractionFailure: The file could not be parsed
    """
    if not file_bytes:
        raise UnsupportedDocumentError("Empty file")
    if len(file_bytes) > MAX_FILE_SIZE:
        raise UnsupportedDocumentError("File too large. Maximum size is 15 MB")

    doc_type = detect_document_type(mime_type, filename)
    if doc_type is None:
        raise UnsupportedDocumentError("Unsupported file type. Use PDF or Word (.doc, .docx)")

    # .doc is accepted and handed to python-docx, which reads .doc files that are really DOCX
    text = extract_pdf_text(file_bytes) if doc_type == "pdf" else extract_docx_text(file_bytes)
    logger.info(
        f"Extracted {len(text)} chars from {doc_type} demand document",
        extra={"doc_type": doc_type, "size_bytes": len(file_bytes)},
    )
    return text
