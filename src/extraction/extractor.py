"""
Lecture Text Extraction
------------------------
Turns an uploaded file's bytes into plain text.

  pdf   PyPDF2, one page after another
  docx  python-docx paragraphs
  txt   UTF-8 decode

Scanned PDFs (little or no native text layer) can be delegated to a
remote OCR-capable extraction service.  There is no retry at this layer:
failures surface as ExtractionFailed and the caller decides whether to
retry the whole upload.
"""
from __future__ import annotations

import io
from typing import Optional

import httpx
from docx import Document as DocxDocument
from loguru import logger
from PyPDF2 import PdfReader

from src.errors import DocumentTooLarge, ExtractionFailed, UnsupportedFormat
from src.schemas import FileType, RawDocument

MAX_FILE_SIZE = 10 * 1024 * 1024      # 10 MB per uploaded file
OCR_MIN_CHARS = 20                    # Below this a PDF is treated as scanned

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}


def parse_file_type(file_type: str) -> FileType:
    """Normalise a declared type tag (".PDF", "docx", ...) to a FileType."""
    tag = (file_type or "").strip().lstrip(".").lower()
    try:
        return FileType(tag)
    except ValueError:
        raise UnsupportedFormat(file_type) from None


# --- Local parsers --------------------------------------------------------------

def _extract_pdf(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n\n".join(pages)


def _extract_docx(data: bytes) -> str:
    document = DocxDocument(io.BytesIO(data))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def _extract_txt(data: bytes) -> str:
    return data.decode("utf-8-sig")


_PARSERS = {
    FileType.PDF: _extract_pdf,
    FileType.DOCX: _extract_docx,
    FileType.TXT: _extract_txt,
}


def extract_text(data: bytes, file_type: str) -> str:
    """
    Extract plain text from ``data`` declared as ``file_type``.

    Raises:
        UnsupportedFormat: unknown type tag.
        ExtractionFailed:  the parser could not read the file.
    """
    kind = parse_file_type(file_type)
    try:
        return _PARSERS[kind](data)
    except Exception as exc:
        raise ExtractionFailed(f"Could not extract {kind.value} content: {exc}") from exc


# --- Remote extraction service ----------------------------------------------------

class RemoteExtractor:
    """
    Client for an OCR-capable extraction service.

    Contract: POST multipart ``file`` (+ ``file_type`` form field) to the
    endpoint, reply ``{"text": "..."}``.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    def extract(self, data: bytes, file_type: str, file_name: str = "upload") -> str:
        kind = parse_file_type(file_type)
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        logger.info(f"[RemoteExtractor] POST {self.endpoint} | {kind.value} | {len(data):,} bytes")
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(
                    self.endpoint,
                    headers=headers,
                    data={"file_type": kind.value},
                    files={"file": (file_name, data)},
                )
                resp.raise_for_status()
                payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ExtractionFailed(f"Remote extraction failed: {exc}") from exc

        text = payload.get("text") if isinstance(payload, dict) else None
        if not isinstance(text, str):
            raise ExtractionFailed("Remote extraction returned no 'text' field")
        return text


# --- Extractor --------------------------------------------------------------------

class TextExtractor:
    """
    Extracts text from RawDocuments, optionally routing scanned PDFs to a
    RemoteExtractor.

    Usage:
        extractor = TextExtractor()
        text = extractor.extract_documents([RawDocument.from_file_name("l1.pdf", data)])
    """

    def __init__(
        self,
        remote: Optional[RemoteExtractor] = None,
        max_file_size: int = MAX_FILE_SIZE,
        ocr_min_chars: int = OCR_MIN_CHARS,
    ) -> None:
        self.remote = remote
        self.max_file_size = max_file_size
        self.ocr_min_chars = ocr_min_chars

    def extract(self, doc: RawDocument) -> str:
        """Extract one document: zero or one call to the remote service."""
        kind = parse_file_type(doc.file_type)
        if self.remote is not None and kind is FileType.PDF:
            text = self._try_local_pdf(doc.data)
            if text is not None and len(text.strip()) >= self.ocr_min_chars:
                return text
            logger.info(
                f"[Extractor] {doc.file_name or 'pdf'} has no usable text layer -> remote OCR"
            )
            return self.remote.extract(doc.data, kind.value, doc.file_name or "upload.pdf")
        return extract_text(doc.data, kind.value)

    def check(self, doc: RawDocument) -> None:
        """Reject disallowed MIME types and oversized files before parsing."""
        name = doc.file_name or doc.file_type
        if doc.mime_type is not None and doc.mime_type not in ALLOWED_MIME_TYPES:
            raise UnsupportedFormat(f"{name} ({doc.mime_type})")
        if doc.size > self.max_file_size:
            raise DocumentTooLarge(name, doc.size, self.max_file_size)

    def extract_documents(self, documents: list[RawDocument]) -> str:
        """Check, extract and concatenate several uploads in input order."""
        texts: list[str] = []
        for doc in documents:
            self.check(doc)
            text = self.extract(doc)
            logger.info(
                f"[Extractor] {doc.file_name or doc.file_type} | "
                f"{doc.size:,} bytes -> {len(text):,} chars"
            )
            texts.append(text)
        return "\n\n".join(texts)

    @staticmethod
    def _try_local_pdf(data: bytes) -> Optional[str]:
        try:
            return _extract_pdf(data)
        except Exception as exc:
            logger.warning(f"[Extractor] Local PDF parse failed ({exc}); using remote service")
            return None
