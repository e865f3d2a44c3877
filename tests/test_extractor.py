import io

import httpx
import pytest

from src.errors import DocumentTooLarge, ExtractionFailed, UnsupportedFormat
from src.extraction.extractor import RemoteExtractor, TextExtractor, extract_text
from src.schemas import RawDocument


def _docx_bytes(*paragraphs: str) -> bytes:
    docx = pytest.importorskip("docx", reason="python-docx is required for DOCX tests")
    document = docx.Document()
    for text in paragraphs:
        document.add_paragraph(text)
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


def _blank_pdf_bytes() -> bytes:
    from PyPDF2 import PdfWriter

    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


def _remote(handler) -> RemoteExtractor:
    return RemoteExtractor("https://ocr.example/extract", api_key="k", transport=httpx.MockTransport(handler))


# --- extract_text ---------------------------------------------------------------------

def test_txt_is_decoded_as_utf8():
    assert extract_text("Zellteilung – Mitose".encode("utf-8"), "txt") == "Zellteilung – Mitose"


def test_txt_bom_is_dropped_and_type_tag_normalised():
    assert extract_text(b"\xef\xbb\xbfHello", ".TXT") == "Hello"


def test_docx_paragraphs():
    data = _docx_bytes("Lecture 1", "Entropy always increases.")
    assert extract_text(data, "docx") == "Lecture 1\nEntropy always increases."


@pytest.mark.parametrize("file_type", ["pptx", "", "doc"])
def test_unknown_type_is_unsupported(file_type):
    with pytest.raises(UnsupportedFormat):
        extract_text(b"data", file_type)


@pytest.mark.parametrize("file_type", ["pdf", "docx"])
def test_corrupt_file_fails_extraction(file_type):
    with pytest.raises(ExtractionFailed):
        extract_text(b"definitely not a document", file_type)


def test_invalid_utf8_text_fails_extraction():
    with pytest.raises(ExtractionFailed):
        extract_text(b"\xff\xfe\xfa", "txt")


# --- TextExtractor ----------------------------------------------------------------------

def test_extract_documents_joins_in_order():
    docs = [
        RawDocument.from_file_name("week1.txt", b"First."),
        RawDocument.from_file_name("week2.TXT", b"Second.", mime_type="text/plain"),
    ]
    assert TextExtractor().extract_documents(docs) == "First.\n\nSecond."


def test_oversized_document_is_rejected():
    doc = RawDocument.from_file_name("big.txt", b"x" * 11)
    with pytest.raises(DocumentTooLarge):
        TextExtractor(max_file_size=10).extract_documents([doc])


def test_disallowed_mime_type_is_rejected():
    doc = RawDocument.from_file_name("slides.txt", b"x", mime_type="image/png")
    with pytest.raises(UnsupportedFormat):
        TextExtractor().extract_documents([doc])


def test_scanned_pdf_goes_to_remote_service():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"text": "OCR text"})

    extractor = TextExtractor(remote=_remote(handler))
    doc = RawDocument.from_file_name("scan.pdf", _blank_pdf_bytes())

    assert extractor.extract(doc) == "OCR text"
    assert len(calls) == 1
    assert calls[0].headers["Authorization"] == "Bearer k"


def test_text_files_never_call_remote():
    def handler(request):
        raise AssertionError("remote should not be called")

    extractor = TextExtractor(remote=_remote(handler))
    assert extractor.extract(RawDocument.from_file_name("a.txt", b"plain")) == "plain"


# --- RemoteExtractor ---------------------------------------------------------------------

def test_remote_http_error_fails_extraction():
    extractor = _remote(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(ExtractionFailed):
        extractor.extract(b"%PDF", "pdf")


def test_remote_reply_without_text_fails_extraction():
    extractor = _remote(lambda request: httpx.Response(200, json={"pages": []}))
    with pytest.raises(ExtractionFailed):
        extractor.extract(b"%PDF", "pdf")
