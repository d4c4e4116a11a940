"""Document text extraction: turns uploaded PDF / Word / spreadsheet / CSV / plain-text bytes
into normalized plain text so a single extraction prompt handles every source format."""

from __future__ import annotations

import csv
import io
import logging
import mimetypes
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, List, Optional

import fitz  # PyMuPDF
import pandas as pd
from docx import Document
from docx.oxml.table import CT_Tbl
from docx.oxml.text.paragraph import CT_P
from docx.table import Table

from talentmatch.core.errors import ExtractionError, UnsupportedFormat

logger = logging.getLogger("extract.document")


# --- Recognized formats ---

TEXT = "text"
CSV = "csv"
SPREADSHEET = "spreadsheet"
PDF = "pdf"
DOCX = "docx"
DOC = "doc"

MIME_FORMATS: Dict[str, str] = {
    "text/plain": TEXT,
    "text/csv": CSV,
    "application/csv": CSV,
    "text/comma-separated-values": CSV,
    "text/x-csv": CSV,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": SPREADSHEET,
    "application/vnd.ms-excel": SPREADSHEET,
    "application/pdf": PDF,
    "application/x-pdf": PDF,
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DOCX,
    "application/msword": DOC,
}

EXTENSION_MIME: Dict[str, str] = {
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ".xls": "application/vnd.ms-excel",
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
}

_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"
_ZIP_MAGIC = b"PK\x03\x04"


def detect_mime(filename: str, declared: Optional[str] = None) -> str:
    """Keep a declared type unless it is missing or generic; otherwise guess from the extension."""
    if declared and _base_mime(declared) not in ("", "application/octet-stream"):
        return declared
    ext = Path(filename or "").suffix.lower()
    if ext in EXTENSION_MIME:
        return EXTENSION_MIME[ext]
    guess, _ = mimetypes.guess_type(filename or "")
    return guess or "application/octet-stream"


def _base_mime(mime_type: Optional[str]) -> str:
    return (mime_type or "").split(";", 1)[0].strip().lower()


def format_for_mime(mime_type: Optional[str], data: bytes = b"") -> str:
    fmt = MIME_FORMATS.get(_base_mime(mime_type))
    if fmt is None:
        raise UnsupportedFormat(mime_type)
    # Windows browsers label .csv uploads as application/vnd.ms-excel
    if fmt == SPREADSHEET and _base_mime(mime_type) == "application/vnd.ms-excel":
        if not (data.startswith(_OLE_MAGIC) or data.startswith(_ZIP_MAGIC)):
            return CSV
    return fmt


# --- Normalization ---

def normalize_text(text: str) -> str:
    text = (text or "").replace("\r\n", "\n").replace("\r", "\n").replace("\x00", "")
    lines = [line.rstrip() for line in text.split("\n")]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


# --- Format handlers ---

def parse_text_content(file_content: bytes) -> str:
    """Strict UTF-8 (a leading BOM is dropped)."""
    return file_content.decode("utf-8-sig")


def _row_line(values) -> str:
    cells = []
    for v in values:
        if v is None:
            continue
        s = str(v).strip()
        if s:
            cells.append(s)
    return " ".join(cells)


def _rows_after_header(rows: Iterable) -> str:
    """The first non-blank row is the header and is left out; later rows become one line each."""
    lines = [line for line in (_row_line(r) for r in rows) if line]
    return "\n".join(lines[1:])


def parse_csv_content(file_content: bytes) -> str:
    """Rows may be ragged: every cell of every data row is kept, whatever the header width."""
    reader = csv.reader(io.StringIO(file_content.decode("utf-8-sig"), newline=""))
    return _rows_after_header(reader)


def parse_spreadsheet_content(file_content: bytes) -> str:
    """First sheet only, header row left out as for CSV."""
    engine = "xlrd" if file_content.startswith(_OLE_MAGIC) else "openpyxl"
    df = pd.read_excel(io.BytesIO(file_content), sheet_name=0, header=None, dtype=str, engine=engine)
    return _rows_after_header(df.fillna("").itertuples(index=False, name=None))


def parse_pdf_content(file_content: bytes) -> str:
    """
    Per-page text in page order, newline-joined.
    A page that cannot be read fails the whole document rather than producing a truncated profile.
    """
    doc = fitz.open(stream=file_content, filetype="pdf")
    try:
        if doc.page_count == 0:
            raise ValueError("PDF has no pages")
        pages: List[str] = []
        for page in doc:
            # sort=True orders text by vertical then horizontal position within the page
            pages.append(page.get_text("text", sort=True).strip())
        return "\n".join(pages)
    finally:
        doc.close()


_BREAK_TAGS = ("}br", "}cr", "}p")


def _xml_text(element) -> str:
    """
    Every <w:t> under the element, in order, so text boxes (w:txbxContent)
    anchored inside a paragraph or header are kept.
    """
    out: List[str] = []
    for node in element.iter():
        tag = node.tag
        if tag.endswith("}t"):
            out.append(node.text or "")
        elif tag.endswith(_BREAK_TAGS):
            out.append("\n")
        elif tag.endswith("}tab"):
            out.append("\t")
    return "".join(out).strip()


def _docx_header_blocks(doc) -> Iterator[str]:
    seen = set()
    for section in doc.sections:
        for header in (section.header, section.first_page_header, section.even_page_header):
            if header is None or header.is_linked_to_previous or header.part in seen:
                continue
            seen.add(header.part)
            yield _xml_text(header.part.element)


def _docx_body_blocks(doc) -> Iterator[str]:
    for child in doc.element.body.iterchildren():
        if isinstance(child, CT_P):
            yield _xml_text(child)
        elif isinstance(child, CT_Tbl):
            for row in Table(child, doc).rows:
                yield " | ".join(c.text.strip() for c in row.cells if c.text.strip())


def parse_docx_content(file_content: bytes) -> str:
    """Headers first (each distinct header part once), then body paragraphs and tables in document order."""
    doc = Document(io.BytesIO(file_content))
    blocks = list(_docx_header_blocks(doc)) + list(_docx_body_blocks(doc))
    return "\n".join(b for b in blocks if b)


def parse_doc_content(file_content: bytes, *, timeout: float = 60.0) -> str:
    """Legacy binary .doc via catdoc (must be installed on the host)."""
    if shutil.which("catdoc") is None:
        raise ExtractionError("catdoc is not installed; legacy .doc files cannot be read")
    with tempfile.TemporaryDirectory() as tmp:
        path = Path(tmp) / "upload.doc"
        path.write_bytes(file_content)
        result = subprocess.run(
            ["catdoc", "-w", str(path)],
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    if result.returncode != 0:
        raise ExtractionError(f"catdoc failed: {result.stderr.strip() or result.returncode}")
    return result.stdout


_HANDLERS: Dict[str, Callable[[bytes], str]] = {
    TEXT: parse_text_content,
    CSV: parse_csv_content,
    SPREADSHEET: parse_spreadsheet_content,
    PDF: parse_pdf_content,
    DOCX: parse_docx_content,
    DOC: parse_doc_content,
}


class DocumentExtractor:
    """`extract(file_bytes, declared_mime_type) -> plain_text` across the recognized formats."""

    def __init__(self, handlers: Optional[Dict[str, Callable[[bytes], str]]] = None):
        self.handlers = dict(_HANDLERS)
        if handlers:
            self.handlers.update(handlers)

    def extract(self, file_bytes: bytes, declared_mime_type: Optional[str]) -> str:
        fmt = format_for_mime(declared_mime_type, file_bytes)
        handler = self.handlers[fmt]
        try:
            raw = handler(file_bytes)
        except ExtractionError:
            raise
        except Exception as e:
            logger.error("Failed to extract %s content (%d bytes): %s", fmt, len(file_bytes), e)
            raise ExtractionError(
                f"Could not read {fmt} document: {e}",
                details={"format": fmt, "mime_type": declared_mime_type},
                cause=e,
            ) from e
        text = normalize_text(raw)
        logger.debug("Extracted %d chars from %s document", len(text), fmt)
        return text


default_extractor = DocumentExtractor()


def extract_text(file_bytes: bytes, declared_mime_type: Optional[str]) -> str:
    return default_extractor.extract(file_bytes, declared_mime_type)

