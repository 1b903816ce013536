"""File-format readers for uploaded financial documents."""

import base64
import io
from typing import List, Optional
import fitz  # PyMuPDF
import pandas as pd

import config
from logger import get_logger
from models import ParsedDocument

logger = get_logger(__name__)

SPREADSHEET_EXTENSIONS = {"xlsx", "xls", "xlsm"}


def file_extension(filename: str) -> str:
    """Return the lower-cased extension of a filename without the dot."""
    if "." not in filename:
        return ""
    return filename.lower().rsplit(".", 1)[-1]


def decode_text(content: bytes) -> str:
    """Decode uploaded bytes as UTF-8, replacing invalid sequences."""
    return content.decode("utf-8", errors="replace")


def spreadsheet_to_text(content: bytes, filename: str, header_template: str = "\n=== Sheet: {sheet} ===\n") -> str:
    """
    Convert every sheet of a workbook to CSV text.

    Args:
        content: Raw workbook bytes
        filename: Original filename (selects the pandas engine)
        header_template: Header written before each sheet, formatted with `sheet`

    Returns:
        Concatenated sheet headers and headerless CSV bodies
    """
    engine = "xlrd" if file_extension(filename) == "xls" else "openpyxl"
    sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None, engine=engine)

    text = ""
    for sheet_name, frame in sheets.items():
        text += header_template.format(sheet=sheet_name)
        text += frame.to_csv(index=False, header=False)
    return text


def pdf_text(content: bytes) -> str:
    """Extract the text layer from every page of a PDF."""
    pdf_document = fitz.open(stream=content, filetype="pdf")
    try:
        return "".join(page.get_text("text") for page in pdf_document)
    finally:
        pdf_document.close()


def render_pdf_pages(content: bytes, max_pages: Optional[int] = None, zoom: Optional[float] = None) -> List[str]:
    """
    Render PDF pages to base64-encoded PNG images for the vision model.

    Args:
        content: Raw PDF bytes
        max_pages: Maximum number of pages to render (default: config.PDF_MAX_PAGES)
        zoom: Zoom factor for rendering (default: config.IMAGE_ZOOM_FACTOR)

    Returns:
        List of base64 PNG strings, one per rendered page
    """
    max_pages = config.PDF_MAX_PAGES if max_pages is None else max_pages
    zoom = config.IMAGE_ZOOM_FACTOR if zoom is None else zoom

    pdf_document = fitz.open(stream=content, filetype="pdf")
    images = []
    try:
        matrix = fitz.Matrix(zoom, zoom)
        for page_num in range(min(len(pdf_document), max_pages)):
            pix = pdf_document[page_num].get_pixmap(matrix=matrix)
            images.append(base64.b64encode(pix.tobytes("png")).decode("utf-8"))
    finally:
        pdf_document.close()

    return images


def parse_document(content: bytes, filename: str, header_template: str = "\n=== Sheet: {sheet} ===\n") -> ParsedDocument:
    """
    Read an uploaded file into plain text.

    Reader failures are reported inline in the returned text rather than raised,
    so one unreadable file never stops the others.

    Args:
        content: Raw file bytes
        filename: Original filename, used to pick the reader
        header_template: Line written before each workbook sheet
    """
    ext = file_extension(filename)

    if ext == "pdf":
        try:
            return ParsedDocument(text=pdf_text(content), type="pdf", filename=filename)
        except Exception as e:
            logger.warning("PDF read failed for %s: %s", filename, e)
            return ParsedDocument(text=f"[PDF parsing error: {e}]", type="pdf", filename=filename)

    if ext in SPREADSHEET_EXTENSIONS:
        try:
            text = spreadsheet_to_text(content, filename, header_template=header_template)
            return ParsedDocument(text=text, type="excel", filename=filename)
        except Exception as e:
            logger.warning("Excel read failed for %s: %s", filename, e)
            return ParsedDocument(text=f"[Excel parsing error: {e}]", type="excel", filename=filename)

    if ext == "csv":
        return ParsedDocument(text=decode_text(content), type="csv", filename=filename)

    # Try as text
    return ParsedDocument(text=decode_text(content), type="unknown", filename=filename)
