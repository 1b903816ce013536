"""Tests for ingestion.py - file-format readers."""

import base64

import pytest

from conftest import make_pdf
from ingestion import file_extension, parse_document, pdf_text, render_pdf_pages, spreadsheet_to_text


@pytest.mark.parametrize("filename, expected", [
    ("statement.PDF", "pdf"),
    ("accounts.2024.xlsx", "xlsx"),
    ("export.csv", "csv"),
    ("README", ""),
])
def test_file_extension(filename, expected):
    assert file_extension(filename) == expected


def test_parse_pdf_reads_text_layer():
    parsed = parse_document(make_pdf("Revenue 2,400,000"), "accounts.pdf")

    assert parsed.type == "pdf"
    assert parsed.filename == "accounts.pdf"
    assert "Revenue 2,400,000" in parsed.text


def test_parse_pdf_error_is_reported_inline():
    parsed = parse_document(b"not a pdf", "broken.pdf")

    assert parsed.type == "pdf"
    assert parsed.text.startswith("[PDF parsing error:")


def test_parse_workbook_includes_every_sheet(workbook):
    parsed = parse_document(workbook, "accounts.xlsx")

    assert parsed.type == "excel"
    assert "=== Sheet: Income ===" in parsed.text
    assert "=== Sheet: Costs ===" in parsed.text
    assert "Sales,1000" in parsed.text
    assert "Rent,250" in parsed.text


def test_parse_workbook_error_is_reported_inline():
    parsed = parse_document(b"garbage", "accounts.xlsx")

    assert parsed.type == "excel"
    assert parsed.text.startswith("[Excel parsing error:")


def test_parse_csv_and_unknown_decode_utf8():
    csv = parse_document("Date,Amount\n2024-03-01,R 1 500\n".encode("utf-8"), "march.csv")
    other = parse_document(b"plain notes \xff", "notes.txt")

    assert csv.type == "csv"
    assert csv.text.startswith("Date,Amount")
    assert other.type == "unknown"
    assert other.text.startswith("plain notes")


def test_spreadsheet_header_template(workbook):
    text = spreadsheet_to_text(workbook, "accounts.xlsx", header_template="\n--- {sheet} ---\n")

    assert "--- Income ---" in text
    assert "=== Sheet" not in text


def test_pdf_text_joins_pages():
    text = pdf_text(make_pdf("Page one", "Page two"))

    assert text.index("Page one") < text.index("Page two")


def test_render_pdf_pages_respects_max_pages():
    images = render_pdf_pages(make_pdf("1", "2", "3"), max_pages=2, zoom=0.5)

    assert len(images) == 2
    assert base64.b64decode(images[0]).startswith(b"\x89PNG")
