"""Tests for extraction.py - per-file extraction and the concurrent batch."""

import time

import pytest

import extraction
from conftest import make_pdf
from models import MonthlyExtraction, TextExtraction, UploadedDocument


def test_csv_is_read_locally_and_truncated(fake_openai):
    document = UploadedDocument(filename="march.csv", content=b"x" * 9000)

    result = extraction.extract_document(document, "Mzansi Bakery", "bank")

    assert isinstance(result, TextExtraction)
    assert len(result.raw_text) == 8000
    assert fake_openai.calls == []


def test_workbook_is_read_locally(fake_openai, workbook):
    result = extraction.extract_document(UploadedDocument(filename="ledger.xlsx", content=workbook))

    assert isinstance(result, TextExtraction)
    assert "=== Income ===" in result.raw_text
    assert "Sales,1000" in result.raw_text
    assert fake_openai.calls == []


def test_unreadable_workbook_reports_error():
    result = extraction.extract_document(UploadedDocument(filename="ledger.xls", content=b"nope"))

    assert result.raw_text.startswith("[Excel parsing error:")


def test_management_pdf_without_key_reports_unreadable_pdf(no_api_key):
    document = UploadedDocument(filename="fy2024.pdf", content=b"not a pdf")

    result = extraction.extract_document(document, input_type="management")

    assert isinstance(result, TextExtraction)
    assert result.raw_text.startswith("[PDF parsing error:")


def test_other_files_are_decoded_and_truncated():
    result = extraction.extract_document(UploadedDocument(filename="notes.docx", content=b"y" * 5000))

    assert isinstance(result, TextExtraction)
    assert len(result.raw_text) == 4000


def test_bank_pdf_without_key_returns_placeholder(no_api_key, statement_pdf):
    result = extraction.extract_document(UploadedDocument(filename="march.pdf", content=statement_pdf), input_type="bank")

    assert isinstance(result, MonthlyExtraction)
    assert result.period == "Demo"
    assert result.credits == 0
    assert result.top_income == []


def test_management_pdf_without_key_uses_text_layer(no_api_key):
    document = UploadedDocument(filename="fy2024.pdf", content=make_pdf("Gross profit 816,000"))

    result = extraction.extract_document(document, input_type="management")

    assert isinstance(result, TextExtraction)
    assert "Gross profit 816,000" in result.raw_text


def test_bank_pdf_is_summarised_by_model(fake_openai, statement_pdf):
    fake_openai.reply = (
        '```json\n{"period": "Mar 2024", "credits": 185000, "debits": 162000, '
        '"opening_balance": 50000, "closing_balance": 73000, '
        '"top_income": ["Card sales: R 120,000"], "top_expenses": ["Rent: R 25,000"]}\n```'
    )

    result = extraction.extract_document(
        UploadedDocument(filename="march.pdf", content=statement_pdf), "Mzansi Bakery", "bank"
    )

    assert result == MonthlyExtraction(
        filename="march.pdf", period="Mar 2024", credits=185000, debits=162000,
        opening_balance=50000, closing_balance=73000,
        top_income=["Card sales: R 120,000"], top_expenses=["Rent: R 25,000"],
    )
    call = fake_openai.calls[0]
    assert call["max_tokens"] == 600
    assert "Mzansi Bakery bank statement" in fake_openai.prompt_text()
    assert any(part["type"] == "image_url" for part in call["messages"][0]["content"])


def test_bank_pdf_null_figures_become_zero(fake_openai, statement_pdf):
    fake_openai.reply = '{"period": "Apr 2024", "credits": null, "debits": 1200, "top_income": null}'

    result = extraction.extract_document(UploadedDocument(filename="april.pdf", content=statement_pdf))

    assert result.credits == 0
    assert result.debits == 1200
    assert result.top_income == []


def test_bank_pdf_unparseable_reply_falls_back(fake_openai, statement_pdf):
    fake_openai.reply = "Sorry, this statement is illegible."

    result = extraction.extract_document(UploadedDocument(filename="may.pdf", content=statement_pdf))

    assert isinstance(result, MonthlyExtraction)
    assert result.period == "may.pdf"
    assert result.credits == result.debits == 0
    assert result.parse_error == "Sorry, this statement is illegible."


def test_management_pdf_is_transcribed_by_model(fake_openai):
    fake_openai.reply = "INCOME STATEMENT\nRevenue 2,400,000"
    document = UploadedDocument(filename="fy2024.pdf", content=make_pdf("Revenue"))

    result = extraction.extract_document(document, input_type="management")

    assert result == TextExtraction(filename="fy2024.pdf", raw_text="INCOME STATEMENT\nRevenue 2,400,000")
    assert fake_openai.calls[0]["max_tokens"] == 2000


def test_model_errors_propagate(fake_openai, statement_pdf):
    fake_openai.reply = [RuntimeError("overloaded")]

    with pytest.raises(RuntimeError):
        extraction.extract_document(UploadedDocument(filename="june.pdf", content=statement_pdf))


def test_extract_documents_keeps_upload_order_and_skips_failures(monkeypatch):
    def fake_extract(document, business_name, input_type, api_key):
        # Later files finish first
        time.sleep(0.05 * (3 - int(document.filename[0])))
        if document.filename == "2.pdf":
            raise RuntimeError("timeout")
        return MonthlyExtraction(filename=document.filename, period=document.filename)

    monkeypatch.setattr(extraction, "extract_document", fake_extract)
    documents = [UploadedDocument(filename=f"{i}.pdf", content=b"") for i in range(4)]

    extractions, errors = extraction.extract_documents(documents, max_workers=4)

    assert [e.filename for e in extractions] == ["0.pdf", "1.pdf", "3.pdf"]
    assert errors == ["2.pdf: timeout"]


def test_extract_documents_runs_model_calls_concurrently(fake_openai, statement_pdf):
    fake_openai.reply = lambda request: '{"period": "Mar 2024", "credits": 10}'
    documents = [UploadedDocument(filename=f"statement_{i}.pdf", content=statement_pdf) for i in range(3)]

    extractions, errors = extraction.extract_documents(documents, "Mzansi Bakery", "bank")

    assert errors == []
    assert [e.filename for e in extractions] == ["statement_0.pdf", "statement_1.pdf", "statement_2.pdf"]
    assert len(fake_openai.calls) == 3


def test_extract_documents_empty():
    assert extraction.extract_documents([]) == ([], [])
