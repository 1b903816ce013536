import io
import json
import threading
from types import SimpleNamespace

import fitz
import pandas as pd
import pytest

import llm_client
from llm_analysis import get_mock_analysis
from models import BusinessContext


class FakeOpenAI:
    """
    Stand-in for openai.OpenAI recording every chat.completions.create call.

    `reply` is either a string returned for every call, a list consumed in order,
    or a callable receiving the request kwargs. Exceptions in the list (or raised
    by the callable) are raised from create().
    """

    def __init__(self, reply=""):
        self.reply = reply
        self.calls = []
        self._lock = threading.Lock()
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self.create))

    def create(self, **kwargs):
        with self._lock:
            self.calls.append(kwargs)
            if callable(self.reply):
                content = self.reply(kwargs)
            elif isinstance(self.reply, list):
                content = self.reply.pop(0)
            else:
                content = self.reply

        if isinstance(content, Exception):
            raise content
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def prompt_text(self, index=-1):
        """All text parts of the user message of one recorded call."""
        content = self.calls[index]["messages"][-1]["content"]
        if isinstance(content, str):
            return content
        return "\n".join(part["text"] for part in content if part["type"] == "text")


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    return "sk-test"


@pytest.fixture
def no_api_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)


@pytest.fixture
def fake_openai(monkeypatch, api_key):
    """Patch the OpenAI client factory; set `.reply` on the returned fake."""
    fake = FakeOpenAI()
    monkeypatch.setattr(llm_client, "get_openai_client", lambda api_key=None: fake)
    return fake


@pytest.fixture
def context():
    return BusinessContext(
        business_name="Mzansi Bakery",
        sector="Food & Beverage",
        stage="Growth Stage (2–5 years)",
        year_end="February 2025",
        input_type="management",
        model="gpt-4o",
    )


@pytest.fixture
def bank_context(context):
    return context.model_copy(update={"input_type": "bank"})


@pytest.fixture
def analysis(context):
    return get_mock_analysis(context)


@pytest.fixture
def analysis_json(analysis):
    return json.dumps(analysis.model_dump())


def make_pdf(*pages: str) -> bytes:
    pdf_document = fitz.open()
    for text in pages:
        page = pdf_document.new_page()
        page.insert_text((72, 72), text)
    content = pdf_document.tobytes()
    pdf_document.close()
    return content


def make_workbook(sheets: dict) -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return buffer.getvalue()


@pytest.fixture
def statement_pdf():
    return make_pdf("FNB Business Account - March 2024", "Closing balance 73,000.00")


@pytest.fixture
def workbook():
    return make_workbook({
        "Income": [["Item", "Amount"], ["Sales", 1000]],
        "Costs": [["Item", "Amount"], ["Rent", 250]],
    })


CONVERTED_ACCOUNTS = """=== MANAGEMENT ACCOUNTS ===
Business: Mzansi Bakery
Period: March 2024 – February 2025
--- CASH FLOW SUMMARY ---
Opening Balance:                     R 50,000
Total Receipts (Credits):            R 2,220,000
Total Payments (Debits):             R 1,950,500
--- MONTHLY BREAKDOWN ---
Month | Total Credits | Total Debits | Net
March 2024     | R 185,000 | R 162,000 | R 23,000
April 2024     | R 200,000 | R 150,000 | R 50,000
May 2024 | R 190,000 | R 170,000 | R 20,000
=== END OF MANAGEMENT ACCOUNTS ==="""
