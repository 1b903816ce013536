"""Bank statement to management accounts conversion."""

import re
from typing import List, Tuple

import config
from ingestion import SPREADSHEET_EXTENSIONS, file_extension, parse_document
from llm_client import complete, pdf_content_parts
from logger import get_logger
from models import Extraction, ManagementAccountsOutput, MonthlyExtraction, TextExtraction, UploadedDocument

logger = get_logger(__name__)

CREDITS_PATTERN = re.compile(r"Total Receipts[^\n]*?\bR\s*([\d,]+)", re.IGNORECASE)
DEBITS_PATTERN = re.compile(r"Total Payments[^\n]*?\bR\s*([\d,]+)", re.IGNORECASE)
PERIOD_PATTERN = re.compile(r"Period:\s*(.+)", re.IGNORECASE)
MONTH_ROW_PATTERN = re.compile(r"\d{4}\s*\|")

# Rough transactions per month used for the transaction estimate
TRANSACTIONS_PER_MONTH = 30

CONVERSION_PROMPT = """You are a financial analyst converting bank statement data into structured management accounts for {business_name} in the {sector} sector.

Analyse all the bank statements above and produce a complete set of management accounts. Use the actual figures - estimate reasonably where data is ambiguous. Return a plain text document (no markdown, no # headers):

=== MANAGEMENT ACCOUNTS ===
Business: {business_name}
Sector: {sector}
Period: [derive from statement dates, e.g. "March 2024 – February 2025"]
Prepared from: Bank Statement Analysis

--- INCOME STATEMENT ---
REVENUE
  Sales / Income:                    R [amount]
  Other Income:                      R [amount]
TOTAL REVENUE:                       R [amount]

COST OF SALES
  Cost of Goods Sold / Direct Costs: R [amount]
GROSS PROFIT:                        R [amount]
GROSS PROFIT MARGIN:                 [%]

OPERATING EXPENSES
  Salaries & Wages:                  R [amount]
  Rent & Occupancy:                  R [amount]
  Utilities:                         R [amount]
  Bank Charges & Fees:               R [amount]
  Marketing & Advertising:           R [amount]
  Insurance:                         R [amount]
  Professional Fees:                 R [amount]
  Loan Repayments / Interest:        R [amount]
  Other Operating Expenses:          R [amount]
TOTAL OPERATING EXPENSES:            R [amount]

NET PROFIT / (LOSS):                 R [amount]
NET PROFIT MARGIN:                   [%]

--- CASH FLOW SUMMARY ---
Opening Balance:                     R [amount]
Total Receipts (Credits):            R [amount]
Total Payments (Debits):             R [amount]
Closing Balance:                     R [amount]
Net Cash Movement:                   R [amount]

--- MONTHLY BREAKDOWN ---
[For each month in the statements:]
Month | Total Credits | Total Debits | Net
March 2024     | R 185,000 | R 162,000 | R 23,000
[continue for all months...]

--- KEY OBSERVATIONS ---
- [2-3 notable patterns or anomalies in the transactions]

--- TRANSACTION CATEGORIES IDENTIFIED ---
Revenue sources: [types of incoming payments]
Major expense categories: [types of outgoing payments]
Irregular/one-off items: [unusual transactions]

=== END OF MANAGEMENT ACCOUNTS ==="""


def format_currency(amount: float) -> str:
    """Format an amount as whole rand, e.g. R 185,000."""
    return f"{config.CURRENCY_SYMBOL} {amount:,.0f}"


def monthly_extractions(extractions: List[Extraction]) -> List[MonthlyExtraction]:
    return [e for e in extractions if isinstance(e, MonthlyExtraction)]


def period_range(monthly: List[MonthlyExtraction]) -> str:
    periods = [m.period for m in monthly if m.period]
    if not periods:
        return "Full Year"
    return f"{periods[0]} – {periods[-1]}"


def build_management_accounts(extractions: List[Extraction], business_name: str, sector: str) -> str:
    """
    Aggregate per-statement monthly summaries into a management-accounts document.

    Args:
        extractions: Results of per-file extraction (monthly and text)
        business_name: Business name for the header
        sector: Business sector for the header

    Returns:
        Plain-text management accounts ready for the analysis prompt
    """
    monthly = monthly_extractions(extractions)
    texts = [e for e in extractions if isinstance(e, TextExtraction)]

    total_credits = sum(m.credits for m in monthly)
    total_debits = sum(m.debits for m in monthly)
    net_profit = total_credits - total_debits
    opening_balance = monthly[0].opening_balance if monthly else 0
    closing_balance = monthly[-1].closing_balance if monthly else 0
    net_margin = f"{net_profit / total_credits * 100:.1f}" if total_credits > 0 else "0"

    month_rows = "\n".join(
        f"{(m.period or 'Unknown'):<15} | {format_currency(m.credits):<14} | "
        f"{format_currency(m.debits):<14} | {format_currency(m.credits - m.debits)}"
        for m in monthly
    )

    all_income = [item for m in monthly for item in m.top_income]
    all_expenses = [item for m in monthly for item in m.top_expenses]
    income_lines = "\n".join(f"- {s}" for s in all_income[:10]) or "- No income data"
    expense_lines = "\n".join(f"- {s}" for s in all_expenses[:10]) or "- No expense data"
    months_label = f"{len(monthly)} month{'' if len(monthly) == 1 else 's'}"

    result = f"""=== MANAGEMENT ACCOUNTS ===
Business: {business_name}
Sector: {sector}
Period: {period_range(monthly)}
Prepared from: Bank Statement Analysis ({months_label})

--- INCOME STATEMENT ---
TOTAL REVENUE (bank credits):        {format_currency(total_credits)}
TOTAL EXPENSES (bank debits):        {format_currency(total_debits)}
NET PROFIT / (LOSS):                 {format_currency(net_profit)}
NET PROFIT MARGIN:                   {net_margin}%

--- CASH FLOW SUMMARY ---
Opening Balance:                     {format_currency(opening_balance)}
Total Receipts (Credits):            {format_currency(total_credits)}
Total Payments (Debits):             {format_currency(total_debits)}
Closing Balance:                     {format_currency(closing_balance)}

--- MONTHLY BREAKDOWN ---
Month           | Total Credits  | Total Debits   | Net
{month_rows}

--- TOP INCOME SOURCES ---
{income_lines}

--- TOP EXPENSE CATEGORIES ---
{expense_lines}

=== END OF MANAGEMENT ACCOUNTS ==="""

    if texts:
        result += "\n\n--- ADDITIONAL DOCUMENTS ---\n"
        for t in texts:
            result += f"\n=== {t.filename or 'Document'} ===\n{t.raw_text[:config.ADDITIONAL_DOCUMENT_LIMIT]}"

    return result


def conversion_note(extractions: List[Extraction]) -> str:
    """Summary prefix describing which statements the accounts were built from."""
    periods = [m.period for m in monthly_extractions(extractions) if m.period]
    if not periods:
        return ""
    return f"[Converted from {len(periods)} bank statement(s): {periods[0]} – {periods[-1]}] "


def _parse_amount(match) -> int:
    return int(match.group(1).replace(",", "")) if match else 0


def parse_conversion_stats(converted_text: str) -> Tuple[str, int, int, int]:
    """
    Pull headline figures out of model-written management accounts.

    Returns:
        Tuple of (period covered, estimated transaction count, total credits, total debits)
    """
    period_match = PERIOD_PATTERN.search(converted_text)
    period = period_match.group(1).strip() if period_match else "Full Year"
    transaction_count = len(MONTH_ROW_PATTERN.findall(converted_text)) * TRANSACTIONS_PER_MONTH

    return (
        period,
        transaction_count,
        _parse_amount(CREDITS_PATTERN.search(converted_text)),
        _parse_amount(DEBITS_PATTERN.search(converted_text)),
    )


def statement_content_parts(document: UploadedDocument) -> list:
    """Message parts for one statement file; [] for unsupported types."""
    ext = file_extension(document.filename)

    if ext == "pdf":
        return pdf_content_parts(document.content, document.filename)

    if ext in SPREADSHEET_EXTENSIONS or ext == "csv":
        parsed = parse_document(document.content, document.filename, header_template="\n--- Sheet: {sheet} ---\n")
        text = parsed.text[:config.SPREADSHEET_TEXT_LIMIT]
        return [{"type": "text", "text": f"=== File: {document.filename} ===\n{text}"}]

    return []


def convert_bank_statements(
    documents: List[UploadedDocument],
    business_name: str,
    sector: str,
    api_key: str = None
) -> ManagementAccountsOutput:
    """
    Convert a full set of bank statements into management accounts with one model call.

    Args:
        documents: Bank statement files (PDF, Excel or CSV)
        business_name: Business name for the prompt
        sector: Business sector for the prompt
        api_key: OpenAI API key (optional, will use env var if not provided)

    Returns:
        ManagementAccountsOutput with the converted text and regex-derived totals

    Raises:
        ValueError: if none of the files can be sent to the model
    """
    parts = []
    for document in documents:
        parts.extend(statement_content_parts(document))

    if not parts:
        raise ValueError("No readable bank statement files found")

    parts.append({"type": "text", "text": CONVERSION_PROMPT.format(business_name=business_name, sector=sector)})

    logger.info("Converting %d bank statement file(s) for %s", len(documents), business_name)
    converted_text = complete(
        messages=[{"role": "user", "content": parts}],
        model=config.CONVERSION_MODEL,
        max_tokens=config.CONVERSION_MAX_TOKENS,
        temperature=config.CONVERSION_TEMPERATURE,
        api_key=api_key
    )

    period, transaction_count, total_credits, total_debits = parse_conversion_stats(converted_text)

    return ManagementAccountsOutput(
        converted_text=converted_text,
        period_covered=period,
        transaction_count=transaction_count,
        total_credits=total_credits,
        total_debits=total_debits
    )
