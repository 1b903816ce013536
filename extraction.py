"""Per-file extraction: one document in, one Extraction out."""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import config
from ingestion import file_extension, parse_document
from llm_client import complete, parse_json_response, pdf_content_parts
from logger import get_logger
from models import Extraction, InputType, MonthlyExtraction, TextExtraction, UploadedDocument

logger = get_logger(__name__)

BANK_EXTRACTION_PROMPT = """Extract from this {business_name} bank statement. Return ONLY raw JSON, no markdown:
{{"period":"MMM YYYY","credits":0,"debits":0,"opening_balance":0,"closing_balance":0,"top_income":["Name: R amount"],"top_expenses":["Name: R amount"]}}
top_income and top_expenses: up to 5 entries each. Use actual numbers."""

MANAGEMENT_EXTRACTION_PROMPT = (
    "Extract all financial data from this document as plain text. Preserve all numbers, "
    "percentages, headings, and labels. Return only the extracted text, no commentary."
)


def empty_monthly(filename: str, period: str, parse_error: Optional[str] = None) -> MonthlyExtraction:
    """Zero-valued monthly record used when a statement cannot be read."""
    return MonthlyExtraction(filename=filename, period=period, parse_error=parse_error)


def extract_bank_statement(document: UploadedDocument, business_name: str, api_key: str = None) -> MonthlyExtraction:
    """Ask the model for a compact monthly summary of one bank-statement PDF."""
    parts = pdf_content_parts(document.content, document.filename)
    parts.append({"type": "text", "text": BANK_EXTRACTION_PROMPT.format(business_name=business_name)})

    content = complete(
        messages=[{"role": "user", "content": parts}],
        model=config.EXTRACTION_MODEL,
        max_tokens=config.BANK_EXTRACTION_MAX_TOKENS,
        temperature=config.EXTRACTION_TEMPERATURE,
        api_key=api_key
    ) or "{}"

    try:
        data = parse_json_response(content)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        data.pop("type", None)
        data["filename"] = document.filename
        return MonthlyExtraction(**data)
    except Exception as e:
        logger.warning("Could not parse statement summary for %s: %s", document.filename, e)
        return empty_monthly(document.filename, document.filename, parse_error=content.strip()[:200])


def extract_management_accounts(document: UploadedDocument, api_key: str = None) -> TextExtraction:
    """Ask the model to transcribe the financial content of one management-accounts PDF."""
    parts = pdf_content_parts(document.content, document.filename)
    parts.append({"type": "text", "text": MANAGEMENT_EXTRACTION_PROMPT})

    text = complete(
        messages=[{"role": "user", "content": parts}],
        model=config.EXTRACTION_MODEL,
        max_tokens=config.MANAGEMENT_EXTRACTION_MAX_TOKENS,
        temperature=config.EXTRACTION_TEMPERATURE,
        api_key=api_key
    )
    return TextExtraction(filename=document.filename, raw_text=text)


def extract_document(
    document: UploadedDocument,
    business_name: str = config.DEFAULT_BUSINESS_NAME,
    input_type: InputType = "bank",
    api_key: str = None
) -> Extraction:
    """
    Extract one uploaded file.

    Spreadsheets and CSVs are read locally. PDFs go to the extraction model:
    bank statements come back as a monthly JSON summary, management accounts as
    plain text. Without an API key PDFs get a local placeholder instead.

    Args:
        document: Uploaded file
        business_name: Business name used in the prompt
        input_type: "bank" or "management"
        api_key: OpenAI API key (optional, will use env var if not provided)

    Returns:
        MonthlyExtraction or TextExtraction
    """
    filename = document.filename
    ext = file_extension(filename)

    # Excel / CSV / other text - read locally, no model needed
    if ext != "pdf":
        parsed = parse_document(document.content, filename, header_template="\n=== {sheet} ===\n")
        limit = config.UNKNOWN_TEXT_LIMIT if parsed.type == "unknown" else config.SPREADSHEET_TEXT_LIMIT
        return TextExtraction(filename=filename, raw_text=parsed.text[:limit])

    if not config.is_api_key_configured(api_key):
        if input_type == "bank":
            # Analysis falls back to demo data in this case
            return empty_monthly(filename, "Demo")
        return TextExtraction(filename=filename, raw_text=parse_document(document.content, filename).text)

    logger.info("Extracting %s (%s)", filename, input_type)
    if input_type == "bank":
        return extract_bank_statement(document, business_name, api_key)
    return extract_management_accounts(document, api_key)


def extract_documents(
    documents: List[UploadedDocument],
    business_name: str = config.DEFAULT_BUSINESS_NAME,
    input_type: InputType = "bank",
    api_key: str = None,
    max_workers: int = None
) -> Tuple[List[Extraction], List[str]]:
    """
    Extract all uploaded files concurrently.

    Args:
        documents: Uploaded files
        business_name: Business name used in the prompts
        input_type: "bank" or "management"
        api_key: OpenAI API key (optional)
        max_workers: Thread pool size (default: config.MAX_EXTRACTION_WORKERS)

    Returns:
        Tuple of (extractions in upload order, error messages for files that failed)
    """
    if not documents:
        return [], []

    max_workers = max_workers or config.MAX_EXTRACTION_WORKERS
    extractions = []
    errors = []

    with ThreadPoolExecutor(max_workers=min(max_workers, len(documents))) as executor:
        futures = [
            executor.submit(extract_document, document, business_name, input_type, api_key)
            for document in documents
        ]

        for document, future in zip(documents, futures):
            try:
                extractions.append(future.result())
            except Exception as e:
                logger.error("Extraction failed for %s: %s", document.filename, e)
                errors.append(f"{document.filename}: {e}")

    logger.info("Extracted %d of %d files", len(extractions), len(documents))
    return extractions, errors
