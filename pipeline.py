"""Document pipeline: extraction, bank-statement conversion, analysis."""

from typing import Callable, List, Optional, Tuple

import config
from conversion import build_management_accounts, conversion_note, convert_bank_statements
from extraction import extract_documents
from llm_analysis import analyze_financials, combine_text_extractions, get_mock_analysis
from logger import get_logger
from models import BusinessContext, Extraction, FinancialAnalysis, PipelineResult, UploadedDocument

logger = get_logger(__name__)

ProgressCallback = Callable[[str, str], None]

DEMO_NO_KEY_NOTE = (
    "⚠️ DEMO MODE - No API key configured. Set OPENAI_API_KEY in your environment "
    "or .env file and restart. "
)
DEMO_API_ERROR_NOTE = "[Demo Mode - API error] "


def _with_summary_prefix(analysis: FinancialAnalysis, prefix: str) -> FinancialAnalysis:
    return analysis.model_copy(update={"health_summary": prefix + analysis.health_summary})


def _notify(on_progress: Optional[ProgressCallback], stage: str, message: str):
    logger.info("[%s] %s", stage, message)
    if on_progress is not None:
        on_progress(stage, message)


def analyze_extractions(
    extractions: List[Extraction],
    context: BusinessContext,
    api_key: str = None
) -> Tuple[FinancialAnalysis, bool]:
    """
    Turn extracted documents into a FinancialAnalysis.

    Bank statements are first aggregated into management accounts. Any model
    failure falls back to labelled demo data instead of failing the request.

    Args:
        extractions: Per-file extraction results
        context: Business context
        api_key: OpenAI API key (optional, will use env var if not provided)

    Returns:
        Tuple of (analysis, whether demo data was returned)

    Raises:
        ValueError: if no extractions are given
    """
    if not extractions:
        raise ValueError("No extracted data provided")

    if not config.is_api_key_configured(api_key):
        logger.warning("No API key configured, returning demo analysis")
        return _with_summary_prefix(get_mock_analysis(context), DEMO_NO_KEY_NOTE), True

    note = ""
    if context.input_type == "bank":
        combined_text = build_management_accounts(extractions, context.business_name, context.sector)
        note = conversion_note(extractions)
    else:
        combined_text = combine_text_extractions(extractions)

    return analyze_text(combined_text, context, note, api_key)


def analyze_text(
    combined_text: str,
    context: BusinessContext,
    note: str = "",
    api_key: str = None
) -> Tuple[FinancialAnalysis, bool]:
    """Run the analysis stage on prepared text, falling back to demo data on failure."""
    try:
        # Converted bank statements are analysed as management accounts
        analysis = analyze_financials(combined_text, context, api_key, document_label="Management Accounts")
    except Exception as e:
        logger.error("AI analysis failed, falling back to demo: %s", e)
        return _with_summary_prefix(get_mock_analysis(context), DEMO_API_ERROR_NOTE), True

    if note:
        analysis = _with_summary_prefix(analysis, note)
    return analysis, False


def run_pipeline(
    documents: List[UploadedDocument],
    context: BusinessContext,
    api_key: str = None,
    conversion_mode: str = None,
    on_progress: Optional[ProgressCallback] = None
) -> PipelineResult:
    """
    Run the whole document pipeline for one upload.

    Args:
        documents: Uploaded files
        context: Business context
        api_key: OpenAI API key (optional)
        conversion_mode: "aggregate" or "model" for bank statements (default: config.BANK_CONVERSION_MODE)
        on_progress: Optional callback receiving (stage, message)

    Returns:
        PipelineResult with the analysis, extractions and any per-file errors

    Raises:
        ValueError: if no documents are given
    """
    if not documents:
        raise ValueError("No files provided")

    conversion_mode = conversion_mode or config.BANK_CONVERSION_MODE

    if context.input_type == "bank" and conversion_mode == "model" and config.is_api_key_configured(api_key):
        _notify(on_progress, "convert", f"Converting {len(documents)} bank statement(s) to management accounts")
        try:
            conversion = convert_bank_statements(documents, context.business_name, context.sector, api_key)
        except Exception as e:
            logger.warning("Single-pass conversion failed, extracting per file: %s", e)
        else:
            _notify(on_progress, "analyze", "Analysing converted management accounts")
            note = f"[Converted from bank statements: {conversion.period_covered}] "
            analysis, demo_mode = analyze_text(conversion.converted_text, context, note, api_key)
            return PipelineResult(analysis=analysis, conversion=conversion, demo_mode=demo_mode)

    _notify(on_progress, "extract", f"Extracting data from {len(documents)} file(s)")
    extractions, errors = extract_documents(documents, context.business_name, context.input_type, api_key)

    if not extractions:
        raise ValueError("None of the uploaded files could be read: " + "; ".join(errors))

    _notify(on_progress, "analyze", "Analysing financial health")
    analysis, demo_mode = analyze_extractions(extractions, context, api_key)

    return PipelineResult(analysis=analysis, extractions=extractions, errors=errors, demo_mode=demo_mode)
