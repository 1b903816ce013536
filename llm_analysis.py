"""OpenAI GPT financial health analysis."""

from typing import List

import config
from llm_client import complete, parse_json_response
from logger import get_logger
from models import BusinessContext, Extraction, FinancialAnalysis, TextExtraction

logger = get_logger(__name__)


class AnalysisParseError(Exception):
    """The analysis model reply could not be turned into a FinancialAnalysis."""


def build_analysis_prompt(documents_text: str, context: BusinessContext, document_label: str = None) -> str:
    """Build the analysis prompt with the business context and the JSON contract."""
    document_label = document_label or context.document_label
    business_name = context.business_name

    return f"""You are a senior financial analyst at an entrepreneurial accelerator. Analyse the following financial documents for {business_name} and provide a comprehensive assessment.

Business Context:
- Business Name: {business_name}
- Sector: {context.sector}
- Stage: {context.stage}
- Financial Year End: {context.year_end}
- Document Type: {document_label}

Documents Content:
{documents_text[:config.ANALYSIS_TEXT_LIMIT]}

Provide a detailed financial health analysis. Return ONLY a valid JSON object with this exact structure (no markdown, no code blocks, just raw JSON):

{{
  "business_name": "{business_name}",
  "period": "FY {context.year_end}",
  "health_score": <number 0-100>,
  "health_grade": "<Excellent|Good|Moderate|Concerning|Critical>",
  "health_summary": "<2-sentence summary of overall financial health>",
  "kpis": {{
    "revenue": "<formatted revenue e.g. R 2.4M or estimated if bank statements>",
    "revenue_change": "<e.g. ↑ 18% YoY or N/A if only one period>",
    "revenue_change_positive": <true/false>,
    "gross_margin": "<e.g. 34%>",
    "gross_margin_vs_sector": "<e.g. ↓ 4pp below sector avg (38%)>",
    "gross_margin_positive": <true/false>,
    "net_margin": "<e.g. 7.2%>",
    "net_margin_vs_sector": "<e.g. ≈ sector avg (7%)>",
    "net_margin_positive": <true/false>,
    "current_ratio": "<e.g. 1.3×>",
    "current_ratio_note": "<brief note>",
    "current_ratio_positive": <true/false>,
    "cash_runway": "<e.g. 3.1 mo>",
    "cash_runway_note": "<brief note>",
    "cash_runway_positive": <true/false>,
    "debt_to_equity": "<e.g. 0.8×>",
    "debt_to_equity_note": "<brief note>",
    "debt_to_equity_positive": <true/false>
  }},
  "monthly_data": [
    {{"month": "Jan", "revenue": <number>, "expenses": <number>}},
    ... one entry per month, Jan through Dec (12 entries) ...
  ],
  "recommendations": [
    {{"priority": "high", "title": "<short title>", "description": "<1-2 sentence actionable recommendation>"}},
    {{"priority": "medium", "title": "<short title>", "description": "<1-2 sentence actionable recommendation>"}},
    {{"priority": "low", "title": "<short title>", "description": "<1-2 sentence actionable recommendation>"}}
  ],
  "support_areas": [
    {{"icon": "💰", "label": "Cash Flow Management", "level": "urgent"}},
    {{"icon": "📋", "label": "Financial Reporting", "level": "recommended"}},
    {{"icon": "📈", "label": "Growth Strategy", "level": "optional"}}
  ],
  "executive_summary": "<3-4 paragraph executive summary of the business financial position>",
  "key_strengths": ["<strength 1>", "<strength 2>", "<strength 3>"],
  "key_risks": ["<risk 1>", "<risk 2>", "<risk 3>"]
}}

Important: Base your analysis on the actual document content. If data is limited (e.g. bank statements only), estimate where needed and note assumptions. Always provide useful insights even with partial data. Make sure monthly revenue/expense numbers are realistic relative to total revenue."""


def analyze_financials(
    documents_text: str,
    context: BusinessContext,
    api_key: str = None,
    document_label: str = None
) -> FinancialAnalysis:
    """
    Analyse document text with GPT and return the dashboard record.

    Args:
        documents_text: Combined text of the extracted or converted documents
        context: Business context (name, sector, stage, year end, model)
        api_key: OpenAI API key (optional, will use env var if not provided)
        document_label: Overrides the document type named in the prompt

    Returns:
        Validated FinancialAnalysis

    Raises:
        AnalysisParseError: if the reply is not a valid analysis JSON object
    """
    prompt = build_analysis_prompt(documents_text, context, document_label)

    content = complete(
        messages=[{"role": "user", "content": prompt}],
        model=context.model or config.ANALYSIS_MODEL,
        max_tokens=config.ANALYSIS_MAX_TOKENS,
        temperature=config.ANALYSIS_TEMPERATURE,
        api_key=api_key
    )

    try:
        return FinancialAnalysis.model_validate(parse_json_response(content))
    except Exception as e:
        logger.error("Analysis parse error: %s. Response: %s", e, content[:500])
        raise AnalysisParseError("Failed to parse AI analysis response") from e


def combine_text_extractions(extractions: List[Extraction]) -> str:
    """Concatenate raw text extractions under per-file headers."""
    return "\n".join(
        f"\n\n=== {e.filename or 'Document'} ===\n{e.raw_text}"
        for e in extractions
        if isinstance(e, TextExtraction)
    )


def get_mock_analysis(context: BusinessContext) -> FinancialAnalysis:
    """Demo analysis returned when no model is available."""
    name = context.business_name
    stage = context.stage.lower()
    sector = context.sector

    return FinancialAnalysis.model_validate({
        "business_name": name,
        "period": f"FY {context.year_end}",
        "health_score": 67,
        "health_grade": "Moderate",
        "health_summary": (
            f"{name} shows strong revenue growth momentum but faces cash flow pressure "
            f"typical for {stage} businesses in the {sector} sector."
        ),
        "kpis": {
            "revenue": "R 2.4M", "revenue_change": "↑ 18% YoY", "revenue_change_positive": True,
            "gross_margin": "34%", "gross_margin_vs_sector": "↓ 4pp below sector avg (38%)", "gross_margin_positive": False,
            "net_margin": "7.2%", "net_margin_vs_sector": "≈ sector avg (7%)", "net_margin_positive": True,
            "current_ratio": "1.3×", "current_ratio_note": "Below healthy threshold of 2×", "current_ratio_positive": False,
            "cash_runway": "3.1 mo", "cash_runway_note": "⚠ Low - action needed", "cash_runway_positive": False,
            "debt_to_equity": "0.8×", "debt_to_equity_note": "✓ Within healthy range", "debt_to_equity_positive": True,
        },
        "monthly_data": [
            {"month": "Jan", "revenue": 165000, "expenses": 140000}, {"month": "Feb", "revenue": 175000, "expenses": 148000},
            {"month": "Mar", "revenue": 180000, "expenses": 152000}, {"month": "Apr", "revenue": 195000, "expenses": 158000},
            {"month": "May", "revenue": 190000, "expenses": 162000}, {"month": "Jun", "revenue": 210000, "expenses": 170000},
            {"month": "Jul", "revenue": 205000, "expenses": 168000}, {"month": "Aug", "revenue": 220000, "expenses": 175000},
            {"month": "Sep", "revenue": 215000, "expenses": 178000}, {"month": "Oct", "revenue": 235000, "expenses": 185000},
            {"month": "Nov", "revenue": 230000, "expenses": 190000}, {"month": "Dec", "revenue": 380000, "expenses": 275000},
        ],
        "recommendations": [
            {"priority": "high", "title": "Cash Runway Critical",
             "description": "Only 3.1 months of cash. Review debtor collections and consider working capital financing."},
            {"priority": "medium", "title": "Gross Margin Below Sector",
             "description": "Margin 4pp below benchmark. Review COGS and supplier contracts."},
            {"priority": "low", "title": "Revenue Growth Strong",
             "description": "18% YoY growth above sector average. Invest in sales capacity."},
        ],
        "support_areas": [
            {"icon": "💰", "label": "Cash Flow Management", "level": "urgent"},
            {"icon": "📋", "label": "Debtor Management & Collections", "level": "urgent"},
            {"icon": "📊", "label": "Pricing & Margin Optimisation", "level": "recommended"},
            {"icon": "🏦", "label": "Working Capital Financing", "level": "recommended"},
            {"icon": "📈", "label": "Financial Reporting & Forecasting", "level": "recommended"},
            {"icon": "🌱", "label": "Growth Strategy & Planning", "level": "optional"},
        ],
        "executive_summary": (
            f"{name} is a {stage} business in {sector} with 18% YoY revenue growth.\n\n"
            "Cash runway of 3.1 months requires immediate attention. Current ratio of 1.3× is below the healthy threshold.\n\n"
            "Gross margins at 34% are 4pp below sector average, representing an improvement opportunity.\n\n"
            "Prioritise cash flow management and working capital solutions."
        ),
        "key_strengths": [
            "18% YoY revenue growth above sector average",
            "Net margin in line with benchmarks",
            "Manageable debt-to-equity of 0.8×",
        ],
        "key_risks": [
            "Cash runway of only 3.1 months",
            "Current ratio below 2× threshold",
            "Gross margin 4pp below sector",
        ],
    })
