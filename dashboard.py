"""Presentation helpers shared by the Streamlit dashboard and the PDF report."""

from typing import List, NamedTuple, Optional

import pandas as pd

import config
from models import FinancialAnalysis

# Wizard steps in order
STEPS = [
    ("choose", "Choose Input"),
    ("upload", "Upload Documents"),
    ("processing", "Analyse"),
    ("dashboard", "Report & Insights"),
]

PRIORITY_STYLES = {
    "high": {"icon": "🔴", "label": "High priority", "color": "#EF4444"},
    "medium": {"icon": "🟠", "label": "Medium priority", "color": "#F59E0B"},
    "low": {"icon": "🟢", "label": "Low priority", "color": "#10B981"},
}

LEVEL_STYLES = {
    "urgent": {"label": "Urgent", "color": "#991B1B"},
    "recommended": {"label": "Recommended", "color": "#92400E"},
    "optional": {"label": "Optional", "color": "#166534"},
}

MANAGEMENT_TASKS = [
    ("📥", "Extracting data from uploaded documents"),
    ("🔍", "Parsing income statement & balance sheet"),
    ("📈", "Calculating key financial ratios"),
    ("🏭", "Benchmarking against sector data"),
    ("💡", "Generating recommendations & support areas"),
    ("📄", "Preparing downloadable PDF report"),
]

BANK_TASKS = [
    ("📥", "Extracting transactions from bank statements"),
    ("🏷️", "Categorising income, expenses & transfers"),
    ("📊", "Building income statement from transactions"),
    ("💵", "Constructing cash flow & balance sheet"),
    ("📈", "Calculating key financial ratios"),
    ("🏭", "Benchmarking against sector data"),
    ("💡", "Generating recommendations & support areas"),
    ("📄", "Preparing downloadable PDF report"),
]


class KpiCard(NamedTuple):
    label: str
    value: str
    note: str
    positive: bool


def step_number(step: str) -> int:
    """1-based position of a wizard step."""
    return [name for name, _ in STEPS].index(step) + 1


def processing_tasks(input_type: str) -> list:
    return BANK_TASKS if input_type == "bank" else MANAGEMENT_TASKS


def format_compact_currency(value: Optional[float]) -> str:
    """Short currency label for chart axes and cards: R0, R950, R150K, R2.4M."""
    symbol = config.CURRENCY_SYMBOL
    if not value:
        return f"{symbol}0"
    if value >= 1_000_000:
        return f"{symbol}{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{symbol}{value / 1_000:.0f}K"
    return f"{symbol}{value:g}"


def score_color(score: float) -> str:
    if score >= 80:
        return "#10B981"
    if score >= 60:
        return "#00A99D"
    if score >= 40:
        return "#F59E0B"
    return "#EF4444"


def kpi_cards(analysis: FinancialAnalysis) -> List[KpiCard]:
    """The six headline KPIs in display order."""
    k = analysis.kpis
    return [
        KpiCard("Revenue", k.revenue, k.revenue_change, k.revenue_change_positive),
        KpiCard("Gross Margin", k.gross_margin, k.gross_margin_vs_sector, k.gross_margin_positive),
        KpiCard("Net Margin", k.net_margin, k.net_margin_vs_sector, k.net_margin_positive),
        KpiCard("Current Ratio", k.current_ratio, k.current_ratio_note, k.current_ratio_positive),
        KpiCard("Cash Runway", k.cash_runway, k.cash_runway_note, k.cash_runway_positive),
        KpiCard("Debt to Equity", k.debt_to_equity, k.debt_to_equity_note, k.debt_to_equity_positive),
    ]


def monthly_frame(analysis: FinancialAnalysis) -> pd.DataFrame:
    """Monthly revenue and expenses indexed by month, in reported order."""
    frame = pd.DataFrame(
        [{"Month": m.month, "Revenue": m.revenue, "Expenses": m.expenses} for m in analysis.monthly_data],
        columns=["Month", "Revenue", "Expenses"],
    )
    return frame.set_index("Month")
