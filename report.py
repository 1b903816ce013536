"""Downloadable PDF report of a financial health analysis."""

import io
from datetime import datetime
from typing import Any, List
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from dashboard import LEVEL_STYLES, PRIORITY_STYLES, format_compact_currency, kpi_cards, score_color
from models import FinancialAnalysis

# Built-in Helvetica only covers Latin-1
GLYPH_REPLACEMENTS = str.maketrans({"↑": "+", "↓": "-", "≈": "~", "–": "-", "—": "-", "⚠": "!", "✓": ""})

PRIMARY = HexColor("#1f2937")
BORDER = HexColor("#e5e7eb")
HEADER_BG = HexColor("#f3f4f6")
POSITIVE = HexColor("#047857")
NEGATIVE = HexColor("#b91c1c")


def safe_text(value: Any) -> str:
    """Escape text for a Paragraph and drop glyphs the base fonts cannot draw."""
    text = str(value).translate(GLYPH_REPLACEMENTS)
    text = text.encode("latin-1", errors="ignore").decode("latin-1").strip()
    return escape(text)


def _styles():
    styles = getSampleStyleSheet()

    def add_style(name, **kwargs):
        if name not in styles:
            styles.add(ParagraphStyle(name=name, **kwargs))

    add_style("ReportTitle", fontSize=20, alignment=TA_CENTER, spaceAfter=6,
              fontName="Helvetica-Bold", textColor=PRIMARY)
    add_style("ReportSection", fontSize=14, spaceBefore=16, spaceAfter=8, fontName="Helvetica-Bold")
    add_style("ReportBody", fontSize=10, leading=14, spaceAfter=5)
    add_style("ReportCaption", fontSize=9, alignment=TA_CENTER, textColor=HexColor("#6b7280"), spaceAfter=10)
    return styles


def _table(rows: List[List[Any]], col_widths: List[float]) -> Table:
    table = Table(rows, colWidths=col_widths)
    table.setStyle(TableStyle([
        ("GRID", (0, 0), (-1, -1), 0.5, BORDER),
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_BG),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ("TOPPADDING", (0, 0), (-1, -1), 5),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
    ]))
    return table


def build_pdf_report(analysis: FinancialAnalysis) -> bytes:
    """
    Render an analysis as an A4 PDF.

    Args:
        analysis: The analysis shown on the dashboard

    Returns:
        PDF file bytes
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=40,
        leftMargin=40,
        topMargin=40,
        bottomMargin=40,
        title=f"Financial Health Report - {analysis.business_name}",
    )
    styles = _styles()
    body = styles["ReportBody"]
    section = styles["ReportSection"]
    story: List[Any] = []

    # Header
    story.append(Paragraph(f"Financial Health Report: {safe_text(analysis.business_name)}", styles["ReportTitle"]))
    story.append(Paragraph(
        f"{safe_text(analysis.period)} | Generated {datetime.now():%Y-%m-%d}",
        styles["ReportCaption"],
    ))

    # Health score
    color = score_color(analysis.health_score)
    story.append(Paragraph("Health Score", section))
    story.append(Paragraph(
        f'<font size="18" color="{color}"><b>{analysis.health_score}/100</b></font>'
        f"&nbsp;&nbsp;{safe_text(analysis.health_grade)}",
        body,
    ))
    story.append(Spacer(1, 6))
    story.append(Paragraph(safe_text(analysis.health_summary), body))

    # KPIs
    story.append(Paragraph("Key Performance Indicators", section))
    rows = [["Metric", "Value", "Context"]]
    for card in kpi_cards(analysis):
        note_color = "#047857" if card.positive else "#b91c1c"
        rows.append([
            card.label,
            Paragraph(safe_text(card.value), body),
            Paragraph(f'<font color="{note_color}">{safe_text(card.note)}</font>', body),
        ])
    story.append(_table(rows, [1.6 * inch, 1.4 * inch, 3.8 * inch]))

    # Monthly performance
    if analysis.monthly_data:
        story.append(Paragraph("Monthly Revenue vs Expenses", section))
        rows = [["Month", "Revenue", "Expenses", "Net"]]
        for m in analysis.monthly_data:
            rows.append([
                safe_text(m.month),
                format_compact_currency(m.revenue),
                format_compact_currency(m.expenses),
                format_compact_currency(m.revenue - m.expenses),
            ])
        table = _table(rows, [1.5 * inch, 1.7 * inch, 1.7 * inch, 1.7 * inch])
        for i, m in enumerate(analysis.monthly_data, start=1):
            table.setStyle(TableStyle([
                ("TEXTCOLOR", (3, i), (3, i), POSITIVE if m.revenue >= m.expenses else NEGATIVE),
            ]))
        story.append(table)

    # Recommendations
    if analysis.recommendations:
        story.append(Paragraph("Recommendations", section))
        for idx, rec in enumerate(analysis.recommendations, start=1):
            style = PRIORITY_STYLES[rec.priority]
            story.append(Paragraph(
                f'{idx}. <b>{safe_text(rec.title)}</b> '
                f'<font color="{style["color"]}">({style["label"]})</font>',
                body,
            ))
            story.append(Paragraph(safe_text(rec.description), body))

    # Support areas
    if analysis.support_areas:
        story.append(Paragraph("Recommended Support Areas", section))
        rows = [["Area", "Level"]]
        for area in analysis.support_areas:
            level = LEVEL_STYLES[area.level]
            rows.append([
                Paragraph(safe_text(area.label), body),
                Paragraph(f'<font color="{level["color"]}">{level["label"]}</font>', body),
            ])
        story.append(_table(rows, [4.8 * inch, 2.0 * inch]))

    # Executive summary
    story.append(Paragraph("Executive Summary", section))
    for paragraph in analysis.executive_summary.split("\n\n"):
        if paragraph.strip():
            story.append(Paragraph(safe_text(paragraph), body))

    # Strengths and risks
    for title, items in [("Key Strengths", analysis.key_strengths), ("Key Risks", analysis.key_risks)]:
        if items:
            story.append(Paragraph(title, section))
            for item in items:
                story.append(Paragraph(f"&bull; {safe_text(item)}", body))

    doc.build(story)
    return buffer.getvalue()
