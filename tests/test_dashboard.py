"""Tests for dashboard.py - presentation helpers."""

import pytest

import dashboard


@pytest.mark.parametrize("value, expected", [
    (None, "R0"),
    (0, "R0"),
    (950, "R950"),
    (150000, "R150K"),
    (2400000, "R2.4M"),
])
def test_format_compact_currency(value, expected):
    assert dashboard.format_compact_currency(value) == expected


@pytest.mark.parametrize("score, color", [
    (92, "#10B981"),
    (80, "#10B981"),
    (67, "#00A99D"),
    (40, "#F59E0B"),
    (12, "#EF4444"),
])
def test_score_color(score, color):
    assert dashboard.score_color(score) == color


def test_kpi_cards(analysis):
    cards = dashboard.kpi_cards(analysis)

    assert [c.label for c in cards] == [
        "Revenue", "Gross Margin", "Net Margin", "Current Ratio", "Cash Runway", "Debt to Equity",
    ]
    assert cards[0] == dashboard.KpiCard("Revenue", "R 2.4M", "↑ 18% YoY", True)
    assert cards[4].positive is False


def test_monthly_frame(analysis):
    frame = dashboard.monthly_frame(analysis)

    assert list(frame.columns) == ["Revenue", "Expenses"]
    assert list(frame.index)[:2] == ["Jan", "Feb"]
    assert frame.loc["Dec", "Revenue"] == 380000
    assert frame["Expenses"].sum() == 2101000


def test_monthly_frame_empty(analysis):
    frame = dashboard.monthly_frame(analysis.model_copy(update={"monthly_data": []}))

    assert frame.empty


def test_wizard_steps():
    assert dashboard.step_number("choose") == 1
    assert dashboard.step_number("dashboard") == 4
    assert len(dashboard.processing_tasks("bank")) == 8
    assert len(dashboard.processing_tasks("management")) == 6
