"""Main Streamlit application: upload financial documents, get a health dashboard."""

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from dotenv import load_dotenv

import config
from dashboard import (
    LEVEL_STYLES,
    PRIORITY_STYLES,
    STEPS,
    format_compact_currency,
    kpi_cards,
    monthly_frame,
    processing_tasks,
    score_color,
    step_number,
)
from models import BusinessContext, UploadedDocument
from pipeline import run_pipeline
from report import build_pdf_report

# Load environment variables
load_dotenv()

# Page configuration
st.set_page_config(
    page_title="Financial Health Analyzer",
    page_icon="📊",
    layout="wide"
)

# Initialize session state
if "step" not in st.session_state:
    st.session_state.step = "choose"
if "input_type" not in st.session_state:
    st.session_state.input_type = "management"
if "result" not in st.session_state:
    st.session_state.result = None
if "error" not in st.session_state:
    st.session_state.error = None
if "pending" not in st.session_state:
    st.session_state.pending = None


def reset_analysis():
    """Start over from the first step."""
    st.session_state.step = "choose"
    st.session_state.result = None
    st.session_state.error = None
    st.session_state.pending = None


def go_to(step: str):
    st.session_state.step = step
    st.rerun()


def render_step_bar():
    current = step_number(st.session_state.step)
    cols = st.columns(len(STEPS))
    for i, (name, label) in enumerate(STEPS, start=1):
        with cols[i - 1]:
            if i < current:
                st.markdown(f"✅ **{label}**")
            elif i == current:
                st.markdown(f"🔵 **{i}. {label}**")
            else:
                st.caption(f"{i}. {label}")
    st.divider()


def render_choose():
    st.header("What documents do you have?")
    st.caption("Choose the type of financial documents you'll be uploading for this business.")

    col1, col2 = st.columns(2)
    with col1:
        with st.container(border=True):
            st.subheader("📊 Management Accounts")
            st.write("Income statements, balance sheet, and cash flow statements prepared by your accountant.")
            st.caption("Most detailed analysis")
            if st.button("Use management accounts", use_container_width=True, type="primary"):
                st.session_state.input_type = "management"
                go_to("upload")
    with col2:
        with st.container(border=True):
            st.subheader("🏦 Bank Statements")
            st.write("12 months of business bank statements. We'll reconstruct your financials from transactions.")
            st.caption("No accountant needed")
            if st.button("Use bank statements", use_container_width=True, type="primary"):
                st.session_state.input_type = "bank"
                go_to("upload")


def render_upload():
    input_type = st.session_state.input_type
    label = "Management Accounts" if input_type == "management" else "Bank Statements"
    st.header(f"Upload {label}")

    uploaded_files = st.file_uploader(
        "Drop files here",
        type=config.UPLOAD_TYPES,
        accept_multiple_files=True,
        help="PDF, Excel or CSV files"
    )

    st.subheader("🏢 Business Context")
    st.caption("Optional - improves analysis accuracy")
    col1, col2 = st.columns(2)
    with col1:
        business_name = st.text_input("Business Name", placeholder="e.g. Mzansi Bakery")
        sector = st.selectbox("Sector", config.SECTORS)
    with col2:
        year_end = st.text_input("Financial Year End", value=config.DEFAULT_YEAR_END)
        stage = st.selectbox("Stage of Business", config.STAGES, index=2)

    model_ids = [m["id"] for m in config.AVAILABLE_MODELS]
    model = st.selectbox(
        "Analysis Model",
        model_ids,
        index=model_ids.index(config.ANALYSIS_MODEL) if config.ANALYSIS_MODEL in model_ids else 0,
        format_func=lambda m: next(f"{x['label']} - {x['description']}" for x in config.AVAILABLE_MODELS if x["id"] == m)
    )

    conversion_mode = config.BANK_CONVERSION_MODE
    if input_type == "bank":
        conversion_mode = st.radio(
            "Conversion method",
            ["aggregate", "model"],
            index=0 if config.BANK_CONVERSION_MODE == "aggregate" else 1,
            format_func=lambda m: "Per-statement extraction" if m == "aggregate" else "Single-pass conversion",
            horizontal=True
        )

    col1, col2 = st.columns([1, 3])
    with col1:
        if st.button("← Back"):
            go_to("choose")
    with col2:
        if st.button("🔍 Analyse", type="primary", disabled=not uploaded_files):
            st.session_state.pending = {
                "documents": [UploadedDocument(filename=f.name, content=f.getvalue()) for f in uploaded_files],
                "context": BusinessContext(
                    business_name=business_name,
                    sector=sector,
                    stage=stage,
                    year_end=year_end,
                    input_type=input_type,
                    model=model
                ),
                "conversion_mode": conversion_mode,
            }
            st.session_state.error = None
            go_to("processing")


def render_processing():
    pending = st.session_state.pending
    if pending is None:
        go_to("upload")
        return

    context = pending["context"]
    st.header("Analysing your documents")
    if context.input_type == "bank":
        st.caption("🔄 Two-stage process - bank statements are converted to management accounts first")

    for icon, label in processing_tasks(context.input_type):
        st.markdown(f"{icon} {label}")

    with st.status("Processing...", expanded=True) as status:
        try:
            result = run_pipeline(
                pending["documents"],
                context,
                conversion_mode=pending["conversion_mode"],
                on_progress=lambda stage, message: st.write(f"**{stage.title()}**: {message}")
            )
        except Exception as e:
            status.update(label="Analysis failed", state="error")
            st.session_state.error = str(e)
            st.session_state.pending = None
            go_to("upload")
            return
        status.update(label="Analysis complete", state="complete")

    st.session_state.result = result
    st.session_state.pending = None
    go_to("dashboard")


def render_monthly_chart(frame: pd.DataFrame):
    fig = go.Figure()
    for series, color in (("Revenue", "#00A99D"), ("Expenses", "#EF4444")):
        fig.add_trace(go.Bar(
            x=list(frame.index),
            y=frame[series].tolist(),
            name=series,
            marker_color=color,
            hovertemplate=f"%{{x}}<br>{series}: {config.CURRENCY_SYMBOL} %{{y:,.0f}}<extra></extra>"
        ))
    fig.update_layout(
        barmode="group",
        height=320,
        margin=dict(l=10, r=10, t=10, b=10),
        yaxis_title=f"Amount ({config.CURRENCY_SYMBOL})",
        legend=dict(orientation="h", y=1.1),
    )
    st.plotly_chart(fig, use_container_width=True)


def render_dashboard():
    result = st.session_state.result
    analysis = result.analysis

    st.header(f"{analysis.business_name}")
    st.caption(analysis.period)

    if result.demo_mode:
        st.warning("Showing demo data - the analysis model was not available.")

    if result.errors:
        with st.expander("⚠️ Extraction Warnings", expanded=False):
            for error in result.errors:
                st.warning(error)

    # Health score
    col1, col2 = st.columns([1, 3])
    with col1:
        color = score_color(analysis.health_score)
        st.markdown(
            f"<div style='font-size:3rem;font-weight:700;color:{color}'>{analysis.health_score}</div>"
            f"<div style='font-weight:600'>{analysis.health_grade}</div>",
            unsafe_allow_html=True
        )
        st.progress(analysis.health_score / 100)
    with col2:
        st.subheader("Financial Health")
        st.write(analysis.health_summary)

    st.divider()

    # KPIs
    cards = kpi_cards(analysis)
    cols = st.columns(3)
    for i, card in enumerate(cards):
        with cols[i % 3]:
            st.metric(
                label=card.label,
                value=card.value,
                delta=card.note or None,
                delta_color="normal" if card.positive else "inverse"
            )

    st.divider()

    # Monthly chart
    st.subheader("📈 Monthly Revenue vs Expenses")
    frame = monthly_frame(analysis)
    if not frame.empty:
        render_monthly_chart(frame)
        total_revenue = frame["Revenue"].sum()
        total_expenses = frame["Expenses"].sum()
        st.caption(
            f"Total revenue {format_compact_currency(total_revenue)} · "
            f"total expenses {format_compact_currency(total_expenses)}"
        )
    else:
        st.info("No monthly data available")

    # Recommendations and support areas
    col1, col2 = st.columns(2)
    with col1:
        st.subheader("💡 Recommendations")
        for rec in analysis.recommendations:
            style = PRIORITY_STYLES[rec.priority]
            st.markdown(f"{style['icon']} **{rec.title}** ({style['label']})")
            st.caption(rec.description)

    with col2:
        st.subheader("🤝 Recommended Support Areas")
        for area in analysis.support_areas:
            level = LEVEL_STYLES[area.level]
            st.markdown(
                f"{area.icon} **{area.label}** "
                f"<span style='color:{level['color']};font-weight:700'>{level['label']}</span>",
                unsafe_allow_html=True
            )

    st.divider()

    # Executive summary
    st.subheader("📝 Executive Summary")
    st.write(analysis.executive_summary)

    col1, col2 = st.columns(2)
    with col1:
        st.subheader("🎯 Key Strengths")
        for strength in analysis.key_strengths:
            st.markdown(f"- {strength}")
    with col2:
        st.subheader("⚠️ Key Risks")
        for risk in analysis.key_risks:
            st.markdown(f"- {risk}")

    if result.conversion is not None:
        with st.expander("🏦 Converted Management Accounts", expanded=False):
            st.text(result.conversion.converted_text)

    st.divider()

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "📄 Download PDF Report",
            data=build_pdf_report(analysis),
            file_name=f"{analysis.business_name.replace(' ', '_')}_financial_health.pdf",
            mime="application/pdf",
            type="primary"
        )
    with col2:
        if st.button("🔄 Re-analyse"):
            reset_analysis()
            st.rerun()


def main():
    st.title("📊 Financial Health Analyzer")

    with st.sidebar:
        if st.button("➕ New analysis", use_container_width=True):
            reset_analysis()
            st.rerun()

        st.divider()
        st.header("Settings")
        st.caption("API keys are loaded from .env file")
        if config.is_api_key_configured():
            st.success("✓ OpenAI API key loaded")
        else:
            st.error("✗ OpenAI API key missing - demo data will be shown")
            st.caption("Add OPENAI_API_KEY to .env file")

    render_step_bar()

    if st.session_state.error:
        st.error(f"⚠️ {st.session_state.error}")

    step = st.session_state.step
    if step == "choose":
        render_choose()
    elif step == "upload":
        render_upload()
    elif step == "processing":
        render_processing()
    elif step == "dashboard" and st.session_state.result is not None:
        render_dashboard()
    else:
        reset_analysis()
        st.rerun()


if __name__ == "__main__":
    main()
