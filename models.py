"""Data models for the financial health analyzer."""

from typing import Annotated, List, Literal, Optional, Union
from pydantic import BaseModel, Field, field_validator

import config

InputType = Literal["management", "bank"]
HealthGrade = Literal["Excellent", "Good", "Moderate", "Concerning", "Critical"]

MONTHS_PER_YEAR = 12


class BusinessContext(BaseModel):
    """Business details entered alongside the uploaded documents."""
    business_name: str = config.DEFAULT_BUSINESS_NAME
    sector: str = config.SECTORS[0]
    stage: str = config.STAGES[2]
    year_end: str = config.DEFAULT_YEAR_END
    input_type: InputType = "management"
    model: str = config.ANALYSIS_MODEL

    @field_validator("business_name")
    @classmethod
    def default_blank_name(cls, value: str) -> str:
        return value.strip() or config.DEFAULT_BUSINESS_NAME

    @field_validator("input_type", mode="before")
    @classmethod
    def lower_input_type(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def document_label(self) -> str:
        return "Management Accounts" if self.input_type == "management" else "Bank Statements"


class UploadedDocument(BaseModel):
    """A raw uploaded file."""
    filename: str
    content: bytes


class ParsedDocument(BaseModel):
    """Plain-text rendition of an uploaded file."""
    text: str
    type: Literal["pdf", "excel", "csv", "unknown"]
    filename: str


class MonthlyExtraction(BaseModel):
    """Monthly summary extracted from one bank statement."""
    type: Literal["monthly"] = "monthly"
    filename: str
    period: str = ""
    credits: float = 0
    debits: float = 0
    opening_balance: float = 0
    closing_balance: float = 0
    top_income: List[str] = []
    top_expenses: List[str] = []
    parse_error: Optional[str] = None

    @field_validator("credits", "debits", "opening_balance", "closing_balance", mode="before")
    @classmethod
    def zero_if_missing(cls, value):
        return 0 if value in (None, "") else value

    @field_validator("period", mode="before")
    @classmethod
    def blank_if_missing(cls, value):
        return "" if value is None else str(value)

    @field_validator("top_income", "top_expenses", mode="before")
    @classmethod
    def empty_if_missing(cls, value):
        return [] if value is None else [str(v) for v in value]


class TextExtraction(BaseModel):
    """Raw text extracted from a management-accounts file or spreadsheet."""
    type: Literal["text"] = "text"
    filename: str
    raw_text: str = ""


Extraction = Annotated[Union[MonthlyExtraction, TextExtraction], Field(discriminator="type")]


class ManagementAccountsOutput(BaseModel):
    """Management accounts synthesized from bank statements in one model call."""
    converted_text: str
    period_covered: str
    transaction_count: int
    total_credits: int
    total_debits: int


class Kpis(BaseModel):
    """Headline KPI strings, each with a positive/negative flag."""
    revenue: str
    revenue_change: str
    revenue_change_positive: bool
    gross_margin: str
    gross_margin_vs_sector: str
    gross_margin_positive: bool
    net_margin: str
    net_margin_vs_sector: str
    net_margin_positive: bool
    current_ratio: str
    current_ratio_note: str
    current_ratio_positive: bool
    cash_runway: str
    cash_runway_note: str
    cash_runway_positive: bool
    debt_to_equity: str
    debt_to_equity_note: str
    debt_to_equity_positive: bool


class MonthlyFigure(BaseModel):
    month: str
    revenue: float = 0
    expenses: float = 0

    @field_validator("revenue", "expenses", mode="before")
    @classmethod
    def zero_if_missing(cls, value):
        return 0 if value is None else value


class Recommendation(BaseModel):
    priority: Literal["high", "medium", "low"]
    title: str
    description: str

    @field_validator("priority", mode="before")
    @classmethod
    def lower_priority(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class SupportArea(BaseModel):
    icon: str = ""
    label: str
    level: Literal["urgent", "recommended", "optional"]

    @field_validator("level", mode="before")
    @classmethod
    def lower_level(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class FinancialAnalysis(BaseModel):
    """Financial health assessment rendered by the dashboard."""
    business_name: str
    period: str
    health_score: int
    health_grade: HealthGrade
    health_summary: str
    kpis: Kpis
    monthly_data: List[MonthlyFigure]
    recommendations: List[Recommendation]
    support_areas: List[SupportArea]
    executive_summary: str
    key_strengths: List[str]
    key_risks: List[str]

    @field_validator("health_score", mode="before")
    @classmethod
    def clamp_score(cls, value):
        return max(0, min(100, int(round(float(value)))))

    @field_validator("health_grade", mode="before")
    @classmethod
    def capitalize_grade(cls, value):
        return value.strip().capitalize() if isinstance(value, str) else value

    @field_validator("monthly_data")
    @classmethod
    def last_twelve_months(cls, value):
        return value[-MONTHS_PER_YEAR:]


class PipelineResult(BaseModel):
    """Everything produced by one run of the document pipeline."""
    analysis: FinancialAnalysis
    extractions: List[Extraction] = []
    errors: List[str] = []
    conversion: Optional[ManagementAccountsOutput] = None
    demo_mode: bool = False
