"""Configuration settings for the application."""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
PLACEHOLDER_API_KEYS = {"", "your_api_key_here"}

# Model Settings
ANALYSIS_MODEL = os.getenv("ANALYSIS_MODEL", "gpt-4o")
EXTRACTION_MODEL = os.getenv("EXTRACTION_MODEL", "gpt-4o-mini")  # Fast extraction, no deep reasoning
CONVERSION_MODEL = os.getenv("CONVERSION_MODEL", "gpt-4o-mini")

AVAILABLE_MODELS = [
    {"id": "gpt-4o", "label": "GPT-4o", "description": "Balanced quality and speed"},
    {"id": "gpt-4.1", "label": "GPT-4.1", "description": "Most capable"},
    {"id": "gpt-4o-mini", "label": "GPT-4o mini", "description": "Fastest & cheapest"},
]

ANALYSIS_TEMPERATURE = 0.3
ANALYSIS_MAX_TOKENS = 4096
EXTRACTION_TEMPERATURE = 0.1
BANK_EXTRACTION_MAX_TOKENS = 600
MANAGEMENT_EXTRACTION_MAX_TOKENS = 2000
CONVERSION_TEMPERATURE = 0.1
CONVERSION_MAX_TOKENS = 4096

# Text limits (characters)
ANALYSIS_TEXT_LIMIT = 15000
SPREADSHEET_TEXT_LIMIT = 8000
UNKNOWN_TEXT_LIMIT = 4000
ADDITIONAL_DOCUMENT_LIMIT = 4000

# PDF Processing Settings
PDF_MAX_PAGES = int(os.getenv("PDF_MAX_PAGES", "8"))
IMAGE_ZOOM_FACTOR = float(os.getenv("IMAGE_ZOOM_FACTOR", "1.5"))  # Higher = better quality but larger payloads

# Concurrency
MAX_EXTRACTION_WORKERS = int(os.getenv("MAX_EXTRACTION_WORKERS", "4"))

# "aggregate": per-file extraction then arithmetic; "model": one conversion call over all statements
BANK_CONVERSION_MODE = os.getenv("BANK_CONVERSION_MODE", "aggregate")

# Business context options
CURRENCY_SYMBOL = "R"
DEFAULT_BUSINESS_NAME = "Unnamed Business"
DEFAULT_YEAR_END = "February 2025"

SECTORS = [
    "Food & Beverage", "Retail", "Technology", "Manufacturing",
    "Professional Services", "Healthcare", "Construction", "Agriculture", "Other",
]

STAGES = [
    "Pre-revenue (0–1 years)", "Early Stage (1–2 years)",
    "Growth Stage (2–5 years)", "Mature (5+ years)",
]

UPLOAD_TYPES = ["pdf", "xlsx", "xls", "xlsm", "csv", "docx"]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def is_api_key_configured(api_key: Optional[str] = None) -> bool:
    """Return True when a usable OpenAI API key is available."""
    key = api_key if api_key is not None else os.getenv("OPENAI_API_KEY")
    return (key or "").strip() not in PLACEHOLDER_API_KEYS
