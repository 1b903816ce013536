"""HTTP API exposing the extraction and analysis stages."""

from typing import List, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

import config
from extraction import extract_document
from logger import get_logger
from models import BusinessContext, Extraction, UploadedDocument
from pipeline import analyze_extractions

logger = get_logger(__name__)

app = FastAPI(title="Financial Health Analyzer API", version="1.0.0")


class AnalyzeRequest(BusinessContext):
    """Business context plus the results of earlier /api/extract calls."""
    extractions: List[Extraction] = []


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'body')}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning("Rejected %s request: %s", request.url.path, problems)
    return error_response(400, f"Invalid request: {problems}")


@app.get("/health")
def health():
    return {"status": "ok", "api_key_configured": config.is_api_key_configured()}


@app.get("/api/models")
def list_models():
    return {"default": config.ANALYSIS_MODEL, "models": config.AVAILABLE_MODELS}


@app.post("/api/extract")
def extract(
    file: Optional[UploadFile] = File(None),
    businessName: str = Form(config.DEFAULT_BUSINESS_NAME),
    inputType: str = Form("bank"),
):
    """
    Single-file extraction, called once per uploaded file.

    Bank statement PDF -> monthly summary JSON
    Management accounts PDF -> extracted financial text
    Excel / CSV -> sheet text, no model call
    """
    if file is None or not file.filename:
        return error_response(400, "No file provided")

    input_type = "bank" if inputType.strip().lower() == "bank" else "management"
    try:
        document = UploadedDocument(filename=file.filename, content=file.file.read())
        extraction = extract_document(document, businessName or config.DEFAULT_BUSINESS_NAME, input_type)
        return extraction.model_dump()
    except Exception as e:
        logger.exception("Extract error")
        return error_response(500, f"Extraction failed: {e}")


@app.post("/api/analyze")
def analyze(request: AnalyzeRequest):
    """
    Analyse pre-extracted data (from /api/extract), not raw files.

    Falls back to labelled demo data when no API key is configured or the
    model call fails.
    """
    if not request.extractions:
        return error_response(400, "No extracted data provided")

    try:
        context = BusinessContext(**request.model_dump(exclude={"extractions"}))
        analysis, _ = analyze_extractions(request.extractions, context)
        return analysis.model_dump()
    except Exception as e:
        logger.exception("Analyze route error")
        return error_response(500, f"Analysis failed: {e}")
