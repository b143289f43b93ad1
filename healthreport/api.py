"""
FastAPI REST API for the health report service.

Provides /extract, /analyze, /reports and /health endpoints with API key
authentication.

Usage:
    uvicorn healthreport.api:app --reload
    # or
    python -m healthreport.api
"""

import logging
import os
import time

from fastapi import FastAPI, Depends, HTTPException, Query, Security, Request
from fastapi.security import APIKeyHeader
from dotenv import load_dotenv

from healthreport.analysis import run_analysis
from healthreport.api_models import (
    ExtractRequest, ExtractResponse,
    AnalyzeRequest, AnalyzeResponse,
    ReportRequest, ReportRecord, ReportListResponse,
    HealthResponse,
)
from healthreport.errors import AnalysisFailedError, ConfigError
from healthreport.logging_config import setup_logging
from healthreport.pipeline import outcome_to_dict, run_resilient_extraction
from healthreport.provider import create_provider
from healthreport.report import generate_health_report
from healthreport.report_store import create_report_store
from healthreport.schemas import ResponseKind, describe_schema

load_dotenv()
setup_logging()
logger = logging.getLogger(__name__)

RETRY_MESSAGE = "Analysis could not be completed, please retry."

# --- App setup ---

app = FastAPI(
    title="Health Report API",
    description="LLM-generated health reports from EEG/PPG metrics with resilient JSON extraction",
    version="0.1.0",
)

# --- Auth ---

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(api_key: str = Security(API_KEY_HEADER)) -> str:
    """
    Validate the API key from the X-API-Key header.

    The expected key is set via the API_KEY environment variable.
    If API_KEY is not set, auth is disabled (development mode).
    """
    expected = os.environ.get("API_KEY")
    if expected is None:
        return "dev"
    if not api_key or api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return api_key


# --- Shared resources ---

_db: dict | None = None


def get_db() -> dict:
    """Get the provider and report store, initializing on first call."""
    global _db
    if _db is None:
        logger.info("Initializing provider and report store...")
        _db = {"provider": create_provider(), "store": create_report_store()}
    return _db


# --- Request logging middleware ---

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request with timing."""
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start
    logger.info(
        "%s %s status=%d time=%.3fs",
        request.method, request.url.path, response.status_code, elapsed,
    )
    return response


# --- Routes ---

@app.get("/health", response_model=HealthResponse)
def health(db: dict = Depends(get_db)):
    """System health check."""
    store = db["store"]
    return HealthResponse(
        status="healthy",
        provider=db["provider"].provider_name,
        report_store=type(store).__name__,
        report_count=store.count(),
        response_kinds=[k.value for k in ResponseKind],
        schemas={
            s.kind: {"required": list(s.required), "optional": list(s.optional)}
            for s in map(describe_schema, ResponseKind)
        },
    )


@app.post(
    "/extract",
    response_model=ExtractResponse,
    dependencies=[Depends(verify_api_key)],
)
def extract(req: ExtractRequest):
    """
    Run the response pipeline on saved LLM output.

    No LLM call is made; the result always satisfies the kind's contract.
    """
    if not req.raw_text.strip():
        raise HTTPException(status_code=400, detail="raw_text is empty")

    outcome = run_resilient_extraction(req.raw_text, req.kind)
    return ExtractResponse(**outcome_to_dict(outcome))


@app.post(
    "/analyze",
    response_model=AnalyzeResponse,
    dependencies=[Depends(verify_api_key)],
)
def analyze(req: AnalyzeRequest, db: dict = Depends(get_db)):
    """Run one LLM analysis with retry, repair and fallback."""
    logger.info("Analyze request: kind=%s", req.kind.value)
    try:
        result = run_analysis(req.kind, req.prompt, db["provider"])
    except ConfigError as e:
        raise HTTPException(status_code=500, detail=str(e))
    except AnalysisFailedError as e:
        logger.error("Analysis failed: %s", e)
        raise HTTPException(status_code=502, detail=RETRY_MESSAGE)

    return AnalyzeResponse(
        kind=result.kind,
        result=result.result,
        validation=result.validation.to_dict(),
        attempts=result.attempts,
        used_fallback=result.used_fallback,
        repaired=result.repaired,
        applied_fixes=list(result.applied_fixes),
    )


@app.post(
    "/reports",
    response_model=ReportRecord,
    dependencies=[Depends(verify_api_key)],
)
def create_report(req: ReportRequest, db: dict = Depends(get_db)):
    """Generate a full health report and store it."""
    try:
        report = generate_health_report(
            req.personal_info.model_dump(), req.measurement.model_dump(), db,
        )
    except AnalysisFailedError as e:
        logger.error("Report generation failed: %s", e)
        raise HTTPException(status_code=502, detail=RETRY_MESSAGE)

    if "error" in report:
        raise HTTPException(status_code=400, detail=report)

    report_id = db["store"].save(report, tags=req.tags, notes=req.notes)
    return db["store"].get(report_id)


@app.get(
    "/reports",
    response_model=ReportListResponse,
    dependencies=[Depends(verify_api_key)],
)
def list_reports(
    limit: int | None = Query(default=None, ge=1, le=50),
    min_score: float | None = None,
    max_score: float | None = None,
    keyword: list[str] | None = Query(default=None),
    tag: list[str] | None = Query(default=None),
    db: dict = Depends(get_db),
):
    """List stored reports, newest first, optionally filtered."""
    store = db["store"]
    if any(v is not None for v in (min_score, max_score, keyword, tag)):
        records = store.search(min_score=min_score, max_score=max_score, keywords=keyword, tags=tag)
    else:
        records = store.list_reports()
    if limit is not None:
        records = records[:limit]
    return ReportListResponse(reports=records, total=len(records), stats=store.stats())


@app.get(
    "/reports/{report_id}",
    response_model=ReportRecord,
    dependencies=[Depends(verify_api_key)],
)
def get_report(report_id: str, db: dict = Depends(get_db)):
    record = db["store"].get(report_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"Report '{report_id}' not found.")
    return record


@app.delete(
    "/reports/{report_id}",
    dependencies=[Depends(verify_api_key)],
)
def delete_report(report_id: str, db: dict = Depends(get_db)):
    if not db["store"].delete(report_id):
        raise HTTPException(status_code=404, detail=f"Report '{report_id}' not found.")
    return {"deleted": report_id}


# --- Entrypoint for python -m ---

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("healthreport.api:app", host="0.0.0.0", port=8000, reload=True)
