"""
API request/response models for the health report service.

All models use Pydantic v2 for validation and serialization.
"""

from pydantic import BaseModel, Field

from healthreport.schemas import ResponseKind


# --- Requests ---

class ExtractRequest(BaseModel):
    """Request body for running the response pipeline on saved LLM output."""
    raw_text: str = Field(
        ...,
        min_length=1,
        description="Raw completion text returned by the LLM",
        json_schema_extra={"example": '```json\n{"score": 72, "status": "양호"}\n```'},
    )
    kind: ResponseKind = Field(
        default=ResponseKind.EEG,
        description="Which structural contract to validate against",
    )


class AnalyzeRequest(BaseModel):
    """Request body for a single LLM analysis with retry and repair."""
    kind: ResponseKind
    prompt: str = Field(..., min_length=10, description="Prompt sent to the LLM")


class PersonalInfo(BaseModel):
    name: str | None = None
    age: int = Field(..., ge=1, le=120)
    gender: str = Field(..., pattern=r"^(male|female)$")
    occupation: str | None = None


class Measurement(BaseModel):
    eeg: dict[str, float] = Field(..., min_length=1, description="EEG-derived metrics")
    ppg: dict[str, float] = Field(..., min_length=1, description="PPG-derived metrics")


class ReportRequest(BaseModel):
    """Request body for generating and storing a full health report."""
    personal_info: PersonalInfo
    measurement: Measurement
    tags: list[str] = Field(default_factory=list)
    notes: str = ""


# --- Responses ---

class ValidationIssueModel(BaseModel):
    message: str
    severity: str
    field: str | None = None


class ValidationModel(BaseModel):
    is_valid: bool
    score: int
    errors: list[ValidationIssueModel]
    warnings: list[str]


class ExtractResponse(BaseModel):
    """Response from the response pipeline."""
    result: dict
    validation: ValidationModel
    source: str  # "candidate" or "fallback"
    pattern: str | None = None
    applied_fixes: list[str]
    repaired: bool
    used_fallback: bool
    parse_errors: list[str] = []


class AnalyzeResponse(BaseModel):
    """Response from a single analysis."""
    kind: str
    result: dict
    validation: ValidationModel
    attempts: int
    used_fallback: bool
    repaired: bool
    applied_fixes: list[str]


class ReportRecord(BaseModel):
    """A stored report."""
    id: str
    created_at: str
    report: dict
    tags: list[str] = []
    notes: str = ""


class ReportListResponse(BaseModel):
    reports: list[ReportRecord]
    total: int
    stats: dict


class HealthResponse(BaseModel):
    """System health status."""
    status: str  # "healthy" or "degraded"
    provider: str
    report_store: str
    report_count: int
    response_kinds: list[str]
    schemas: dict[str, dict[str, list[str]]]  # kind -> required/optional field names
