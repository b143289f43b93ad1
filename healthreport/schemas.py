"""
Response Schemas — Minimal Structural Contracts per Response Kind

Defines the required-field table for every analysis kind the LLM is asked to
produce, plus validation (completeness scoring) and repair (defaulting)
helpers. The repaired shape is what downstream report code relies on.
"""

import copy
import math
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_SCORE = 65
DEFAULT_STATUS = "보통"
DEFAULT_ANALYSIS = "분석 결과를 생성하는 중 일부 정보가 누락되었습니다. 측정 데이터를 기반으로 한 기본 해석을 제공합니다."

CRITICAL = "critical"
WARNING = "warning"


class ResponseKind(str, Enum):
    EEG = "eeg"
    PPG = "ppg"
    STRESS = "stress"
    MENTAL_HEALTH_RISK = "mentalHealthRisk"
    COMPREHENSIVE = "comprehensive"


@dataclass(frozen=True)
class FieldSpec:
    """One top-level field of a response contract."""
    name: str
    type: str  # number | string | array | object
    required: bool = True
    default: object = None
    bounds: tuple[float, float] | None = None
    role: str | None = None  # score | status | analysis, used by the fallback builder


@dataclass(frozen=True)
class ValidationIssue:
    message: str
    severity: str
    field: str | None = None


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    score: int
    errors: tuple[ValidationIssue, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def critical_count(self) -> int:
        return sum(1 for e in self.errors if e.severity == CRITICAL)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self.errors if e.severity == WARNING)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "score": self.score,
            "errors": [
                {"message": e.message, "severity": e.severity, "field": e.field}
                for e in self.errors
            ],
            "warnings": list(self.warnings),
        }


def _biosignal_fields() -> tuple[FieldSpec, ...]:
    return (
        FieldSpec("score", "number", default=DEFAULT_SCORE, bounds=(0, 100), role="score"),
        FieldSpec("status", "string", default=DEFAULT_STATUS, role="status"),
        FieldSpec("analysis", "string", default=DEFAULT_ANALYSIS, role="analysis"),
        FieldSpec("recommendations", "array", default=[]),
        FieldSpec("concerns", "array", default=[]),
        FieldSpec("keyMetrics", "object", required=False, default={}),
    )


RESPONSE_SCHEMAS: dict[ResponseKind, tuple[FieldSpec, ...]] = {
    ResponseKind.EEG: _biosignal_fields(),
    ResponseKind.PPG: _biosignal_fields(),
    ResponseKind.STRESS: _biosignal_fields(),
    ResponseKind.MENTAL_HEALTH_RISK: (
        FieldSpec("overallAssessment", "string", default=DEFAULT_ANALYSIS, role="analysis"),
        FieldSpec("riskSummary", "string", default=DEFAULT_STATUS, role="status"),
        FieldSpec("keyFindings", "array", default=[]),
        FieldSpec("recommendations", "array", default=[]),
        FieldSpec("confidence", "number", required=False, default=0.7, bounds=(0, 1)),
    ),
    ResponseKind.COMPREHENSIVE: (
        FieldSpec("overallScore", "number", default=DEFAULT_SCORE, bounds=(0, 100), role="score"),
        FieldSpec("healthStatus", "string", default=DEFAULT_STATUS, role="status"),
        FieldSpec("analysis", "string", default=DEFAULT_ANALYSIS, role="analysis"),
        FieldSpec("keyFindings", "object", default={}),
        FieldSpec("immediate", "array", default=[]),
        FieldSpec("shortTerm", "array", default=[]),
        FieldSpec("longTerm", "array", default=[]),
        FieldSpec("problemAreas", "array", required=False, default=[]),
        FieldSpec("occupationalAnalysis", "object", required=False, default={}),
        FieldSpec("followUpPlan", "object", required=False, default={}),
    ),
}


def get_schema(kind: ResponseKind | str) -> tuple[FieldSpec, ...]:
    """Return the field table for a kind. Raises ValueError for unknown tags."""
    return RESPONSE_SCHEMAS[ResponseKind(kind)]


def field_for_role(kind: ResponseKind | str, role: str) -> FieldSpec | None:
    for spec in get_schema(kind):
        if spec.role == role:
            return spec
    return None


def matches_type(value, type_name: str) -> bool:
    if type_name == "number":
        return (
            isinstance(value, (int, float))
            and not isinstance(value, bool)
            and math.isfinite(value)
        )
    if type_name == "string":
        return isinstance(value, str)
    if type_name == "array":
        return isinstance(value, list)
    if type_name == "object":
        return isinstance(value, dict)
    return False


def validate_response(obj, kind: ResponseKind | str) -> ValidationResult:
    """
    Check a parsed response against the minimal contract for its kind.

    Missing or wrongly typed required fields are critical; out-of-range
    numbers and malformed optional fields are warnings. The score is a
    completeness metric: 100 - 20 per critical - 5 per warning, floored at 0.
    """
    schema = get_schema(kind)
    issues = []
    notes = []

    if not isinstance(obj, dict):
        notes.append(f"Expected a JSON object, got {type(obj).__name__}")
        obj = {}

    for spec in schema:
        if spec.name not in obj:
            if spec.required:
                issues.append(ValidationIssue(
                    f"Missing required field: {spec.name}", CRITICAL, spec.name,
                ))
            continue

        value = obj[spec.name]
        if not matches_type(value, spec.type):
            issues.append(ValidationIssue(
                f"Field {spec.name} should be {spec.type}, got {type(value).__name__}",
                CRITICAL if spec.required else WARNING,
                spec.name,
            ))
            continue

        if spec.bounds is not None:
            low, high = spec.bounds
            if not low <= value <= high:
                issues.append(ValidationIssue(
                    f"Field {spec.name}={value} outside range [{low}, {high}]",
                    WARNING,
                    spec.name,
                ))

        if spec.type == "string" and spec.required and not value.strip():
            notes.append(f"Empty required field: {spec.name}")

    critical = sum(1 for i in issues if i.severity == CRITICAL)
    warning = len(issues) - critical

    return ValidationResult(
        is_valid=critical == 0,
        score=max(0, 100 - 20 * critical - 5 * warning),
        errors=tuple(issues),
        warnings=tuple(notes),
    )


def repair_response(obj, kind: ResponseKind | str) -> dict:
    """
    Fill every missing or malformed field with its default.

    Returns a new top-level dict; nested values are shared with the input
    and never mutated. Unknown keys and already-valid fields pass through,
    so repair is idempotent.
    """
    repaired = dict(obj) if isinstance(obj, dict) else {}

    for spec in get_schema(kind):
        if not matches_type(repaired.get(spec.name), spec.type):
            repaired[spec.name] = copy.deepcopy(spec.default)

    return repaired


@dataclass(frozen=True)
class SchemaSummary:
    kind: str
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = field(default_factory=tuple)


def describe_schema(kind: ResponseKind | str) -> SchemaSummary:
    """Required and optional field names, reported by /health."""
    schema = get_schema(kind)
    return SchemaSummary(
        kind=ResponseKind(kind).value,
        required=tuple(s.name for s in schema if s.required),
        optional=tuple(s.name for s in schema if not s.required),
    )
