"""
Health Report Assembly — Orchestrates All Analyses for One Measurement

Runs the EEG, PPG and combined stress analyses concurrently, then the
mental-health-risk and comprehensive analyses that build on them, and
assembles the report record with demographic score normalization and
per-analysis quality flags.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

from healthreport.analysis import AnalysisResult, run_analysis
from healthreport.generation import PROMPT_BUILDERS
from healthreport.norms import normalize_metrics, weighted_average
from healthreport.schemas import ResponseKind

logger = logging.getLogger(__name__)

VALID_GENDERS = {"male", "female"}

DISCLAIMER = (
    "본 리포트는 AI가 생성한 참고용 웰니스 정보이며 의학적 진단을 대체하지 않습니다. "
    "건강상 우려가 있으면 전문의와 상담하세요."
)


def validate_report_request(personal_info, measurement) -> list[str]:
    """
    Validate a report request.

    Returns a list of error strings (empty list means valid).
    """
    errors = []

    if not isinstance(personal_info, dict):
        errors.append("personal_info must be an object")
    else:
        age = personal_info.get("age")
        if isinstance(age, bool) or not isinstance(age, int):
            errors.append("personal_info.age must be an integer")
        elif not 1 <= age <= 120:
            errors.append(f"personal_info.age out of range: {age}")

        gender = personal_info.get("gender")
        if gender not in VALID_GENDERS:
            errors.append(f"personal_info.gender must be one of {sorted(VALID_GENDERS)}")

    if not isinstance(measurement, dict):
        errors.append("measurement must be an object")
    else:
        for key in ("eeg", "ppg"):
            metrics = measurement.get(key)
            if not isinstance(metrics, dict) or not metrics:
                errors.append(f"measurement.{key} must be a non-empty object of metrics")

    return errors


def _overall_score(comprehensive: AnalysisResult) -> int:
    score = comprehensive.result.get("overallScore", 0)
    return round(min(max(score, 0), 100))


def generate_health_report(
    personal_info: dict,
    measurement: dict,
    db: dict,
    configs: dict | None = None,
) -> dict:
    """
    Generate a full health report.

    `db` holds the shared resources ({"provider": ...}); `configs` optionally
    maps a ResponseKind to its AnalysisConfig. Invalid input returns
    {"error", "details"}; AnalysisFailedError from any analysis propagates.
    """
    errors = validate_report_request(personal_info, measurement)
    if errors:
        logger.warning("Rejected report request: %s", "; ".join(errors))
        return {"error": "Invalid report request", "details": errors}

    configs = configs or {}
    provider = db["provider"]

    def analyze(kind: ResponseKind, *prompt_args) -> AnalysisResult:
        prompt = PROMPT_BUILDERS[kind](personal_info, *prompt_args)
        return run_analysis(kind, prompt, provider, configs.get(kind))

    signal_inputs = {
        ResponseKind.EEG: measurement["eeg"],
        ResponseKind.PPG: measurement["ppg"],
        ResponseKind.STRESS: {**measurement["eeg"], **measurement["ppg"]},
    }

    logger.info("Running EEG, PPG and stress analyses in parallel")
    with ThreadPoolExecutor(max_workers=len(signal_inputs)) as executor:
        futures = [executor.submit(analyze, kind, metrics) for kind, metrics in signal_inputs.items()]
        eeg, ppg, stress = [f.result() for f in futures]

    mental = analyze(ResponseKind.MENTAL_HEALTH_RISK, eeg.result, ppg.result)

    analyses = {r.kind: r for r in (eeg, ppg, stress, mental)}
    comprehensive = analyze(
        ResponseKind.COMPREHENSIVE, {k: r.result for k, r in analyses.items()},
    )
    analyses[comprehensive.kind] = comprehensive

    gender, age = personal_info["gender"], personal_info["age"]
    normalized = {
        "eeg": normalize_metrics(measurement["eeg"], gender, age),
        "ppg": normalize_metrics(measurement["ppg"], gender, age),
    }
    normalized["combined"] = weighted_average(
        [(score, 1.0) for group in normalized.values() for score in group.values()]
    )

    degraded = [k for k, r in analyses.items() if r.used_fallback]
    if degraded:
        logger.warning("Report built with heuristic fallback for: %s", ", ".join(degraded))

    return {
        "personal_info": personal_info,
        "measurement": measurement,
        "analyses": {k: r.result for k, r in analyses.items()},
        "quality": {k: r.quality() for k, r in analyses.items()},
        "overall_score": _overall_score(comprehensive),
        "health_status": comprehensive.result.get("healthStatus"),
        "normalized_scores": normalized,
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "disclaimer": DISCLAIMER,
    }
