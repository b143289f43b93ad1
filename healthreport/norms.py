"""
Score Normalization — Age/Gender-Adjusted Percentiles

Converts raw metric values into percentiles against a demographic reference
table (z-score through the normal CDF), then into a five-level grade.
Metrics without reference data pass through clamped to 0-100.
"""

import logging
import math

logger = logging.getLogger(__name__)

AGE_GROUPS = ("20-29", "30-39", "40-49", "50-59", "60+")

# metric -> gender -> (mean, std_dev, sample_size) per age group, in AGE_GROUPS order
NORM_TABLE = {
    "focusIndex": {
        "male": [(68, 12, 500), (65, 13, 450), (62, 14, 400), (58, 15, 350), (55, 16, 300)],
        "female": [(70, 11, 520), (67, 12, 480), (64, 13, 420), (60, 14, 380), (57, 15, 320)],
    },
    "relaxationIndex": {
        "male": [(72, 15, 500), (70, 14, 450), (68, 16, 400), (65, 17, 350), (62, 18, 300)],
        "female": [(75, 13, 520), (73, 14, 480), (70, 15, 420), (67, 16, 380), (64, 17, 320)],
    },
    "hrvRMSSD": {
        "male": [(42, 18, 600), (35, 16, 550), (28, 14, 500), (23, 12, 450), (19, 10, 400)],
        "female": [(45, 20, 620), (38, 18, 580), (31, 16, 520), (26, 14, 480), (22, 12, 420)],
    },
    "restingHR": {
        "male": [(66, 8, 800), (68, 8, 750), (70, 9, 700), (71, 9, 650), (72, 10, 600)],
        "female": [(70, 7, 820), (72, 8, 780), (73, 8, 720), (74, 9, 680), (75, 9, 620)],
    },
    "depressionRisk": {
        "male": [(15, 8, 1000), (18, 9, 950), (22, 11, 900), (25, 12, 850), (25, 12, 800)],
        "female": [(18, 9, 1050), (22, 10, 1000), (25, 12, 950), (28, 13, 900), (28, 13, 850)],
    },
    "adhdRisk": {
        "male": [(20, 12, 800), (20, 12, 750), (20, 12, 700), (20, 12, 650), (20, 12, 600)],
        "female": [(16, 10, 820), (16, 10, 780), (16, 10, 720), (16, 10, 680), (16, 10, 620)],
    },
    "burnoutRisk": {
        "male": [(25, 15, 600), (35, 18, 700), (42, 20, 650), (32, 17, 550), (32, 17, 500)],
        "female": [(28, 16, 620), (38, 19, 720), (45, 21, 680), (35, 18, 580), (35, 18, 520)],
    },
    "stressRisk": {
        "male": [(30, 15, 900), (30, 15, 850), (30, 15, 800), (30, 15, 750), (30, 15, 700)],
        "female": [(35, 16, 920), (35, 16, 880), (35, 16, 820), (35, 16, 780), (35, 16, 720)],
    },
}

GRADE_THRESHOLDS = (
    (95, "excellent"),
    (75, "good"),
    (25, "normal"),
    (5, "borderline"),
)


def age_group(age: int) -> str:
    if age < 30:
        return "20-29"
    if age < 40:
        return "30-39"
    if age < 50:
        return "40-49"
    if age < 60:
        return "50-59"
    return "60+"


def get_demographic_norms(metric: str, gender: str, age: int) -> dict | None:
    """
    Reference distribution for a metric in the person's gender/age group.

    Returns {"mean", "std_dev", "sample_size", "age_group"} or None.
    """
    by_gender = NORM_TABLE.get(metric, {})
    rows = by_gender.get((gender or "").lower())
    if rows is None:
        return None

    group = age_group(age)
    mean, std_dev, sample_size = rows[AGE_GROUPS.index(group)]
    return {"mean": mean, "std_dev": std_dev, "sample_size": sample_size, "age_group": group}


def z_to_percentile(z: float) -> int:
    return round(50 * (1 + math.erf(z / math.sqrt(2))))


def score_grade(percentile: float) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if percentile >= threshold:
            return grade
    return "attention"


def normalize_score(raw: float, metric: str, gender: str, age: int) -> dict:
    """Normalize one raw value; see module docstring."""
    norms = get_demographic_norms(metric, gender, age)

    if norms is None:
        logger.debug("No demographic norms for %s (%s), passing through", metric, gender)
        standardized = max(0, min(100, raw))
        return {
            "raw": raw,
            "standardized": standardized,
            "percentile": standardized,
            "grade": score_grade(standardized),
            "age_gender_adjusted": False,
        }

    percentile = z_to_percentile((raw - norms["mean"]) / norms["std_dev"])
    return {
        "raw": raw,
        "standardized": max(0, min(100, percentile)),
        "percentile": percentile,
        "grade": score_grade(percentile),
        "age_gender_adjusted": True,
    }


def normalize_metrics(metrics: dict, gender: str, age: int) -> dict:
    """Normalize every numeric metric in a measurement dict."""
    normalized = {}
    for name, value in metrics.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        normalized[name] = normalize_score(value, name, gender, age)
    return normalized


def weighted_average(scores: list[tuple[dict, float]]) -> dict | None:
    """Combine (normalized_score, weight) pairs into one normalized score."""
    total = sum(weight for _, weight in scores)
    if total <= 0:
        return None

    raw = sum(s["raw"] * w for s, w in scores) / total
    standardized = sum(s["standardized"] * w for s, w in scores) / total
    percentile = sum(s["percentile"] * w for s, w in scores) / total

    return {
        "raw": round(raw, 1),
        "standardized": round(standardized),
        "percentile": round(percentile),
        "grade": score_grade(percentile),
        "age_gender_adjusted": all(s["age_gender_adjusted"] for s, _ in scores),
    }
