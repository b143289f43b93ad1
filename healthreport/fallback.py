"""
Fallback Response — Heuristic Extraction When No JSON Parses

Builds an always-valid response straight from the raw completion by pulling
out a score, a status and an analysis sentence with regexes, then filling
everything else with the structural defaults.
"""

import logging
import re

from healthreport.errors import EmptyCompletionError
from healthreport.schemas import ResponseKind, field_for_role, repair_response

logger = logging.getLogger(__name__)

SCORE_PATTERN = re.compile(r"(?:score|점수)[\"':\s]*(-?\d+(?:\.\d+)?)", re.IGNORECASE)
STATUS_PATTERN = re.compile(r"(?:status|상태)[\"':\s]*[\"']?([^\"',\n}]+)", re.IGNORECASE)
ANALYSIS_PATTERN = re.compile(r"(?:analysis|분석)[\"':\s]*\"((?:[^\"\\]|\\.)+)\"", re.IGNORECASE)
LONG_QUOTE_PATTERN = re.compile(r"\"([^\"]{100,})\"")

MAX_ANALYSIS_CHARS = 500


def extract_fallback_fields(raw: str) -> dict:
    """
    Pull score/status/analysis values out of free text.

    Returns a dict with only the roles that were found.
    """
    found = {}

    match = SCORE_PATTERN.search(raw)
    if match:
        found["score"] = float(match.group(1))

    match = STATUS_PATTERN.search(raw)
    if match and match.group(1).strip():
        found["status"] = match.group(1).strip()

    match = ANALYSIS_PATTERN.search(raw)
    if match:
        found["analysis"] = match.group(1).strip()
    else:
        match = LONG_QUOTE_PATTERN.search(raw)
        if match:
            text = match.group(1).strip()
            if len(text) > MAX_ANALYSIS_CHARS:
                text = text[:MAX_ANALYSIS_CHARS] + "..."
            found["analysis"] = text

    return found


def build_fallback_response(raw: str, kind: ResponseKind | str) -> dict:
    """
    Build a minimally-shaped response for `kind` from unparseable text.

    Raises EmptyCompletionError if there is no text to recover from.
    """
    if not raw or not raw.strip():
        raise EmptyCompletionError("Cannot build a fallback response from an empty completion")

    found = extract_fallback_fields(raw)
    response = {}

    for role, value in found.items():
        spec = field_for_role(kind, role)
        if spec is None:
            continue
        if spec.bounds is not None:
            low, high = spec.bounds
            value = min(max(value, low), high)
            if float(value).is_integer():
                value = int(value)
        response[spec.name] = value

    logger.warning(
        "Built fallback %s response (extracted: %s)",
        ResponseKind(kind).value, ", ".join(sorted(found)) or "nothing",
    )
    return repair_response(response, kind)
