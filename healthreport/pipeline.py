"""
Response Pipeline — Resilient Extraction of Structured LLM Output

Turns a raw completion into a validated, minimally-shaped dict:
candidates are tried in extraction order (direct parse, then sanitize),
the first object that parses is validated and repaired if needed, and a
heuristic fallback is built when every candidate fails. Data-shape problems
never escape; only an empty completion raises.
"""

import json
import logging
from dataclasses import dataclass

from healthreport.errors import EmptyCompletionError
from healthreport.fallback import build_fallback_response
from healthreport.output_parser import Candidate, extract_candidates, try_parse_object
from healthreport.sanitizer import analyze_json_error, sanitize_json
from healthreport.schemas import ResponseKind, ValidationResult, repair_response, validate_response

logger = logging.getLogger(__name__)

SOURCE_CANDIDATE = "candidate"
SOURCE_FALLBACK = "fallback"


@dataclass(frozen=True)
class ExtractionOutcome:
    result: dict
    validation: ValidationResult
    source: str
    candidate: Candidate | None = None
    applied_fixes: tuple[str, ...] = ()
    repaired: bool = False
    parse_errors: tuple[str, ...] = ()

    @property
    def used_fallback(self) -> bool:
        return self.source == SOURCE_FALLBACK


def _parse_candidate(candidate: Candidate, log: logging.Logger) -> tuple[dict | None, tuple[str, ...], str | None]:
    """Direct parse, then sanitize. Returns (object, applied_fixes, error)."""
    parsed = try_parse_object(candidate.text)
    if parsed is not None:
        return parsed, (), None

    sanitized = sanitize_json(candidate.text)
    if sanitized.success:
        parsed = try_parse_object(sanitized.sanitized_text)
        if parsed is not None:
            return parsed, sanitized.applied_fixes, None
        return None, sanitized.applied_fixes, "Sanitized JSON is not an object"

    error = sanitized.errors[0] if sanitized.errors else "JSON parse failed"
    log.debug(
        "Candidate %d (%s) rejected: %s (fixes tried: %s)",
        candidate.pattern_index, candidate.pattern_name, error,
        ", ".join(sanitized.applied_fixes) or "none",
    )
    return None, sanitized.applied_fixes, error


def run_resilient_extraction(
    raw: str,
    kind: ResponseKind | str,
    log: logging.Logger | None = None,
) -> ExtractionOutcome:
    """
    Extract a structurally complete response of `kind` from raw LLM text.

    Always returns for non-empty text; raises EmptyCompletionError for
    empty or whitespace-only input.
    """
    log = log or logger
    kind = ResponseKind(kind)

    if not raw or not raw.strip():
        raise EmptyCompletionError(f"Empty completion for {kind.value} analysis")

    parse_errors = []

    for candidate in extract_candidates(raw):
        parsed, fixes, error = _parse_candidate(candidate, log)
        if parsed is None:
            parse_errors.append(f"{candidate.pattern_name}: {error}")
            continue

        if fixes:
            log.warning(
                "%s response needed sanitizing (pattern %s): %s",
                kind.value, candidate.pattern_name, ", ".join(fixes),
            )

        validation = validate_response(parsed, kind)
        result = parsed
        repaired = False

        if validation.critical_count:
            result = repair_response(parsed, kind)
            repaired = True
            log.warning(
                "%s response repaired: completeness %d, issues: %s",
                kind.value, validation.score,
                "; ".join(e.message for e in validation.errors),
            )
        elif validation.errors:
            log.warning(
                "%s response accepted with warnings (completeness %d): %s",
                kind.value, validation.score,
                "; ".join(e.message for e in validation.errors),
            )
        else:
            log.info("%s response accepted via %s", kind.value, candidate.pattern_name)

        return ExtractionOutcome(
            result=result,
            validation=validation,
            source=SOURCE_CANDIDATE,
            candidate=candidate,
            applied_fixes=fixes,
            repaired=repaired,
            parse_errors=tuple(parse_errors),
        )

    diagnosis = analyze_json_error(raw.strip())
    if diagnosis:
        log.warning(
            "No parseable JSON in %s response (line %d, column %d: %s)",
            kind.value, diagnosis["line"], diagnosis["column"], diagnosis["message"],
        )

    result = build_fallback_response(raw, kind)
    return ExtractionOutcome(
        result=result,
        validation=validate_response(result, kind),
        source=SOURCE_FALLBACK,
        parse_errors=tuple(parse_errors),
    )


def outcome_to_dict(outcome: ExtractionOutcome) -> dict:
    """JSON-safe summary of an outcome, for the API and CLI."""
    return {
        "result": outcome.result,
        "validation": outcome.validation.to_dict(),
        "source": outcome.source,
        "pattern": outcome.candidate.pattern_name if outcome.candidate else None,
        "applied_fixes": list(outcome.applied_fixes),
        "repaired": outcome.repaired,
        "used_fallback": outcome.used_fallback,
        "parse_errors": list(outcome.parse_errors),
    }


def dump_result(outcome: ExtractionOutcome) -> str:
    return json.dumps(outcome_to_dict(outcome), ensure_ascii=False, indent=2)
