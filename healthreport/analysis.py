"""
Analysis Loop — Bounded Retry Around One LLM Analysis Call

Issues the completion, runs the response pipeline on it, and decides what to
do next: accept, re-ask with JSON-format rules (nothing parsed), back off and
retry (transient call failure), or give up with AnalysisFailedError.

    result = run_analysis("eeg", prompt, provider)
    result.result["score"]
"""

import logging
import time
from dataclasses import dataclass

from healthreport.config import AnalysisConfig, get_analysis_config
from healthreport.errors import AnalysisFailedError, EmptyCompletionError, LLMError
from healthreport.generation import build_retry_prompt, complete_text
from healthreport.pipeline import ExtractionOutcome, run_resilient_extraction
from healthreport.retry import backoff_delay, is_retryable
from healthreport.sanitizer import analyze_json_error
from healthreport.schemas import ResponseKind, ValidationResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviousFailure:
    """Why the last completion was unusable, fed to the next prompt."""
    attempt: int
    reason: str
    message: str
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True)
class AnalysisResult:
    kind: str
    result: dict
    validation: ValidationResult
    attempts: int
    used_fallback: bool
    repaired: bool
    applied_fixes: tuple[str, ...] = ()

    def quality(self) -> dict:
        return {
            "completeness": self.validation.score,
            "used_fallback": self.used_fallback,
            "repaired": self.repaired,
            "attempts": self.attempts,
        }


def _describe_failure(attempt: int, raw: str, outcome: ExtractionOutcome) -> PreviousFailure:
    diagnosis = analyze_json_error(raw.strip()) or {}
    message = diagnosis.get("message") or (
        outcome.parse_errors[-1] if outcome.parse_errors else "response contained no JSON object"
    )
    return PreviousFailure(
        attempt=attempt,
        reason="unparseable",
        message=message,
        line=diagnosis.get("line"),
        column=diagnosis.get("column"),
    )


def _to_result(kind: ResponseKind, outcome: ExtractionOutcome, attempts: int) -> AnalysisResult:
    return AnalysisResult(
        kind=kind.value,
        result=outcome.result,
        validation=outcome.validation,
        attempts=attempts,
        used_fallback=outcome.used_fallback,
        repaired=outcome.repaired,
        applied_fixes=outcome.applied_fixes,
    )


def run_analysis(
    kind: ResponseKind | str,
    prompt: str,
    provider,
    config: AnalysisConfig | None = None,
) -> AnalysisResult:
    """
    Run one analysis with up to config.max_attempts LLM calls.

    Returns the first outcome that came from a parsed candidate, or the last
    fallback outcome once the budget is spent. Raises AnalysisFailedError if
    a call fails non-transiently, or if no attempt produced a completion.
    """
    kind = ResponseKind(kind)
    config = config or get_analysis_config(kind)

    previous_failure = None
    last_outcome = None
    last_error = None

    for attempt in range(1, config.max_attempts + 1):
        try:
            raw = complete_text(build_retry_prompt(prompt, previous_failure), provider, config)
            outcome = run_resilient_extraction(raw, kind, log=logger)
        except (LLMError, EmptyCompletionError) as e:
            if not is_retryable(e):
                logger.error("%s analysis failed with non-retryable error: %s", kind.value, e)
                raise AnalysisFailedError(kind.value, attempt, e) from e

            last_error = e
            if attempt < config.max_attempts:
                delay = backoff_delay(attempt, config.retry_delay, config.max_delay)
                logger.warning(
                    "Attempt %d/%d for %s failed: %s. Waiting %.1fs",
                    attempt, config.max_attempts, kind.value, e, delay,
                )
                time.sleep(delay)
            continue

        last_outcome = _to_result(kind, outcome, attempt)
        if not outcome.used_fallback:
            return last_outcome

        previous_failure = _describe_failure(attempt, raw, outcome)
        logger.warning(
            "Attempt %d/%d for %s produced no parseable JSON: %s",
            attempt, config.max_attempts, kind.value, previous_failure.message,
        )

    if last_outcome is not None:
        logger.warning("%s analysis falling back to heuristic result after %d attempts",
                       kind.value, config.max_attempts)
        return last_outcome

    raise AnalysisFailedError(kind.value, config.max_attempts, last_error) from last_error
