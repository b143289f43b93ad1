"""
Retry Policy — Backoff and Transient-Failure Classification

Shared by the analysis loop: which LLM failures are worth another attempt,
and how long to wait before it.
"""

from healthreport.errors import EmptyCompletionError, HttpError, LLMTimeoutError, NetworkError


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    linear: bool = True,
) -> float:
    """
    Delay in seconds to wait after failed attempt number `attempt` (1-based).

    Linear (attempt * base_delay) by default; exponential
    (base_delay * 2 ** (attempt - 1)) when linear=False. Capped at max_delay.
    """
    attempt = max(1, attempt)
    if linear:
        delay = base_delay * attempt
    else:
        delay = base_delay * (2 ** (attempt - 1))
    return max(0.0, min(delay, max_delay))


def is_retryable(exc: BaseException) -> bool:
    """True for failures that another identical request might not hit."""
    if isinstance(exc, HttpError):
        return exc.is_transient
    return isinstance(exc, (NetworkError, LLMTimeoutError, EmptyCompletionError))
