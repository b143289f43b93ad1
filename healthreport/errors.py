"""
Exception hierarchy for the health report service.

Only LLM-call failures ever reach callers of the analysis layer. Parse and
structural defects are resolved inside the response pipeline and are
logged, not raised.

    try:
        result = run_analysis("eeg", prompt, provider)
    except AnalysisFailedError as e:
        print(f"Analysis failed after {e.attempts} attempts: {e.cause}")
"""


class HealthReportError(Exception):
    """Base exception for all health report errors."""


class LLMError(HealthReportError):
    """Raised when a completion request to the LLM provider fails."""


class NetworkError(LLMError):
    """Raised when the provider cannot be reached (DNS, connection reset, ...)."""


class LLMTimeoutError(LLMError, TimeoutError):
    """Raised when a completion request exceeds its timeout or is aborted."""


class HttpError(LLMError):
    """Raised when the provider answers with a non-success HTTP status."""

    def __init__(self, status: int, message: str = ""):
        self.status = status
        super().__init__(f"HTTP {status}: {message}" if message else f"HTTP {status}")

    @property
    def is_transient(self) -> bool:
        return self.status == 429 or self.status >= 500


class EmptyCompletionError(HealthReportError, ValueError):
    """Raised when a completion is empty, so there is no text to recover from."""


class AnalysisFailedError(HealthReportError):
    """Terminal error for one analysis call, raised once the retry budget is spent."""

    def __init__(self, kind: str, attempts: int, cause: Exception | None = None):
        self.kind = kind
        self.attempts = attempts
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"{kind} analysis failed after {attempts} attempt(s){detail}")


class ConfigError(HealthReportError, ValueError):
    """Raised when configuration is invalid or missing."""
