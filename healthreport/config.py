"""
Analysis Configuration — Per-Kind LLM Call Settings

Defaults for the completion call and the retry budget, with environment
overrides. Invalid overrides raise ConfigError at lookup time.
"""

import logging
import os
from dataclasses import dataclass, replace

from healthreport.errors import ConfigError
from healthreport.schemas import ResponseKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUTS = {
    ResponseKind.EEG: 90.0,
    ResponseKind.PPG: 90.0,
    ResponseKind.STRESS: 90.0,
    ResponseKind.MENTAL_HEALTH_RISK: 120.0,
    ResponseKind.COMPREHENSIVE: 120.0,
}


@dataclass(frozen=True)
class AnalysisConfig:
    model: str | None = None
    temperature: float = 0.7
    max_output_tokens: int = 8192
    timeout_s: float = 90.0
    max_attempts: int = 3
    retry_delay: float = 1.0
    max_delay: float = 30.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.timeout_s <= 0:
            raise ConfigError(f"timeout_s must be > 0, got {self.timeout_s}")
        if not 0 <= self.temperature <= 2:
            raise ConfigError(f"temperature must be in [0, 2], got {self.temperature}")
        if self.max_output_tokens < 1:
            raise ConfigError(f"max_output_tokens must be >= 1, got {self.max_output_tokens}")
        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must be >= 0, got {self.retry_delay}")


def _env(name: str, cast):
    value = os.environ.get(name)
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except ValueError as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e


def get_analysis_config(kind: ResponseKind | str) -> AnalysisConfig:
    """
    Build the config for one analysis kind.

    Env overrides: LLM_MODEL, LLM_TEMPERATURE, LLM_MAX_OUTPUT_TOKENS,
    LLM_TIMEOUT_SECONDS, LLM_MAX_ATTEMPTS, LLM_RETRY_DELAY.
    """
    try:
        kind = ResponseKind(kind)
    except ValueError as e:
        raise ConfigError(f"Unknown response kind: {kind!r}") from e

    config = AnalysisConfig(timeout_s=DEFAULT_TIMEOUTS[kind])

    overrides = {
        "model": _env("LLM_MODEL", str),
        "temperature": _env("LLM_TEMPERATURE", float),
        "max_output_tokens": _env("LLM_MAX_OUTPUT_TOKENS", int),
        "timeout_s": _env("LLM_TIMEOUT_SECONDS", float),
        "max_attempts": _env("LLM_MAX_ATTEMPTS", int),
        "retry_delay": _env("LLM_RETRY_DELAY", float),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        logger.debug("Config overrides for %s: %s", kind.value, overrides)
        config = replace(config, **overrides)
    return config
