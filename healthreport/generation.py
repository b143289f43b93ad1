"""
LLM Generation Module — Prompt Engineering for Health Analysis

One prompt builder per response kind, each spelling out the JSON shape the
pipeline's structural contract expects, plus the retry-prompt augmentation
used when a previous completion could not be parsed.
"""

import json
import logging

from healthreport.config import AnalysisConfig
from healthreport.errors import EmptyCompletionError
from healthreport.schemas import ResponseKind

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a health analysis assistant that interprets EEG and PPG biosignal metrics for a wellness report.

You are not a doctor and must not diagnose. Describe what the metrics suggest, in Korean, in plain language.

Respond with a single JSON object and nothing else: no markdown, no commentary before or after it."""

STATUS_LABELS = "양호 | 보통 | 주의"


def _format_person(personal_info: dict) -> str:
    return (
        f"- 나이: {personal_info.get('age', '알 수 없음')}\n"
        f"- 성별: {personal_info.get('gender', '알 수 없음')}\n"
        f"- 직업: {personal_info.get('occupation', '알 수 없음')}"
    )


def _format_metrics(metrics: dict) -> str:
    if not metrics:
        return "- (측정값 없음)"
    return "\n".join(f"- {name}: {value}" for name, value in metrics.items())


def _biosignal_prompt(title: str, personal_info: dict, metrics: dict) -> str:
    return f"""다음 {title} 측정 결과를 분석하세요.

대상자 정보:
{_format_person(personal_info)}

측정값:
{_format_metrics(metrics)}

다음 JSON 형식으로만 응답하세요:
{{
    "score": 0-100 사이의 정수,
    "status": "{STATUS_LABELS}",
    "analysis": "측정값에 대한 상세 해석",
    "keyMetrics": {{"지표명": "해석"}},
    "recommendations": ["실천 가능한 권장사항"],
    "concerns": ["주의가 필요한 사항"]
}}"""


def build_eeg_prompt(personal_info: dict, metrics: dict) -> str:
    return _biosignal_prompt("EEG(뇌파)", personal_info, metrics)


def build_ppg_prompt(personal_info: dict, metrics: dict) -> str:
    return _biosignal_prompt("PPG(맥파)", personal_info, metrics)


def build_stress_prompt(personal_info: dict, metrics: dict) -> str:
    """Combined EEG + PPG stress view; metrics is the merged dict."""
    return _biosignal_prompt("EEG 및 PPG 기반 스트레스", personal_info, metrics)


def build_mental_health_risk_prompt(personal_info: dict, eeg_result: dict, ppg_result: dict) -> str:
    return f"""EEG와 PPG 분석 결과를 바탕으로 정신건강 위험도를 평가하세요.

대상자 정보:
{_format_person(personal_info)}

EEG 분석 결과:
{json.dumps(eeg_result, ensure_ascii=False, indent=2)}

PPG 분석 결과:
{json.dumps(ppg_result, ensure_ascii=False, indent=2)}

다음 JSON 형식으로만 응답하세요:
{{
    "overallAssessment": "종합 평가",
    "riskSummary": "위험도 요약 ({STATUS_LABELS})",
    "keyFindings": ["주요 발견사항"],
    "recommendations": ["권장사항"],
    "confidence": 0.0-1.0 사이의 숫자
}}"""


def build_comprehensive_prompt(personal_info: dict, analyses: dict) -> str:
    """`analyses` maps kind tag to its (repaired) result."""
    sections = "\n\n".join(
        f"{kind} 분석 결과:\n{json.dumps(result, ensure_ascii=False, indent=2)}"
        for kind, result in analyses.items()
    )
    return f"""모든 분석 결과를 종합하여 최종 건강 리포트를 작성하세요.

대상자 정보:
{_format_person(personal_info)}

{sections}

다음 JSON 형식으로만 응답하세요:
{{
    "overallScore": 0-100 사이의 정수,
    "healthStatus": "{STATUS_LABELS}",
    "analysis": "종합 해석",
    "keyFindings": {{"strengths": ["강점"], "concerns": ["우려사항"]}},
    "problemAreas": [{{"area": "영역", "description": "설명"}}],
    "immediate": ["즉시 실천할 사항"],
    "shortTerm": ["1-4주 내 실천 사항"],
    "longTerm": ["장기 관리 사항"],
    "occupationalAnalysis": {{"impact": "직업 관련 영향"}},
    "followUpPlan": {{"nextMeasurement": "다음 측정 권장 시점"}}
}}"""


PROMPT_BUILDERS = {
    ResponseKind.EEG: build_eeg_prompt,
    ResponseKind.PPG: build_ppg_prompt,
    ResponseKind.STRESS: build_stress_prompt,
    ResponseKind.MENTAL_HEALTH_RISK: build_mental_health_risk_prompt,
    ResponseKind.COMPREHENSIVE: build_comprehensive_prompt,
}

JSON_RULES = """
IMPORTANT: the previous response could not be parsed as JSON. Follow these rules strictly:
1. Output exactly one JSON object, starting with { and ending with }.
2. Do not wrap it in markdown code fences or add any text around it.
3. Escape every double quote inside string values as \\".
4. Do not put line breaks inside string values; use \\n instead.
5. No trailing commas before } or ].
6. Keep the response short enough to finish; close every bracket."""


def build_retry_prompt(prompt: str, previous_failure=None) -> str:
    """
    Augment a prompt with JSON-format rules after an unparseable attempt.

    `previous_failure` is a PreviousFailure (or None for the first attempt).
    """
    if previous_failure is None:
        return prompt

    detail = f"Previous attempt {previous_failure.attempt} failed: {previous_failure.message}"
    if previous_failure.line:
        detail += f" (line {previous_failure.line}, column {previous_failure.column})"
    return f"{prompt}\n{JSON_RULES}\n{detail}"


def complete_text(prompt: str, provider, config: AnalysisConfig) -> str:
    """
    Send one prompt to the LLM and return the raw completion.

    Raises the provider's LLMError family on call failures and
    EmptyCompletionError when the model returns nothing.
    """
    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
    text = provider.chat(
        messages,
        model=config.model,
        temperature=config.temperature,
        max_tokens=config.max_output_tokens,
        timeout=config.timeout_s,
    )
    if not text or not text.strip():
        raise EmptyCompletionError("LLM returned an empty completion")
    logger.debug("Received %d chars from %s", len(text), getattr(provider, "provider_name", "provider"))
    return text
