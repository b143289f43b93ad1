"""Shared test fixtures for the healthreport test suite."""

import json

import pytest

from healthreport.config import AnalysisConfig
from healthreport.report_store import InMemoryReportStore


EEG_RESPONSE = {
    "score": 72,
    "status": "양호",
    "analysis": "집중력과 이완 상태가 균형을 이루고 있습니다.",
    "keyMetrics": {"focusIndex": "평균 이상"},
    "recommendations": ["규칙적인 수면"],
    "concerns": [],
}

PPG_RESPONSE = {
    "score": 64,
    "status": "보통",
    "analysis": "심박변이도가 연령 평균보다 약간 낮습니다.",
    "recommendations": ["유산소 운동"],
    "concerns": ["HRV 저하"],
}

MENTAL_HEALTH_RESPONSE = {
    "overallAssessment": "전반적으로 안정적인 상태입니다.",
    "riskSummary": "보통",
    "keyFindings": ["경미한 스트레스 반응"],
    "recommendations": ["휴식 시간 확보"],
    "confidence": 0.8,
}

COMPREHENSIVE_RESPONSE = {
    "overallScore": 70,
    "healthStatus": "양호",
    "analysis": "종합적으로 양호한 상태입니다.",
    "keyFindings": {"strengths": ["집중력"], "concerns": ["HRV"]},
    "immediate": ["수분 섭취"],
    "shortTerm": ["주 3회 운동"],
    "longTerm": ["정기 측정"],
}


class MockProvider:
    """
    Deterministic mock LLM provider for testing.

    Returns queued responses in order (a str is returned, an Exception is
    raised); once the queue is empty, returns `default`.
    """

    provider_name = "MockProvider"
    chat_model = "mock-chat"

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default if default is not None else json.dumps(EEG_RESPONSE, ensure_ascii=False)
        self.calls = []

    def chat(self, messages: list[dict], model=None, temperature=0.7,
             max_tokens=8192, timeout=None) -> str:
        self.calls.append({
            "messages": messages,
            "model": model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": timeout,
        })
        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        return self.default

    @property
    def prompts(self) -> list[str]:
        return [c["messages"][-1]["content"] for c in self.calls]


class KindAwareProvider(MockProvider):
    """Answers with the canned response matching the prompt's kind."""

    def chat(self, messages, model=None, temperature=0.7, max_tokens=8192, timeout=None):
        super().chat(messages, model, temperature, max_tokens, timeout)
        prompt = messages[-1]["content"]
        if "모든 분석 결과를 종합" in prompt:
            body = COMPREHENSIVE_RESPONSE
        elif "정신건강 위험도" in prompt:
            body = MENTAL_HEALTH_RESPONSE
        elif "PPG(맥파)" in prompt:
            body = PPG_RESPONSE
        else:
            body = EEG_RESPONSE
        return "```json\n" + json.dumps(body, ensure_ascii=False) + "\n```"


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def kind_aware_provider():
    return KindAwareProvider()


@pytest.fixture
def fast_config():
    """Config with no backoff wait so retry tests run instantly."""
    return AnalysisConfig(max_attempts=3, retry_delay=0.0)


@pytest.fixture
def memory_store():
    return InMemoryReportStore()


@pytest.fixture
def personal_info():
    return {"name": "홍길동", "age": 34, "gender": "male", "occupation": "office_worker"}


@pytest.fixture
def measurement():
    return {
        "eeg": {"focusIndex": 71.0, "relaxationIndex": 66.0, "stressIndex": 42.0},
        "ppg": {"hrvRMSSD": 31.0, "restingHR": 72.0, "spo2": 98.0},
    }


@pytest.fixture
def loaded_db(kind_aware_provider, memory_store):
    """Shared resources dict in the shape get_db() returns."""
    return {"provider": kind_aware_provider, "store": memory_store}


# Malformed completions shared by the property tests.
MALFORMED_CORPUS = [
    "",
    " ",
    "{",
    "}",
    "[",
    "]]]}}}",
    '{"score": 80, "status": "good",',
    '{"score": 8',
    '{"analysis": "abc',
    '{"a": [1, 2, {"b": "c"',
    '{"a": 1,, "b": 2}',
    '{"a": 1, "b": [1, 2,],}',
    '{"analysis": "He said "hi" to me", "score": 50}',
    '{"analysis": "line one\nline two", "score": 1}',
    '```json\n{"score": 1,\n"status": "x"\n```',
    'json\n{"score": 3}',
    "Sure! Here you go:\n{\"score\": 5, \"status\": \"ok\"} hope it helps",
    "no json here at all",
    '{"key": "value" "other": 2}',
    '{"a": {"b": {"c": [1, 2, 3',
    '"just a string"',
    "[1, 2, 3]",
    "42",
    '{"emoji": "😀", "korean": "점수: 80"',
    "{{{{{{{{",
    '{"a": "\\',
    '{"score": 70,\n "status": "보통"\n "analysis": "x"\n}',
    '{"score": ' + "9" * 5000 + ', "status": "a"}',
    '{"x": ' + "[" * 600 + "]" * 600 + "}",
]


@pytest.fixture
def malformed_corpus():
    return list(MALFORMED_CORPUS)


@pytest.fixture
def make_provider():
    """Factory for a MockProvider with a scripted response queue."""
    return MockProvider


@pytest.fixture
def canned():
    """Canned analysis results keyed by kind tag."""
    return {
        "eeg": dict(EEG_RESPONSE),
        "ppg": dict(PPG_RESPONSE),
        "mentalHealthRisk": dict(MENTAL_HEALTH_RESPONSE),
        "comprehensive": dict(COMPREHENSIVE_RESPONSE),
    }
