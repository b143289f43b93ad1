"""Tests for healthreport/fallback.py"""

import pytest

from healthreport.errors import EmptyCompletionError
from healthreport.fallback import MAX_ANALYSIS_CHARS, build_fallback_response, extract_fallback_fields
from healthreport.schemas import DEFAULT_STATUS, ResponseKind, validate_response


class TestExtractFallbackFields:
    def test_english_labels(self):
        found = extract_fallback_fields('"score": 77, "status": "good"')
        assert found == {"score": 77.0, "status": "good"}

    def test_korean_labels(self):
        found = extract_fallback_fields("점수: 85, 상태: 양호")
        assert found["score"] == 85.0
        assert found["status"] == "양호"

    def test_analysis_value(self):
        found = extract_fallback_fields('{"analysis": "Focus is above average", "score": 1')
        assert found["analysis"] == "Focus is above average"

    def test_long_quoted_text_truncated(self):
        long_text = "가" * 600
        found = extract_fallback_fields(f'The model wrote "{long_text}" and stopped')
        assert found["analysis"] == long_text[:MAX_ANALYSIS_CHARS] + "..."

    def test_short_quotes_ignored(self):
        assert "analysis" not in extract_fallback_fields('He said "hello" once')

    def test_nothing_found(self):
        assert extract_fallback_fields("no structure here") == {}


class TestBuildFallbackResponse:
    def test_prose_only(self):
        result = build_fallback_response("I cannot produce JSON for this measurement.", "eeg")
        assert validate_response(result, "eeg").critical_count == 0
        assert result["status"] == DEFAULT_STATUS

    def test_score_extracted(self):
        result = build_fallback_response("Overall the score: 58 looks moderate.", "eeg")
        assert result["score"] == 58
        assert isinstance(result["score"], int)

    def test_score_clamped(self):
        result = build_fallback_response('"score": 150, "status": "good"', ResponseKind.PPG)
        assert result["score"] == 100
        assert result["status"] == "good"

    def test_comprehensive_maps_roles(self):
        result = build_fallback_response('"overallScore": 66, "healthStatus": "보통"', "comprehensive")
        assert result["overallScore"] == 66
        assert result["healthStatus"] == "보통"
        assert result["immediate"] == []

    def test_mental_health_has_no_score_field(self):
        result = build_fallback_response('"score": 40, "status": "주의"', "mentalHealthRisk")
        assert "score" not in result
        assert result["riskSummary"] == "주의"
        assert validate_response(result, "mentalHealthRisk").is_valid

    def test_every_kind_satisfies_contract(self):
        for kind in ResponseKind:
            result = build_fallback_response("garbage ~~~ {{ ]]", kind)
            assert validate_response(result, kind).critical_count == 0

    def test_empty_raises(self):
        with pytest.raises(EmptyCompletionError):
            build_fallback_response("", "eeg")
        with pytest.raises(ValueError):
            build_fallback_response("   \n", "eeg")
