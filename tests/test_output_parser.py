"""Tests for healthreport/output_parser.py"""

import dataclasses

import pytest

from healthreport.output_parser import (
    EXTRACTION_PATTERNS,
    Candidate,
    extract_candidates,
    try_parse_object,
)


def names(raw):
    return [c.pattern_name for c in extract_candidates(raw)]


class TestExtractCandidates:
    def test_json_fence_first(self):
        raw = 'Here is the result:\n```json\n{"score": 72}\n```'
        first = next(extract_candidates(raw))
        assert first.pattern_index == 1
        assert first.pattern_name == "json_fence"
        assert first.text == '{"score": 72}'

    def test_plain_fence(self):
        raw = 'Result:\n```\n{"score": 1}\n```'
        candidates = list(extract_candidates(raw))
        assert candidates[0].pattern_name == "generic_fence"
        assert candidates[0].text == '{"score": 1}'

    def test_inline_json_fence(self):
        raw = '```json {"score": 1} ```'
        candidates = list(extract_candidates(raw))
        assert candidates[0].pattern_name == "json_fence_inline"
        assert candidates[0].text.strip() == '{"score": 1}'

    def test_json_label_line(self):
        raw = 'json\n{"score": 3}'
        assert "json_label" in names(raw)
        label = next(c for c in extract_candidates(raw) if c.pattern_name == "json_label")
        assert label.text == '{"score": 3}'

    def test_brace_region_is_greedy(self):
        raw = 'prefix {"a": {"b": 1}} suffix'
        region = next(c for c in extract_candidates(raw) if c.pattern_name == "brace_region")
        assert region.text == '{"a": {"b": 1}}'

    def test_whole_text_is_last(self):
        raw = "no json here"
        candidates = list(extract_candidates(raw))
        assert len(candidates) == 1
        assert candidates[0].pattern_name == "whole_text"
        assert candidates[0].text == raw

    def test_at_most_one_candidate_per_pattern(self):
        raw = '```json\n{"a": 1}\n```\n```json\n{"b": 2}\n```'
        found = names(raw)
        assert len(found) == len(set(found))
        assert next(extract_candidates(raw)).text == '{"a": 1}'

    def test_candidates_in_pattern_order(self):
        raw = 'Here:\n```json\n{"score": 1}\n```\nthanks'
        indexes = [c.pattern_index for c in extract_candidates(raw)]
        assert indexes == sorted(indexes)
        assert indexes[-1] == len(EXTRACTION_PATTERNS)

    def test_empty_input_yields_nothing(self):
        assert list(extract_candidates("")) == []
        assert list(extract_candidates("   \n ")) == []
        assert list(extract_candidates(None)) == []

    def test_deterministic(self, malformed_corpus):
        for raw in malformed_corpus:
            assert list(extract_candidates(raw)) == list(extract_candidates(raw))

    def test_lazy(self):
        gen = extract_candidates('{"a": 1}')
        assert isinstance(next(gen), Candidate)

    def test_candidate_is_immutable(self):
        candidate = next(extract_candidates('{"a": 1}'))
        with pytest.raises(dataclasses.FrozenInstanceError):
            candidate.text = "other"


class TestTryParseObject:
    def test_object(self):
        assert try_parse_object('{"key": "value"}') == {"key": "value"}

    def test_array_is_rejected(self):
        assert try_parse_object("[1, 2]") is None

    def test_scalar_is_rejected(self):
        assert try_parse_object("42") is None
        assert try_parse_object('"text"') is None

    def test_malformed_returns_none(self):
        assert try_parse_object('{"key": value}') is None

    def test_none_returns_none(self):
        assert try_parse_object(None) is None

    def test_escaped_quotes(self):
        result = try_parse_object('{"key": "value with \\"quotes\\""}')
        assert result == {"key": 'value with "quotes"'}

    def test_oversized_integer_returns_none(self):
        assert try_parse_object('{"score": ' + "9" * 5000 + "}") is None
