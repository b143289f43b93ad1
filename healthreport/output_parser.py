"""
Output Parser — Locate JSON payloads inside LLM responses.

LLM completions wrap their JSON in markdown fences, prefix it with
commentary, or get cut off mid-object. extract_candidates() yields one
substring per matching pattern, from the most to the least specific, so the
pipeline can try the high-confidence candidates first.
"""

import json
import re
from dataclasses import dataclass


@dataclass(frozen=True)
class Candidate:
    """A substring of a completion believed to hold a JSON object."""
    text: str
    pattern_index: int
    pattern_name: str


# Ordered from highest to lowest confidence. Group 1 is the payload when present.
EXTRACTION_PATTERNS = [
    ("json_fence", re.compile(r"```json\s*\n(.*?)\n\s*```", re.DOTALL)),
    ("json_fence_inline", re.compile(r"```json(.*?)```", re.DOTALL)),
    ("generic_fence", re.compile(r"```[^\n`]*\n(.*?)\n\s*```", re.DOTALL)),
    ("generic_fence_inline", re.compile(r"```(.*?)```", re.DOTALL)),
    ("json_label", re.compile(r"^json[ \t]*\n(.*)", re.IGNORECASE | re.MULTILINE | re.DOTALL)),
    ("brace_region", re.compile(r"\{.*\}", re.DOTALL)),
    ("whole_text", re.compile(r".+", re.DOTALL)),
]


def extract_candidates(raw: str | None):
    """
    Yield candidate JSON substrings of a raw completion.

    Each pattern contributes at most one Candidate (its first match).
    Patterns that don't match are skipped. Yields nothing for empty input.
    """
    if not raw or not raw.strip():
        return

    for index, (name, pattern) in enumerate(EXTRACTION_PATTERNS, start=1):
        match = pattern.search(raw)
        if not match:
            continue
        text = match.group(1) if pattern.groups else match.group(0)
        if not text.strip():
            continue
        yield Candidate(text=text, pattern_index=index, pattern_name=name)


def try_parse_object(text: str) -> dict | None:
    """Parse text as JSON, returning the value only if it is an object."""
    try:
        result = json.loads(text)
    except (ValueError, TypeError, RecursionError):
        return None
    if isinstance(result, dict):
        return result
    return None
