"""
JSON Sanitizer — Repair near-valid JSON produced by LLMs.

Applies a fixed, ordered battery of textual repairs (fences, control
characters and stray quotes inside strings, comma defects, truncation) and
reports which ones changed the text. The only hard guarantee: when
`success` is True, `sanitized_text` parses with json.loads.
"""

import json
import re
from dataclasses import dataclass

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}
_STRUCTURAL = ":,}]"
_WHITESPACE = " \t\r\n"

_FENCE_OPEN = re.compile(r"^```[A-Za-z]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*$")
_JSON_LABEL = re.compile(r"^json[ \t]*\n", re.IGNORECASE)
_MISSING_COMMA = re.compile(r'("|\d|\}|\]|\btrue|\bfalse|\bnull)([ \t]*\r?\n\s*)(?=["{\[])')
_DANGLING_KEY = re.compile(r',?\s*"[^"\n]*"\s*:\s*$')


@dataclass(frozen=True)
class SanitizationResult:
    """Outcome of sanitize_json(). Never mutates or aliases its input."""
    success: bool
    sanitized_text: str
    applied_fixes: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


def sanitize_json(text: str) -> SanitizationResult:
    """
    Repair common JSON syntax defects in an LLM response fragment.

    Fixes, in order (each recorded by identifier only if it changed the text):
    trim_whitespace, strip_markdown_fence, strip_leading_prose,
    escape_control_chars, escape_inner_quotes, insert_missing_commas,
    remove_duplicate_commas, remove_trailing_commas, repair_truncation.

    Never raises; parse failures are reported in `errors`.
    """
    if not isinstance(text, str):
        return SanitizationResult(
            success=False,
            sanitized_text="",
            errors=(f"Expected str, got {type(text).__name__}",),
        )

    fixes = []
    warnings = []

    sanitized = text.strip()
    if sanitized != text:
        fixes.append("trim_whitespace")

    unfenced = _strip_markdown_fence(sanitized)
    if unfenced != sanitized:
        fixes.append("strip_markdown_fence")
        sanitized = unfenced

    start = sanitized.find("{")
    if start > 0 and not sanitized.startswith("["):
        sanitized = sanitized[start:]
        fixes.append("strip_leading_prose")

    sanitized, count = _escape_control_chars(sanitized)
    if count:
        fixes.append("escape_control_chars")
        warnings.append(f"Escaped {count} control character(s) inside strings")

    sanitized, count = _escape_inner_quotes(sanitized)
    if count:
        fixes.append("escape_inner_quotes")
        warnings.append(f"Escaped {count} unescaped quote(s) inside strings")

    sanitized, count = _MISSING_COMMA.subn(r"\1,\2", sanitized)
    if count:
        fixes.append("insert_missing_commas")
        warnings.append(f"Inserted {count} missing comma(s)")

    sanitized, duplicates, trailing = _clean_commas(sanitized)
    if duplicates:
        fixes.append("remove_duplicate_commas")
    if trailing:
        fixes.append("remove_trailing_commas")

    if is_truncated(sanitized) and not _parses(sanitized):
        repaired = repair_truncated_json(sanitized)
        if repaired != sanitized:
            fixes.append("repair_truncation")
            warnings.append("Unbalanced brackets, response looks truncated")
            sanitized, _, trailing = _clean_commas(repaired)
            if trailing and "remove_trailing_commas" not in fixes:
                fixes.append("remove_trailing_commas")

    try:
        json.loads(sanitized)
    except (ValueError, RecursionError) as e:
        return SanitizationResult(
            success=False,
            sanitized_text=sanitized,
            applied_fixes=tuple(fixes),
            errors=(_describe_error(sanitized, e),),
            warnings=tuple(warnings),
        )

    return SanitizationResult(
        success=True,
        sanitized_text=sanitized,
        applied_fixes=tuple(fixes),
        warnings=tuple(warnings),
    )


def is_truncated(text: str) -> bool:
    """True if brace or bracket counts are unbalanced."""
    return text.count("{") != text.count("}") or text.count("[") != text.count("]")


def repair_truncated_json(text: str) -> str:
    """
    Best-effort recovery of a completion cut off mid-stream.

    Drops the trailing incomplete line (or, for single-line text, cuts back
    to the last comma outside a string), removes a dangling key and
    trailing comma, then appends the missing `]` and `}` in that order.
    The result always has balanced `{}` and `[]` counts; it may still fail
    to parse.
    """
    repaired = text.rstrip()
    lines = repaired.split("\n")

    if lines and not lines[-1].rstrip().endswith(("}", "]", ",")):
        if len(lines) > 1:
            lines.pop()
            repaired = "\n".join(lines).rstrip()
        else:
            cut = _last_structural_comma(repaired)
            if cut != -1:
                repaired = repaired[:cut]
            elif _ends_inside_string(repaired):
                repaired += '"'

    repaired = _strip_trailing_comma(repaired)
    repaired = _DANGLING_KEY.sub("", repaired).rstrip()
    repaired = _strip_trailing_comma(repaired)

    repaired = _drop_surplus_closers(repaired, "{", "}")
    repaired = _drop_surplus_closers(repaired, "[", "]")

    repaired += "]" * (repaired.count("[") - repaired.count("]"))
    repaired += "}" * (repaired.count("{") - repaired.count("}"))
    return repaired


def locate_position(text: str, pos: int) -> tuple[int, int]:
    """Convert a character offset into a 1-based (line, column) pair."""
    pos = max(0, min(pos, len(text)))
    line = text.count("\n", 0, pos) + 1
    column = pos - (text.rfind("\n", 0, pos) + 1) + 1
    return line, column


def analyze_json_error(text: str) -> dict | None:
    """
    Describe why text fails to parse, for logging.

    Returns {"line", "column", "message", "context"} or None if it parses.
    """
    try:
        json.loads(text)
    except json.JSONDecodeError as e:
        line, column = locate_position(text, e.pos)
        return {
            "line": line,
            "column": column,
            "message": e.msg,
            "context": text[max(0, e.pos - 50):e.pos + 50],
        }
    except (ValueError, RecursionError) as e:
        return {"line": 0, "column": 0, "message": str(e), "context": ""}
    return None


# --- Helpers ---

def _strip_markdown_fence(text: str) -> str:
    stripped = _FENCE_OPEN.sub("", text, count=1)
    stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    stripped = _JSON_LABEL.sub("", stripped, count=1)
    return stripped.strip()


def _escape_control_chars(text: str) -> tuple[str, int]:
    out = []
    count = 0
    in_string = False
    escaped = False

    for ch in text:
        if in_string:
            if ch in _CONTROL_ESCAPES:
                out.append(_CONTROL_ESCAPES[ch])
                escaped = False
                count += 1
                continue
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        out.append(ch)

    return "".join(out), count


def _closes_string(text: str, start: int) -> bool:
    # A quote closes its string if what follows is structural, a line break, or the end.
    j = start
    while j < len(text) and text[j] in _WHITESPACE:
        if text[j] in "\r\n":
            return True
        j += 1
    return j >= len(text) or text[j] in _STRUCTURAL


def _escape_inner_quotes(text: str) -> tuple[str, int]:
    out = []
    count = 0
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if not in_string:
            if ch == '"':
                in_string = True
            out.append(ch)
            continue

        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == '"':
            if _closes_string(text, i + 1):
                in_string = False
            else:
                out.append('\\"')
                count += 1
                continue
        out.append(ch)

    return "".join(out), count


def _next_significant(text: str, start: int) -> str:
    j = start
    while j < len(text) and text[j] in _WHITESPACE:
        j += 1
    return text[j] if j < len(text) else ""


def _clean_commas(text: str) -> tuple[str, int, int]:
    """Drop duplicate commas and commas directly before a closer, outside strings."""
    out = []
    duplicates = 0
    trailing = 0
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ",":
            following = _next_significant(text, i + 1)
            if following == ",":
                duplicates += 1
                continue
            if following and following in "}]":
                trailing += 1
                continue
        out.append(ch)

    return "".join(out), duplicates, trailing


def _last_structural_comma(text: str) -> int:
    last = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == ",":
            last = i
    return last


def _ends_inside_string(text: str) -> bool:
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
    return in_string


def _strip_trailing_comma(text: str) -> str:
    text = text.rstrip()
    if text.endswith(","):
        text = text[:-1].rstrip()
    return text


def _parses(text: str) -> bool:
    try:
        json.loads(text)
    except (ValueError, RecursionError):
        return False
    return True


def _drop_surplus_closers(text: str, opener: str, closer: str) -> str:
    while text.count(closer) > text.count(opener):
        idx = text.rfind(closer)
        text = text[:idx] + text[idx + 1:]
    return text


def _describe_error(text: str, error: Exception) -> str:
    if isinstance(error, json.JSONDecodeError):
        line, column = locate_position(text, error.pos)
        return f"JSON parse failed: {error.msg} (line {line}, column {column})"
    return f"JSON parse failed: {error}"
