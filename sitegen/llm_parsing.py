from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from sitegen.models import GenerationResult
from sitegen.validators import RESULT_FIELDS, invalid_fields

log = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "Website generated successfully"
FENCED_BLOCKS_DESCRIPTION = "Generated website from code blocks"
CODE_FIELDS = ("html", "css", "js")

# Models routinely put raw newlines inside JSON strings; accept them.
_decoder = json.JSONDecoder(strict=False)


class ParseFailure(ValueError):
    """No decode tier could recover html or css from the model reply."""


@dataclass(frozen=True)
class ExtractionAttempt:
    tier: str
    fields: Dict[str, str] = field(default_factory=dict)


def _loads(text: str) -> Any:
    return _decoder.decode(text)


def _result_fields(doc: Dict[str, Any]) -> Dict[str, str]:
    bad = invalid_fields(doc)
    if bad:
        log.warning("Dropping non-string fields from decoded reply: %s", bad)
    return {k: doc[k] for k in RESULT_FIELDS if k in doc and k not in bad}


def _strip_outer_fence(text: str) -> str:
    t = text.strip()
    if t[:7].lower() == "```json":
        t = t[7:]
    elif t.startswith("```"):
        t = t[3:]
    if t.endswith("```"):
        t = t[:-3]
    return t.strip()


def _strict_json(text: str) -> Optional[ExtractionAttempt]:
    """Whole reply (minus an outer fence) is one JSON object."""
    candidate = _strip_outer_fence(text)
    if not candidate:
        return None
    try:
        doc = _loads(candidate)
    except ValueError:
        return None
    if not isinstance(doc, dict):
        return None
    return ExtractionAttempt("strict_json", _result_fields(doc))


_JSON_FENCE_RE = re.compile(r"```json[^\S\n]*\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_BARE_FENCE_RE = re.compile(r"```[^\S\n]*\n(.*?)```", re.DOTALL)
# Braces inside these fences belong to markup, styles or scripts.
_LANGUAGE_FENCE_RE = re.compile(r"```(?:html|css|javascript|js)\b.*?```", re.IGNORECASE | re.DOTALL)


def _balanced_objects(s: str) -> Iterator[str]:
    """Yield each top-level brace-balanced {...} slice, string-aware."""
    depth = 0
    start = -1
    in_str = False
    esc = False
    for i, ch in enumerate(s):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"' and depth > 0:
            in_str = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield s[start : i + 1]


def _fenced_json(text: str) -> Optional[ExtractionAttempt]:
    """A JSON object embedded somewhere in prose or in a fenced block."""
    candidates = [m.group(1) for m in _JSON_FENCE_RE.finditer(text)]
    outside_code = _LANGUAGE_FENCE_RE.sub("", text)
    candidates.extend(m.group(1) for m in _BARE_FENCE_RE.finditer(outside_code))
    candidates.extend(_balanced_objects(outside_code))
    for candidate in candidates:
        try:
            doc = _loads(candidate.strip())
        except ValueError:
            continue
        if not isinstance(doc, dict):
            continue
        fields = _result_fields(doc)
        if _has_markup(fields):
            return ExtractionAttempt("fenced_json", fields)
    return None


_FENCE_PATTERNS: Dict[str, "re.Pattern[str]"] = {
    "html": re.compile(r"```html\b[^\S\n]*\n?(.*?)```", re.IGNORECASE | re.DOTALL),
    "css": re.compile(r"```css\b[^\S\n]*\n?(.*?)```", re.IGNORECASE | re.DOTALL),
    "js": re.compile(r"```(?:javascript|js)\b[^\S\n]*\n?(.*?)```", re.IGNORECASE | re.DOTALL),
}


def _fenced_field(text: str, name: str) -> Optional[str]:
    m = _FENCE_PATTERNS[name].search(text)
    if not m:
        return None
    return m.group(1).strip()


def _has_markup(fields: Dict[str, str]) -> bool:
    return bool(fields.get("html") or fields.get("css"))


def _fenced_blocks(text: str) -> Optional[ExtractionAttempt]:
    """One fenced block per language instead of a JSON object."""
    fields: Dict[str, str] = {}
    for name in CODE_FIELDS:
        value = _fenced_field(text, name)
        if value is not None:
            fields[name] = value
    if not _has_markup(fields):
        return None
    fields["description"] = FENCED_BLOCKS_DESCRIPTION
    return ExtractionAttempt("fenced_blocks", fields)


# A value either closes normally or runs off the end of a truncated reply.
_FIELD_PATTERNS: Dict[str, "re.Pattern[str]"] = {
    name: re.compile(r'"%s"\s*:\s*"((?:[^"\\]|\\.)*)(?:"|\\?\Z)' % name, re.DOTALL)
    for name in RESULT_FIELDS
}
_JSON_KEY_RE = re.compile(r'"(?:html|css|js)"\s*:')
_TRAILING_ESCAPE_RE = re.compile(r"\\(?:u[0-9a-fA-F]{0,3})?\Z")
_SIMPLE_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", '"': '"', "\\": "\\", "/": "/"}


def _unescape(raw: str) -> str:
    try:
        return _loads('"' + raw + '"')
    except ValueError:
        pass
    cleaned = _TRAILING_ESCAPE_RE.sub("", raw)
    try:
        return _loads('"' + cleaned + '"')
    except ValueError:
        return _SIMPLE_ESCAPE_RE.sub(lambda m: _SIMPLE_ESCAPES.get(m.group(1), m.group(1)), cleaned)


def _regex_field(text: str, name: str) -> Optional[str]:
    m = _FIELD_PATTERNS[name].search(text)
    if not m:
        return None
    return _unescape(m.group(1))


def _field_regex(text: str) -> Optional[ExtractionAttempt]:
    """Per-field recovery from JSON that is broken near its tail."""
    if "{" not in text or not _JSON_KEY_RE.search(text):
        return None
    fields: Dict[str, str] = {}
    for name in CODE_FIELDS:
        value = _regex_field(text, name)
        if value is None:
            value = _fenced_field(text, name)
        if value is not None:
            fields[name] = value
    description = _regex_field(text, "description")
    if description is not None:
        fields["description"] = description
    if not _has_markup(fields):
        return None
    return ExtractionAttempt("field_regex", fields)


TIERS: Tuple[Callable[[str], Optional[ExtractionAttempt]], ...] = (
    _strict_json,
    _fenced_json,
    _fenced_blocks,
    _field_regex,
)


def extract(text: str) -> Optional[ExtractionAttempt]:
    """Run the decode tiers in order; first acceptable attempt wins."""
    for tier in TIERS:
        attempt = tier(text)
        if attempt is not None:
            return attempt
    return None


def normalize_reply(text: str, policy: str = "lenient") -> GenerationResult:
    """Turn a raw model reply into a GenerationResult or raise ParseFailure.

    policy="lenient" defaults any unrecovered code field to an empty string;
    policy="strict" fails unless html, css and js were all recovered.
    """
    if policy not in {"lenient", "strict"}:
        raise ValueError(f"unknown field policy: {policy!r}")
    raw = text or ""
    attempt = extract(raw)
    if attempt is None:
        log.warning("Failed to parse AI response; raw reply: %s", raw[:500])
        raise ParseFailure("no decode tier recovered html or css")

    missing = [name for name in CODE_FIELDS if name not in attempt.fields]
    if missing and policy == "strict":
        log.warning("AI response missing %s (tier=%s); raw reply: %s", missing, attempt.tier, raw[:500])
        raise ParseFailure(f"reply is missing required fields: {', '.join(missing)}")
    log.info("Parsed AI response tier=%s missing=%s", attempt.tier, missing)

    fields = attempt.fields
    return GenerationResult(
        html=fields.get("html", ""),
        css=fields.get("css", ""),
        js=fields.get("js", ""),
        description=fields.get("description") or DEFAULT_DESCRIPTION,
    )
