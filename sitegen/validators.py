from __future__ import annotations

from typing import Any, Dict, List

from jsonschema.validators import Draft202012Validator

RESULT_FIELDS = ("html", "css", "js", "description")

RESULT_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {field: {"type": "string"} for field in RESULT_FIELDS},
}

_validator = Draft202012Validator(RESULT_SCHEMA)


def collect_errors(doc: Any) -> List[Dict[str, str]]:
    """
    Return a list of {"path": "...", "message": "..."} dicts for a decoded reply.
    Only the four result fields are checked; extra keys are ignored.
    """
    errors: List[Dict[str, str]] = []
    for err in _validator.iter_errors(doc):
        loc = ".".join(str(p) for p in err.path) or "(root)"
        errors.append({"path": loc, "message": str(err.message)})
    return errors


def invalid_fields(doc: Dict[str, Any]) -> List[str]:
    """Names of result fields present in doc with a non-string value."""
    bad = []
    for e in collect_errors(doc):
        if e["path"] in RESULT_FIELDS and e["path"] not in bad:
            bad.append(e["path"])
    return bad
