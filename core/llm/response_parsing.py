"""Helpers for pulling JSON out of free-text LLM completions."""
import json
import re
from typing import Any, Dict

_FENCE_OPEN = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"\n?```\s*$")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```json ... ``` wrapper, if present."""
    cleaned = text.strip()
    cleaned = _FENCE_OPEN.sub("", cleaned)
    cleaned = _FENCE_CLOSE.sub("", cleaned)
    return cleaned.strip()


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the outermost JSON object in a completion.

    Raises:
        ValueError: no object found or the object is not valid JSON
    """
    cleaned = strip_code_fences(text)
    match = _JSON_OBJECT.search(cleaned)
    if not match:
        raise ValueError("No JSON object found in LLM response")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("LLM response JSON is not an object")
    return data
