"""
JSON extraction - recovers a JSON object from free-text model output.

Stages, each usable on its own:
    strip_code_fence -> extract_brace_block -> json.loads
    -> repair_json_text -> json.loads
"""

import json
import re
from typing import Any, Dict, Optional

from ..errors import ParseError

CODE_FENCE_PATTERN = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
BRACE_BLOCK_PATTERN = re.compile(r"\{[\s\S]*\}")
TRAILING_COMMA_PATTERN = re.compile(r",(\s*[\]}])")
CONTROL_CHAR_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F]")

PARSE_FAILURE_MESSAGE = "Failed to parse AI response"


def strip_code_fence(text: str) -> Optional[str]:
    """Return the interior of the first ``` block, or None if there is none."""
    match = CODE_FENCE_PATTERN.search(text)
    return match.group(1).strip() if match else None


def extract_brace_block(text: str) -> str:
    """Narrow text to the span from the first '{' to the last '}'."""
    match = BRACE_BLOCK_PATTERN.search(text)
    return match.group(0) if match else text


def repair_json_text(text: str) -> str:
    """Best-effort fixes for the usual model mistakes."""
    fixed = TRAILING_COMMA_PATTERN.sub(r"\1", text)
    fixed = CONTROL_CHAR_PATTERN.sub("", fixed)
    return fixed.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except ValueError:
        return None


def parse_model_json(text: str) -> Dict[str, Any]:
    """
    Parse a model response into a JSON object.

    Args:
        text: Raw model output, possibly wrapped in markdown fences

    Returns:
        The decoded object

    Raises:
        ParseError: If no JSON object can be recovered
    """
    if not isinstance(text, str) or not text.strip():
        raise ParseError(PARSE_FAILURE_MESSAGE)

    json_str = strip_code_fence(text)
    if json_str is None:
        json_str = extract_brace_block(text)

    result = _loads(json_str)
    if result is None:
        result = _loads(repair_json_text(json_str))

    if not isinstance(result, dict):
        raise ParseError(PARSE_FAILURE_MESSAGE)
    return result
