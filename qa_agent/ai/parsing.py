"""Tolerant JSON extraction from model output."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

# First fenced block, optionally tagged json; content is non-greedy.
_FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")


def extract_json_text(text: str) -> str:
    """Return the fenced block content if present, otherwise the trimmed text."""
    text = text.strip()
    match = _FENCE_PATTERN.search(text)
    if match and match.group(1):
        logger.debug("Stripped markdown code fences from AI response")
        return match.group(1).strip()
    return text


def parse_json_from_markdown(text: Any) -> Optional[Any]:
    """Parse JSON from raw model text, or return None. Never raises."""
    if not isinstance(text, str):
        logger.error("AI response is not text (got %s)", type(text).__name__)
        return None

    json_text = extract_json_text(text)
    if not json_text:
        logger.error("Could not find any JSON content to parse from the AI response.")
        return None

    try:
        return json.loads(json_text)
    except json.JSONDecodeError:
        pass

    fixed = _TRAILING_COMMA.sub(r"\1", json_text)
    try:
        return json.loads(fixed)
    except json.JSONDecodeError as e:
        logger.error(
            "Final parsing attempt also failed. The AI response was not valid JSON: %s", e
        )
        logger.debug("Text that failed to parse:\n%s", fixed[:2000])
        return None
