"""
Repair parser for inference responses.

The model is asked for a JSON object with a `mappings` array but does not
always deliver one: output is wrapped in code fences or prose, or cut off
mid-entry when it runs out of tokens. This module recovers as much of the
payload as possible before giving up.

Pipeline (first success wins):
    1. Strip a ```json fence (to end of text if the closing fence is missing)
    2. Slice from the first "{" to the last "}"
    3. Parse; on failure or a structurally incomplete payload, repair:
       a. trailing "}," → drop the comma, close array and object
       b. truncate after the last complete {"sourceField": ...} entry
       c. no "mappings" key at all → empty mappings object
    4. Parse the repaired text
    5. Regex the raw text for "mappings": [ ... ] and wrap it
    6. ResponseParseError
"""

import json
import re
from typing import Any, Optional
import structlog

from exceptions import ResponseParseError

logger = structlog.get_logger(__name__)


CLOSING_TOKENS = "\n  ]\n}"
EMPTY_MAPPINGS = '{"mappings":[]}'

JSON_FENCE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
JSON_FENCE_OPEN = re.compile(r"```json\s*([\s\S]*)", re.IGNORECASE)
ANY_FENCE = re.compile(r"```\s*([\s\S]*?)\s*```")
ANY_FENCE_OPEN = re.compile(r"```\s*([\s\S]*)")

MAPPINGS_KEY = re.compile(r'"mappings"\s*:')
MAPPINGS_ARRAY = re.compile(r'"mappings"\s*:\s*\[(.*?)\]', re.DOTALL)
ENTRY_START = re.compile(r'\{\s*"sourceField"\s*:')

PREVIEW_CHARS = 200


def extract_json_text(text: Optional[str]) -> str:
    """
    Pull the JSON-looking part out of a model response.

    Handles ```json fences (closed or truncated), bare ``` fences and
    leading/trailing prose around an object.

    Args:
        text: Raw response text

    Returns:
        Candidate JSON text (may still be malformed)
    """
    json_text = (text or "").strip()

    if "```json" in json_text.lower():
        match = JSON_FENCE.search(json_text) or JSON_FENCE_OPEN.search(json_text)
        if match:
            json_text = match.group(1).strip()
    elif "```" in json_text:
        match = ANY_FENCE.search(json_text) or ANY_FENCE_OPEN.search(json_text)
        if match:
            json_text = match.group(1).strip()

    if json_text and not json_text.startswith("{") and "{" in json_text:
        start = json_text.index("{")
        end = json_text.rfind("}")
        # No closing brace after the start: keep the truncated tail for repair
        json_text = json_text[start:end + 1] if end > start else json_text[start:]

    return json_text


def parse_mapping_response(text: Optional[str]) -> dict[str, Any]:
    """
    Recover a mapping payload from raw response text.

    Args:
        text: Raw text returned by the inference call

    Returns:
        Parsed JSON object (expected to carry a `mappings` key)

    Raises:
        ResponseParseError: No structure could be recovered
    """
    raw = text or ""
    preview = raw[:PREVIEW_CHARS]

    if "{" not in raw:
        raise ResponseParseError("No JSON object in response", response_preview=preview)

    json_text = extract_json_text(raw)
    if not json_text:
        raise ResponseParseError("No JSON text after extraction", response_preview=preview)

    payload = _loads_object(json_text)
    if payload is not None and not _needs_repair(json_text):
        return payload

    repaired, strategy = _repair(json_text)
    payload = _loads_object(repaired)
    if payload is not None:
        logger.info("response_repaired", strategy=strategy, original_length=len(json_text))
        return payload

    # Last resort on the raw text, not the extracted candidate
    match = MAPPINGS_ARRAY.search(raw)
    if match:
        payload = _loads_object('{"mappings":[' + match.group(1) + "]}")
        if payload is not None:
            logger.info("response_repaired", strategy="mappings_regex", original_length=len(raw))
            return payload

    logger.warning(
        "response_unrepairable",
        length=len(raw),
        head=raw[:50],
        tail=raw[-50:]
    )
    raise ResponseParseError("Invalid JSON response from inference service", response_preview=preview)


# ===================
# REPAIR STRATEGIES
# ===================

def _needs_repair(json_text: str) -> bool:
    trimmed = json_text.strip()
    return (
        not trimmed.endswith("}")
        or trimmed.endswith("},")
        or not MAPPINGS_KEY.search(trimmed)
    )


def _repair(json_text: str) -> tuple[str, str]:
    """Return (repaired text, strategy name)."""
    trimmed = json_text.strip()

    if trimmed.endswith("},"):
        return trimmed[:-1] + CLOSING_TOKENS, "trailing_comma"

    if MAPPINGS_KEY.search(trimmed):
        end = last_complete_entry_end(trimmed)
        if end is not None:
            return trimmed[:end] + CLOSING_TOKENS, "truncate_after_last_entry"
        return trimmed, "none"

    return EMPTY_MAPPINGS, "empty_mappings"


def last_complete_entry_end(text: str) -> Optional[int]:
    """
    Find the end offset of the last complete mapping entry.

    Entries are {"sourceField": ...} objects; completeness is decided by a
    balanced-brace scan that ignores braces inside string literals. The
    scan stops at the first incomplete entry.

    Returns:
        Index just past the closing brace, or None if no entry is complete
    """
    last_end: Optional[int] = None
    position = 0

    while True:
        match = ENTRY_START.search(text, position)
        if match is None:
            break
        end = _balanced_object_end(text, match.start())
        if end is None:
            break
        last_end = end
        position = end

    return last_end


def _balanced_object_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index + 1

    return None


def _loads_object(text: str) -> Optional[dict[str, Any]]:
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return payload if isinstance(payload, dict) else None
