"""
Prompt Parser - Multi-tier recovery of a PE2 prompt from model output.

Models are asked for a bare JSON object but often wrap it in prose or
markdown, leave trailing commas, or drop fields. Recovery runs in three
tiers, from most to least faithful:

1. strict JSON parse of the whole text
2. brace-span extraction with syntax repair, filling missing fields
   with fixed placeholders
3. per-field pattern extraction, filling missing fields from templates
   derived from the raw prompt

Only when no field at all can be recovered does parsing fail.
"""

import json
import re
from typing import Any, Tuple

from pe2.llm.errors import ParseError
from pe2.logger import get_logger
from pe2.schema import REQUIRED_FIELDS, PE2Prompt, PromptValidationError, normalize_field

logger = get_logger(__name__)

# Tier 2 fillers
PLACEHOLDERS = {
    "context": "No context provided",
    "role": "Expert assistant",
    "task": "Complete the requested task",
    "constraints": "Follow best practices",
    "output": "Provide appropriate output",
}

SOURCE_PREVIEW_CHARS = 200


def remove_trailing_commas(text: str) -> str:
    """
    Remove trailing commas before closing braces/brackets.

    Example: {"key": "value",} -> {"key": "value"}
    """
    return re.sub(r',(\s*[}\]])', r'\1', text)


def quote_keys(text: str) -> str:
    """
    Quote unquoted object keys.

    Example: {key: "value"} -> {"key": "value"}
    """
    return re.sub(r'([{,]\s*)([A-Za-z_]\w*)(\s*:)', r'\1"\2"\3', text)


def extract_brace_span(text: str) -> str:
    """
    Return the substring from the first '{' to the last '}'.

    Raises:
        ParseError: If the text holds no brace pair
    """
    first = text.find('{')
    last = text.rfind('}')
    if first == -1 or last <= first:
        raise ParseError("No JSON object found in response")
    return text[first:last + 1]


def source_templates(source_prompt: str) -> dict[str, str]:
    """Tier 3 fillers, derived from the raw prompt being optimized."""
    source = (source_prompt or "").strip()
    if source:
        preview = source[:SOURCE_PREVIEW_CHARS]
        ellipsis = "..." if len(source) > SOURCE_PREVIEW_CHARS else ""
        context = f"Context based on: {preview}{ellipsis}"
    else:
        context = "Context based on the user's request"
    return {
        "context": context,
        "role": "Expert assistant specialized in the given domain",
        "task": "Complete the task as described in the user's prompt",
        "constraints": "Ensure accuracy, clarity, and adherence to best practices",
        "output": "Deliver a comprehensive and well-structured response",
    }


def _load_object(text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except RecursionError as e:
        raise ParseError("JSON nesting too deep") from e
    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def strict_parse(text: str) -> PE2Prompt:
    """
    Tier 1: the whole text must be a JSON object with all five fields.

    Raises:
        ParseError: If the text is not a complete PE2 object
    """
    try:
        data = _load_object(text)
        return PE2Prompt.from_dict(data)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: line {e.lineno}: {e.msg}") from e
    except PromptValidationError as e:
        raise ParseError(str(e)) from e


def brace_extract_parse(text: str) -> Tuple[PE2Prompt, str]:
    """
    Tier 2: parse the outermost brace span after syntax repair.

    Returns:
        Tuple of (prompt, method) where method is "brace_extraction" when all
        fields were present and "field_validation" when placeholders were used

    Raises:
        ParseError: If no object can be loaded or it has none of the fields
    """
    candidate = remove_trailing_commas(extract_brace_span(text))
    try:
        data = _load_object(candidate)
    except json.JSONDecodeError:
        try:
            data = _load_object(quote_keys(candidate))
        except json.JSONDecodeError as e:
            raise ParseError(f"JSON extraction failed: line {e.lineno}: {e.msg}") from e

    values = {name: normalize_field(name, data.get(name)) for name in REQUIRED_FIELDS}
    missing = [name for name, value in values.items() if value is None]
    if len(missing) == len(REQUIRED_FIELDS):
        raise ParseError("Extracted object has none of the PE2 fields")

    for name in missing:
        values[name] = PLACEHOLDERS[name]
    method = "field_validation" if missing else "brace_extraction"
    return PE2Prompt(**values), method


def _field_patterns(name: str) -> list[re.Pattern]:
    key = re.escape(name)
    return [
        re.compile(rf'"{key}"\s*:\s*"((?:[^"\\]|\\.)*)"', re.IGNORECASE),
        re.compile(rf"'{key}'\s*:\s*'([^']*)'", re.IGNORECASE),
        re.compile(rf'\b{key}\s*:\s*"([^"]*)"', re.IGNORECASE),
        re.compile(rf"\*\*{key}:?\*\*:?[ \t]*([^\n*]+)", re.IGNORECASE),
        re.compile(rf"^[ \t#>*-]*{key}[ \t]*:[ \t]*(\S[^\n]*)$", re.IGNORECASE | re.MULTILINE),
    ]


_PATTERNS = {name: _field_patterns(name) for name in REQUIRED_FIELDS}


def _unescape(value: str) -> str:
    try:
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value


def extract_field(text: str, name: str) -> str | None:
    """Return the first match for ``name`` across the field patterns."""
    for index, pattern in enumerate(_PATTERNS[name]):
        match = pattern.search(text)
        if match and match.group(1).strip():
            value = match.group(1).strip()
            # First pattern captures a JSON string body
            return _unescape(value) if index == 0 else value
    return None


def field_extraction_parse(text: str, source_prompt: str = "") -> PE2Prompt:
    """
    Tier 3: pull fields out one by one with textual patterns.

    Raises:
        ParseError: If not a single field is found
    """
    found = {name: extract_field(text, name) for name in REQUIRED_FIELDS}
    if not any(found.values()):
        raise ParseError("No PE2 fields found in response")

    fillers = source_templates(source_prompt)
    values = {name: found[name] or fillers[name] for name in REQUIRED_FIELDS}
    return PE2Prompt(**values)


def parse_prompt_with_method(raw_text: str, source_prompt: str = "") -> Tuple[PE2Prompt | None, str]:
    """
    Recover a PE2 prompt, reporting which tier succeeded.

    Args:
        raw_text: Model output
        source_prompt: The raw prompt being optimized (feeds tier 3 fillers)

    Returns:
        Tuple of (prompt, method). method is one of "strict",
        "brace_extraction", "field_validation", "field_extraction", or ""
        together with a None prompt when every tier failed.
    """
    text = raw_text or ""

    try:
        return strict_parse(text), "strict"
    except ParseError as e:
        logger.debug("parse.strict.failed", reason=str(e))

    try:
        return brace_extract_parse(text)
    except ParseError as e:
        logger.debug("parse.brace.failed", reason=str(e))

    try:
        return field_extraction_parse(text, source_prompt), "field_extraction"
    except ParseError as e:
        logger.warning("parse.failed", reason=str(e), response_chars=len(text))

    return None, ""


def parse_prompt(raw_text: str, source_prompt: str = "") -> PE2Prompt | None:
    """Recover a PE2 prompt from model output; None when irrecoverable."""
    prompt, _ = parse_prompt_with_method(raw_text, source_prompt)
    return prompt
