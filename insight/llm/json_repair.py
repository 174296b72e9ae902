"""
JSON Extraction and Repair

LLMs asked for JSON frequently wrap it in Markdown fences, surround it
with prose, or emit near-JSON (smart quotes, single quotes, trailing
commas, unquoted keys, raw newlines inside strings). The repair chain
here recovers the intended value when it can and fails loudly when it
cannot, so callers can decide whether to re-ask the model.

Stages, each applied on top of the previous one and followed by a parse
attempt:
1. Strip Markdown code fences
2. Extract the object or array embedded in prose (longest parseable span)
3. Escape control characters inside string values
4. Normalize quoting (smart quotes, trailing commas, unquoted keys,
   single-quoted strings)
"""

import json
import logging
import re
from typing import Any, Callable, List, Tuple


logger = logging.getLogger(__name__)


FENCE_PATTERN = re.compile(r'```(?:json|JSON)?\s*(.*?)\s*```', re.DOTALL)
TRAILING_COMMA_PATTERN = re.compile(r',\s*([}\]])')
UNQUOTED_KEY_PATTERN = re.compile(r'([{,]\s*)([A-Za-z_][\w\-]*)\s*:')
SINGLE_QUOTED_PATTERN = re.compile(r"'((?:[^'\\]|\\.)*)'")

SMART_QUOTES = {
    '“': '"',
    '”': '"',
    '‘': "'",
    '’': "'",
}

_CONTROL_ESCAPES = {
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '\b': '\\b',
    '\f': '\\f',
}


class JSONRepairError(ValueError):
    """Raised when no stage of the repair chain yields valid JSON."""
    pass


def strip_code_fences(text: str) -> str:
    """Return the body of the first Markdown code fence, or the text."""
    match = FENCE_PATTERN.search(text)
    if match:
        return match.group(1)
    return text


def _balanced_span(text: str, start: int) -> str:
    """Span from ``start`` to its matching close bracket.

    Brackets inside strings are ignored. Falls back to the last closing
    bracket of the same kind when nesting never closes.
    """
    closer = '}' if text[start] == '{' else ']'
    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == '\\':
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char in '{[':
            depth += 1
        elif char in '}]':
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    end = text.rfind(closer)
    if end > start:
        return text[start:end + 1]
    return text[start:]


def extract_json_span(text: str) -> str:
    """Cut the text down to the JSON object or array it carries.

    Candidate spans start at the first ``{`` and at the first ``[``. The
    longest candidate that parses wins, so a bracketed citation such as
    ``[1]`` in surrounding prose does not shadow the real payload. When
    no candidate parses the longest one is returned for the later stages
    to repair.
    """
    starts = [i for i in (text.find('{'), text.find('[')) if i != -1]
    if not starts:
        return text

    spans = sorted((_balanced_span(text, start) for start in starts), key=len, reverse=True)
    for span in spans:
        if is_valid_json(span):
            return span
    return spans[0]


def escape_control_characters(text: str) -> str:
    """Escape raw control characters that appear inside JSON strings.

    Newlines between tokens are valid JSON and are left alone.
    """
    result = []
    in_string = False
    escape_next = False

    for char in text:
        if escape_next:
            result.append(char)
            escape_next = False
            continue

        if char == '\\':
            result.append(char)
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            result.append(char)
            continue

        if in_string and char in _CONTROL_ESCAPES:
            result.append(_CONTROL_ESCAPES[char])
        else:
            result.append(char)

    return ''.join(result)


def normalize_quoting(text: str) -> str:
    """Fix common near-JSON quoting mistakes."""
    for smart, plain in SMART_QUOTES.items():
        text = text.replace(smart, plain)

    text = TRAILING_COMMA_PATTERN.sub(r'\1', text)
    text = UNQUOTED_KEY_PATTERN.sub(r'\1"\2":', text)

    if "'" in text:
        text = SINGLE_QUOTED_PATTERN.sub(_single_to_double, text)

    return text


def _single_to_double(match) -> str:
    inner = match.group(1).replace("\\'", "'").replace('"', '\\"')
    return f'"{inner}"'


REPAIR_STAGES: List[Tuple[str, Callable[[str], str]]] = [
    ("strip_code_fences", strip_code_fences),
    ("extract_json_span", extract_json_span),
    ("escape_control_characters", escape_control_characters),
    ("normalize_quoting", normalize_quoting),
]


def repair_json(text: str) -> Any:
    """Parse text as JSON, running the repair chain when needed.

    Args:
        text: Raw model output

    Returns:
        The decoded JSON value

    Raises:
        JSONRepairError: If no stage produces valid JSON

    Example:
        >>> repair_json('```json\\n{"a":1}\\n```')
        {'a': 1}
    """
    if text is None:
        raise JSONRepairError("No text to parse")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    candidate = text
    for stage_name, stage in REPAIR_STAGES:
        candidate = stage(candidate)
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        logger.debug(f"Recovered JSON after {stage_name}")
        return value

    raise JSONRepairError(f"No valid JSON found in text: {text[:200]!r}")


def is_valid_json(text: str) -> bool:
    """True when the text parses as JSON without any repair."""
    try:
        json.loads(text)
    except (TypeError, json.JSONDecodeError):
        return False
    return True
