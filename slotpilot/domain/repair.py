"""
Best-effort repair of truncated JSON returned by a generative model.

This is deliberately narrow: it assumes the model ran out of output budget,
so the damage is at the tail only. It closes what was left open and never
invents content inside the structure. It is not a general JSON recoverer.
"""

import json
import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# An escape sequence cut short: a lone backslash or an incomplete \uXXXX.
_PARTIAL_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{0,3})?")
_JSON_FENCE = re.compile(r"```json\n?")
_PLAIN_FENCE = re.compile(r"```\n?")


def strip_code_fences(text: str) -> str:
    """
    Remove Markdown code fences (```` ``` ```` or ```` ```json ````) around a payload.

    Text that does not start with a fence is only trimmed.
    """
    cleaned = text.strip()

    if cleaned.startswith("```json"):
        cleaned = _JSON_FENCE.sub("", cleaned).replace("```", "")
    elif cleaned.startswith("```"):
        cleaned = _PLAIN_FENCE.sub("", cleaned)

    return cleaned.strip()


def is_valid_json(text: str) -> bool:
    try:
        json.loads(text)
    except ValueError:
        return False
    return True


@dataclass(frozen=True)
class _TailState:
    in_string: bool
    escape_at: int | None  # index of the backslash opening the last escape
    missing_braces: int
    missing_brackets: int


def _scan(text: str) -> _TailState:
    """
    Walk the text once, tracking string state and structure depth.

    Braces and brackets inside string values are not counted.
    """
    in_string = False
    escape_at: int | None = None
    braces = brackets = 0

    i = 0
    while i < len(text):
        ch = text[i]
        if in_string:
            if ch == "\\":
                escape_at = i
                i += 2
                continue
            if ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch == "{":
            braces += 1
        elif ch == "}":
            braces -= 1
        elif ch == "[":
            brackets += 1
        elif ch == "]":
            brackets -= 1
        i += 1

    return _TailState(in_string, escape_at, braces, brackets)


def repair_json(text: str) -> str:
    """
    Close a JSON document that was cut off at the tail.

    Algorithm:
    1. Scan the text, counting unmatched braces and brackets outside
       strings and noting whether it ends inside an open string.
    2. If it ends inside a string, drop a dangling partial escape and
       add the closing quote.
    3. Add the missing braces, then the missing brackets.
    4. Keep the repaired text only if it now parses.

    Args:
        text: Payload with code fences already stripped

    Returns:
        The repaired text, or ``text`` unchanged if it was already valid
        or could not be fixed
    """
    if is_valid_json(text):
        return text

    state = _scan(text)

    fixed = text
    if state.in_string:
        if state.escape_at is not None and _PARTIAL_ESCAPE.fullmatch(fixed[state.escape_at:]):
            fixed = fixed[:state.escape_at]
        fixed += '"'
    fixed += "}" * max(state.missing_braces, 0)
    fixed += "]" * max(state.missing_brackets, 0)

    if fixed != text and is_valid_json(fixed):
        logger.debug("Repaired truncated JSON payload (%d chars appended)", len(fixed) - len(text))
        return fixed

    logger.warning("JSON repair failed, keeping raw text")
    return text
