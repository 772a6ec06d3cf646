"""
Staged recovery of JSON from model responses.

Stages run in order and each only runs if the previous one failed:

1. Parse the text directly.
2. Strip code fences and parse the substring between the first opening and
   the last closing bracket.
3. Apply textual repairs to that substring and parse again.

Every repair is idempotent: running it on already-repaired text leaves the
text unchanged.
"""

from typing import Any, List, Optional
import json
import logging
import re

from automation.errors import JSONRecoveryError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```[a-zA-Z0-9_-]*")
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

_CLOSERS = {"{": "}", "[": "]"}
_VALUE_ENDS = ("string", "}", "]")
_VALUE_STARTS = ("string", "{", "[")


def strip_fences(text: str) -> str:
    """Remove markdown code fences."""
    return _FENCE.sub("", text).strip()


def _first_opener(text: str) -> int:
    positions = [p for p in (text.find("{"), text.find("[")) if p != -1]
    return min(positions) if positions else -1


def extract_json_candidate(text: str) -> Optional[str]:
    """
    Return the substring between the first opening and last closing bracket.

    Returns None when the text holds no bracketed region.
    """
    cleaned = strip_fences(text)
    start = _first_opener(cleaned)
    end = max(cleaned.rfind("}"), cleaned.rfind("]"))
    if start == -1 or end <= start:
        return None
    return cleaned[start:end + 1]


def _scan(text: str):
    """
    Walk the text tracking string state.

    Yields (index, char, in_string) for every character.
    """
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
                yield i, ch, False
                continue
            yield i, ch, True
        else:
            if ch == '"':
                in_string = True
            yield i, ch, False


def _tokens(text: str):
    """
    Yield (start, end, kind) for the structural tokens of the text.

    A whole string literal is one token of kind "string". Brackets, commas
    and colons are their own kind; any other non-whitespace character is
    "other".
    """
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            j = i + 1
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            end = min(j + 1, n)
            yield i, end, "string"
            i = end
            continue
        if not ch.isspace():
            yield i, i + 1, ch if ch in "{}[],:" else "other"
        i += 1


def _insert_missing_commas(text: str) -> str:
    """Insert a comma between a closing token and the start of the next element."""
    inserts = []
    prev = None
    for _, end, kind in _tokens(text):
        if prev is not None and prev[1] in _VALUE_ENDS and kind in _VALUE_STARTS:
            inserts.append(prev[0])
        prev = (end, kind)
    if not inserts:
        return text
    parts, last = [], 0
    for pos in inserts:
        parts.append(text[last:pos])
        parts.append(",")
        last = pos
    parts.append(text[last:])
    return "".join(parts)


def _remove_trailing_commas(text: str) -> str:
    drops = set()
    prev = None
    for start, _, kind in _tokens(text):
        if prev is not None and prev[1] == "," and kind in ("}", "]"):
            drops.add(prev[0])
        prev = (start, kind)
    if not drops:
        return text
    return "".join(ch for i, ch in enumerate(text) if i not in drops)


def _strip_control_chars(text: str) -> str:
    out = []
    for _, ch, in_string in _scan(text):
        if in_string and ch in "\n\r\t":
            out.append(" ")
        else:
            out.append(ch)
    return _CONTROL_CHARS.sub("", "".join(out))


def _open_stack(text: str) -> List[str]:
    stack: List[str] = []
    for _, ch, in_string in _scan(text):
        if in_string:
            continue
        if ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]" and stack and _CLOSERS[stack[-1]] == ch:
            stack.pop()
    return stack


def _ends_in_string(text: str) -> bool:
    state = False
    for _, _, in_string in _scan(text):
        state = in_string
    return state


def _drop_truncated_tail(text: str) -> str:
    """Cut an evidently truncated trailing element after the last comma."""
    body = text.rstrip()
    in_string = _ends_in_string(body)
    if not in_string and body.endswith(("}", "]")):
        return body
    cut = -1
    for i, ch, inside in _scan(body):
        if ch == "," and not inside:
            cut = i
    if cut == -1:
        return body + '"' if in_string else body
    return body[:cut]


def balance_brackets(text: str) -> str:
    """
    Append the closers missing from a truncated document.

    A trailing element cut off mid-way is discarded first.
    """
    if not _open_stack(text):
        return text
    body = _drop_truncated_tail(text)
    stack = _open_stack(body)
    return body + "".join(_CLOSERS[ch] for ch in reversed(stack))


def repair_json(text: str) -> str:
    """
    Apply the textual repairs.

    - remove trailing commas before a closing bracket
    - insert a missing comma between a closing token and the next element
      (string contents are never touched)
    - remove unescaped control characters
    - balance brackets, discarding a truncated trailing element

    Parameters
    ----------
    text : str
        Candidate JSON text

    Returns
    -------
    str
        Repaired text
    """
    repaired = _strip_control_chars(text)
    repaired = _insert_missing_commas(repaired)
    repaired = balance_brackets(repaired)
    repaired = _remove_trailing_commas(repaired)
    return repaired


def parse_json_response(text: str, label: str = "response") -> Any:
    """
    Parse a model response as JSON, recovering from common malformations.

    Parameters
    ----------
    text : str
        Raw response text
    label : str
        Name used in log and error messages

    Returns
    -------
    Any
        Parsed JSON value

    Raises
    ------
    JSONRecoveryError
        If no stage produces valid JSON
    """
    if text is None:
        raise JSONRecoveryError(f"{label} JSON parse failed: empty response", raw="")

    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        pass

    candidate = extract_json_candidate(text)
    if candidate is not None:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass

    # Truncated output may have no closing bracket at all
    cleaned = strip_fences(text)
    start = _first_opener(cleaned)
    if start == -1:
        logger.warning(f"{label}: no JSON object found in {len(text)} characters")
        raise JSONRecoveryError(f"{label} JSON parse failed: no valid JSON object found", raw=text)
    source = candidate if candidate is not None and not _open_stack(candidate) else cleaned[start:]

    repaired = repair_json(source)
    try:
        result = json.loads(repaired)
    except json.JSONDecodeError as e:
        logger.warning(
            f"{label}: JSON repair failed at line {e.lineno} col {e.colno} "
            f"(response length {len(text)})"
        )
        raise JSONRecoveryError(f"{label} JSON parse failed after repair: {e.msg}", raw=text) from e

    logger.debug(f"{label}: recovered JSON after textual repair")
    return result


__all__ = [
    "parse_json_response",
    "repair_json",
    "extract_json_candidate",
    "strip_fences",
    "balance_brackets",
]
