"""
Plan parsing with a single repair pass.

The reasoning service is asked for a bare JSON object, but replies often
arrive wrapped in prose or code fences, with smart quotes, single quotes,
trailing commas or Python literals. parse_plan() tries a strict decode
first and, when that fails, one best-effort repair over a few candidate
extractions. Anything that still does not decode into a plan yields None,
which the loop records as an empty plan.
"""

import json
import re
from typing import Any, Iterator

import structlog

from agentloop.core.domain.errors import PlanParseError
from agentloop.core.domain.events import Plan, ToolCall

logger = structlog.get_logger().bind(component="plan_parser")

_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)```", re.DOTALL)

_SMART_QUOTES = str.maketrans({
    "“": '"',
    "”": '"',
    "„": '"',
    "«": '"',
    "»": '"',
    "‘": "'",
    "’": "'",
    "‚": "'",
})

_PYTHON_LITERALS = {"True": "true", "False": "false", "None": "null"}


def parse_plan(raw: str | None) -> Plan | None:
    """
    Decode a reasoning-service reply into a Plan.

    Args:
        raw: Raw reply text

    Returns:
        Plan with at least one tool call, or None when the reply cannot be
        decoded into one.
    """
    if not raw or not raw.strip():
        return None

    text = raw.strip()
    try:
        plan = to_plan(strict_decode(text), raw)
        if plan is not None:
            return plan
    except PlanParseError:
        pass

    for candidate in extract_candidates(text):
        try:
            data = json.loads(repair_json(candidate))
        except ValueError:
            continue
        plan = to_plan(data, raw, repaired=True)
        if plan is not None:
            logger.debug("plan_repaired", calls=len(plan.tool_calls))
            return plan

    logger.debug("plan_unparsable", preview=text[:120])
    return None


def strict_decode(text: str) -> Any:
    """
    Decode text as JSON without any repair.

    Raises:
        PlanParseError: If the text is not valid JSON.
    """
    try:
        return json.loads(text)
    except ValueError as e:
        raise PlanParseError(f"Reply is not valid JSON: {e}") from e


def extract_candidates(text: str) -> Iterator[str]:
    """
    Yield substrings that may hold the plan object, most specific first:
    fenced blocks, balanced top-level objects, the first-{ to last-} slice,
    and finally the whole text.
    """
    seen: set[str] = set()

    def fresh(candidate: str) -> bool:
        candidate = candidate.strip()
        if not candidate or candidate in seen:
            return False
        seen.add(candidate)
        return True

    for match in _FENCE_PATTERN.finditer(text):
        if fresh(match.group(1)):
            yield match.group(1).strip()

    for candidate in balanced_objects(text):
        if fresh(candidate):
            yield candidate

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start and fresh(text[start : end + 1]):
        yield text[start : end + 1]

    if fresh(text):
        yield text.strip()


def balanced_objects(text: str) -> Iterator[str]:
    """Yield each top-level {...} span, ignoring braces inside string literals."""
    depth = 0
    start = -1
    quote: str | None = None
    escaped = False

    for index, char in enumerate(text):
        if quote:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == quote:
                quote = None
            continue

        if char == '"' or (char == "'" and depth > 0):
            quote = char
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start : index + 1]


def repair_json(text: str) -> str:
    """
    Normalise common near-JSON defects.

    Converts smart quotes to ASCII, single-quoted strings to double-quoted
    ones, Python literals (True/False/None) to JSON, and drops trailing
    commas before a closing bracket. String contents are left untouched.
    """
    text = text.translate(_SMART_QUOTES)
    out: list[str] = []
    index = 0
    length = len(text)

    while index < length:
        char = text[index]

        if char == '"':
            end = _string_end(text, index, '"')
            out.append(text[index:end])
            index = end
        elif char == "'":
            end = _string_end(text, index, "'")
            closed = end <= length and end - 1 > index and text[end - 1] == "'"
            inner = text[index + 1 : end - 1] if closed else text[index + 1 : end]
            inner = inner.replace("\\'", "'").replace('"', '\\"')
            out.append(f'"{inner}"')
            index = end
        elif char.isalpha() or char == "_":
            end = index
            while end < length and (text[end].isalnum() or text[end] == "_"):
                end += 1
            word = text[index:end]
            out.append(_PYTHON_LITERALS.get(word, word))
            index = end
        elif char == ",":
            lookahead = index + 1
            while lookahead < length and text[lookahead].isspace():
                lookahead += 1
            if lookahead >= length or text[lookahead] not in "}]":
                out.append(char)
            index += 1
        else:
            out.append(char)
            index += 1

    return "".join(out)


def _string_end(text: str, start: int, quote: str) -> int:
    """Index just past the closing quote (or len(text) when unterminated)."""
    index = start + 1
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text[index] == quote:
            return index + 1
        index += 1
    return len(text)


def to_plan(data: Any, raw: str, repaired: bool = False) -> Plan | None:
    """
    Validate decoded JSON as a plan.

    Accepts {"tool_calls": [{"name": ..., "args": {...}}, ...]} with the
    aliases tool/arguments/parameters and the OpenAI nested "function"
    shape. Returns None for anything else.
    """
    if not isinstance(data, dict):
        return None

    calls = data.get("tool_calls")
    if not isinstance(calls, list) or not calls:
        return None

    tool_calls = []
    for call in calls:
        tool_call = _to_tool_call(call)
        if tool_call is None:
            return None
        tool_calls.append(tool_call)

    return Plan(tool_calls=tool_calls, raw=raw, repaired=repaired)


def _to_tool_call(call: Any) -> ToolCall | None:
    if not isinstance(call, dict):
        return None
    if isinstance(call.get("function"), dict):
        call = call["function"]

    name = call.get("name", call.get("tool"))
    if not isinstance(name, str) or not name.strip():
        return None

    args = call.get("args", call.get("arguments", call.get("parameters")))
    if args is None:
        args = {}
    if isinstance(args, str):
        try:
            args = json.loads(args) if args.strip() else {}
        except ValueError:
            return None
    if not isinstance(args, dict):
        return None

    return ToolCall(name=name.strip(), args=args)
