"""
Iteration history formatting.

Raw history entries are written by the loop in the order things happen.
For the instruction payload they are regrouped per iteration (ascending)
and laid out in a fixed order inside each iteration so the reasoning
service always reads them the same way.

Edit-style tool results echo the whole edit request back; they are
replaced by a condensed summary to keep the payload bounded.
"""

from collections import defaultdict
from typing import Any, Iterable

from agentloop.core.context.serializer import MAX_DEPTH, serialize
from agentloop.core.domain.events import ToolResult
from agentloop.core.domain.models import HistoryEntryType, IterationHistoryEntry

ITERATION_DELIMITER = "\n\n---\n\n"
NO_HISTORY = "No iterative history available"

CONDENSED_RESULT_TOOLS = frozenset({
    "executeMarkdownEdits",
    "executeYAMLEdits",
    "executeTextFileEdits",
})

# Display order within one iteration, with the heading used for each type.
_SECTION_ORDER: list[tuple[HistoryEntryType, str | None]] = [
    (HistoryEntryType.THOUGHT_SUMMARY, None),
    (HistoryEntryType.PLAN, "**AI Plan**:"),
    (HistoryEntryType.PREVIOUS_TOOL_RESULT, "**Previous Tool Results**:"),
    (HistoryEntryType.TOOL_RESULT, "**Tool Results**:"),
    (HistoryEntryType.USER_REPLY, "**User Reply**:"),
]


def format_history(entries: Iterable[IterationHistoryEntry]) -> str:
    """
    Group raw entries by iteration and render them for the dynamic context.

    Within an iteration: thought summary, plan, carried-over results, tool
    results, then the user reply. Entries of the same type keep their
    append order.
    """
    groups: dict[int, dict[HistoryEntryType, list[str]]] = defaultdict(lambda: defaultdict(list))
    for entry in entries:
        groups[entry.iteration][entry.entry_type].append(entry.content)

    if not groups:
        return NO_HISTORY

    rendered = []
    for iteration in sorted(groups):
        group = groups[iteration]
        parts = [f"### Iteration {iteration}:"]
        for entry_type, heading in _SECTION_ORDER:
            contents = group.get(entry_type)
            if not contents:
                continue
            if heading is None:
                parts.extend(contents)
            elif entry_type is HistoryEntryType.USER_REPLY:
                parts.append(f"{heading} " + "\n".join(contents))
            else:
                parts.append(f"{heading}\n" + "\n".join(contents))
        rendered.append("\n\n".join(parts))

    return ITERATION_DELIMITER.join(rendered)


def summarize_tool_result(result: ToolResult) -> Any:
    """
    Return the payload to show for a tool result.

    Edit tools get a condensed summary (outcome, counts, duration); all
    other results pass through unchanged.
    """
    if result.name not in CONDENSED_RESULT_TOOLS:
        return result.result if result.success else None

    payload = result.result if isinstance(result.result, dict) else {}
    applied = payload.get("appliedIntents", payload.get("applied", []))
    failed = payload.get("failedIntents", payload.get("failed", []))
    metadata = payload.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}

    summary: dict[str, Any] = {
        "success": result.success,
        "applied_count": _count(applied),
        "failed_count": _count(failed),
        "duration_ms": metadata.get("executionTime", result.duration_ms),
    }
    if failed and isinstance(failed, list):
        first = failed[0]
        if isinstance(first, dict) and first.get("error"):
            summary["first_error"] = first["error"]
    if not result.success and result.error:
        summary["error"] = result.error
    return summary


def _count(value: Any) -> int:
    if isinstance(value, (list, tuple, dict)):
        return len(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return 0


def render_tool_results(results: Iterable[ToolResult], max_depth: int | None = None) -> str:
    """Render the results of one iteration as a bullet list via the serializer."""
    blocks = []
    for result in results:
        record = result.to_dict()
        if result.name in CONDENSED_RESULT_TOOLS:
            record.pop("error", None)
            record["result"] = summarize_tool_result(result)
        blocks.append(serialize(record, max_depth=max_depth if max_depth is not None else MAX_DEPTH))
    return "\n".join(blocks)
