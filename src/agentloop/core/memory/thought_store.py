"""
Thought Store - working memory of an agent's own reasoning.

Keeps the structured thought records an agent writes via the recordThought
tool, grouped by agent id, newest first and capped at MAX_RECORDS. The
formatted view is injected into the next instruction payload: the most
recent records are shown in full, older ones are compressed so the payload
stays bounded over many iterations.

Lifecycle:
- cleared exactly once at the start of a fresh run
- kept intact across suspend/resume of the same run (the loop object is
  rebuilt on resume, so the store must outlive it; see get_thought_store)

The store performs no per-key locking. Callers guarantee at most one
in-flight run per agent id.
"""

import re
from datetime import datetime, timezone
from typing import Any

import structlog

from agentloop.core.domain.models import ThoughtRecord

KEY_LABELS = {
    "problem": "Problem",
    "solution": "Solution",
    "approach": "Approach",
    "strategy": "Strategy",
    "requirements": "Requirements",
    "constraints": "Constraints",
    "assumptions": "Assumptions",
    "risks": "Risks",
    "benefits": "Benefits",
    "alternatives": "Alternatives",
    "dependencies": "Dependencies",
    "timeline": "Timeline",
    "resources": "Resources",
}

GUIDANCE_BLOCK = """**CRITICAL GUIDANCE**:
- **Continue** your work based on the above thoughts
- **Avoid** repeating analysis you have already completed
- **Focus** on the next actions from your most recent thinking
- **Build upon** your previous insights rather than starting over
"""


class ThoughtStore:
    """Keyed, size-capped store of ThoughtRecords."""

    MAX_RECORDS = 10
    FULL_DETAIL_RECORDS = 3
    MAX_KEYS = 3
    MAX_TEXT_LENGTH = 100
    MAX_LIST_ITEMS = 5

    def __init__(self):
        self._records: dict[str, list[ThoughtRecord]] = {}
        self.logger = structlog.get_logger().bind(component="thought_store")

    def record(self, agent_id: str, thought: ThoughtRecord) -> None:
        """Prepend a thought and keep only the MAX_RECORDS most recent."""
        thoughts = self._records.setdefault(agent_id, [])
        thoughts.insert(0, thought)
        del thoughts[self.MAX_RECORDS:]

        self.logger.info(
            "thought_recorded",
            agent_id=agent_id,
            kind=thought.kind.value,
            thought_id=thought.id,
            count=len(thoughts),
        )

    def clear(self, agent_id: str) -> None:
        """Drop every record for an agent. Only for fresh runs."""
        removed = len(self._records.pop(agent_id, []))
        self.logger.info("thoughts_cleared", agent_id=agent_id, removed=removed)

    def count(self, agent_id: str) -> int:
        return len(self._records.get(agent_id, []))

    def all_counts(self) -> dict[str, int]:
        return {agent_id: len(thoughts) for agent_id, thoughts in self._records.items()}

    def get(self, agent_id: str) -> list[ThoughtRecord]:
        """Return the records for an agent, newest first."""
        return list(self._records.get(agent_id, []))

    def formatted(self, agent_id: str) -> str:
        """
        Render an agent's records as guidance text for the next prompt.

        Returns:
            Empty string when there are no records, otherwise the record
            blocks (newest first) followed by the guidance block.
        """
        thoughts = self._records.get(agent_id, [])
        if not thoughts:
            return ""

        total = len(thoughts)
        plural = "s" if total > 1 else ""
        header = (
            f"**Working Memory**: You have {total} previous thought record{plural} "
            "from your earlier iterations. Review them to maintain thinking continuity."
        )

        blocks = [
            self._format_thought(thought, total - index, index < self.FULL_DETAIL_RECORDS)
            for index, thought in enumerate(thoughts)
        ]
        return f"{header}\n\n" + "\n---\n".join(blocks) + f"\n{GUIDANCE_BLOCK}"

    def _format_thought(self, thought: ThoughtRecord, number: int, full_detail: bool) -> str:
        if thought.next_steps:
            steps = thought.next_steps if full_detail else self._clip_list(thought.next_steps)
            planned = " -> ".join(steps)
        else:
            planned = "No specific next steps defined"

        return (
            f"## Thought in Iteration {number}: {thought.kind.value.upper()}\n\n"
            f"- **Context**: {thought.context or 'No specific context provided'}\n"
            f"- **Analysis**: {self._format_content(thought.content, full_detail)}\n"
            f"- **Planned Actions**: {planned}\n"
            f"- **Recorded**: {relative_time(thought.recorded_at)}\n"
            f"- **ID**: `{thought.id}`\n"
        )

    def _format_content(self, content: Any, full_detail: bool) -> str:
        if isinstance(content, str):
            return content if full_detail else self._clip_text(content)

        if isinstance(content, dict):
            entries = [
                f"{format_key(key)}: {self._format_value(value, full_detail)}"
                for key, value in content.items()
            ]
            if not full_detail and len(entries) > self.MAX_KEYS:
                remaining = len(entries) - self.MAX_KEYS
                entries = entries[: self.MAX_KEYS] + [f"... ({remaining} more items)"]
            return "\n  - " + "\n  - ".join(entries) if entries else "Empty object"

        return str(content)

    def _format_value(self, value: Any, full_detail: bool) -> str:
        if isinstance(value, str):
            return value if full_detail else self._clip_text(value)

        if isinstance(value, (list, tuple)):
            if not value:
                return "None specified"
            items = [str(item) for item in value]
            return ", ".join(items if full_detail else self._clip_list(items))

        if isinstance(value, dict):
            return "{" + ", ".join(str(key) for key in value) + "}" if value else "Empty object"

        return str(value)

    def _clip_text(self, text: str) -> str:
        if len(text) > self.MAX_TEXT_LENGTH:
            return f"{text[: self.MAX_TEXT_LENGTH]}..."
        return text

    def _clip_list(self, items: Any) -> list[str]:
        items = [str(item) for item in items]
        if len(items) > self.MAX_LIST_ITEMS:
            remaining = len(items) - self.MAX_LIST_ITEMS
            return items[: self.MAX_LIST_ITEMS] + [f"... ({remaining} more items)"]
        return items


def format_key(key: str) -> str:
    """Turn a content key into a readable label (camelCase/snake_case split)."""
    label = KEY_LABELS.get(key.lower())
    if label:
        return label
    words = re.sub(r"([a-z0-9])([A-Z])", r"\1 \2", key).replace("_", " ").strip().lower()
    return words[:1].upper() + words[1:]


def relative_time(timestamp: str, now: datetime | None = None) -> str:
    """Describe an ISO timestamp relative to now ("Just now", "5 minutes ago")."""
    try:
        recorded = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    if recorded.tzinfo is None:
        recorded = recorded.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    minutes = int((now - recorded).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return recorded.strftime("%Y-%m-%d %H:%M UTC")


_shared_store: ThoughtStore | None = None


def get_thought_store() -> ThoughtStore:
    """Return the process-wide store shared by every loop instance."""
    global _shared_store
    if _shared_store is None:
        _shared_store = ThoughtStore()
    return _shared_store


__all__ = [
    "GUIDANCE_BLOCK",
    "ThoughtStore",
    "format_key",
    "get_thought_store",
    "relative_time",
]
