"""
Built-in tool definitions.

These tools are handled by the execution loop itself rather than the tool
registry: recordThought writes to working memory, askQuestion suspends the
run, finalAnswer completes it. Their schemas are advertised next to the
registered tools so the reasoning service can plan with them.
"""

from typing import Any

from agentloop.core.domain.models import ThinkingType

RECORD_THOUGHT = "recordThought"
ASK_QUESTION = "askQuestion"
FINAL_ANSWER = "finalAnswer"

BUILTIN_TOOL_NAMES = frozenset({RECORD_THOUGHT, ASK_QUESTION, FINAL_ANSWER})

RECORD_THOUGHT_SCHEMA: dict[str, Any] = {
    "name": RECORD_THOUGHT,
    "description": (
        "Record a structured thought about your own reasoning. Recorded thoughts "
        "are shown back to you on later iterations under YOUR PREVIOUS THOUGHTS."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "thinkingType": {
                "type": "string",
                "enum": [t.value for t in ThinkingType],
                "description": "Kind of thinking being recorded",
            },
            "content": {
                "type": ["object", "string"],
                "description": "The thought itself, free text or structured keys",
            },
            "nextSteps": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Planned actions, in order",
            },
            "context": {
                "type": "string",
                "description": "What prompted this thought",
            },
        },
        "required": ["thinkingType", "content"],
    },
}

ASK_QUESTION_SCHEMA: dict[str, Any] = {
    "name": ASK_QUESTION,
    "description": (
        "Ask the user a question and pause until they answer. Calls listed after "
        "this one in the same plan are not executed."
    ),
    "parameters": {
        "type": "object",
        "properties": {
            "question": {"type": "string", "description": "Question for the user"},
        },
        "required": ["question"],
    },
}

FINAL_ANSWER_SCHEMA: dict[str, Any] = {
    "name": FINAL_ANSWER,
    "description": "Finish the task and report what was done.",
    "parameters": {
        "type": "object",
        "properties": {
            "summary": {"type": "string", "description": "Short summary of the outcome"},
            "result": {"type": "object", "description": "Optional structured result"},
        },
        "required": ["summary"],
    },
}

BUILTIN_SCHEMAS: list[dict[str, Any]] = [
    RECORD_THOUGHT_SCHEMA,
    ASK_QUESTION_SCHEMA,
    FINAL_ANSWER_SCHEMA,
]


def builtin_openai_schemas() -> list[dict[str, Any]]:
    """Return the built-in tools in OpenAI function-calling format."""
    return [{"type": "function", "function": dict(schema)} for schema in BUILTIN_SCHEMAS]
