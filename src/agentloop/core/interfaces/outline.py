"""
Document Outline Provider Protocol

Supplies the structure of the document an agent works on. Only consulted
for agent categories that need it.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class OutlineProviderProtocol(Protocol):
    """Returns a document outline (or an empty string)."""

    async def get_outline(self, document_path: str | None) -> str:
        ...
