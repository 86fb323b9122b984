"""
State Manager Protocol

Persistent storage for suspended runs. A suspended run is plain JSON-able
data (see ExecutionState.to_dict), so any key-value store works.
"""

from typing import Any, Protocol


class StateManagerProtocol(Protocol):
    """Persistence for suspended execution state, keyed by session id."""

    async def save_state(self, session_id: str, state_data: dict[str, Any]) -> bool:
        """
        Save session state.

        Returns:
            True if the state was written
        """
        ...

    async def load_state(self, session_id: str) -> dict[str, Any] | None:
        """
        Load session state.

        Returns:
            The stored data, or None when the session does not exist
        """
        ...

    async def delete_state(self, session_id: str) -> None:
        """Delete session state. Missing sessions are ignored."""
        ...
