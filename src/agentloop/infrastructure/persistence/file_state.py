"""
File-based storage for suspended runs.

Each session is one JSON file in state_dir. Writes are serialised per
session with an asyncio.Lock and stamped with a _version that continues
from the stored file, plus an _updated_at timestamp.
"""

import asyncio
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

import aiofiles
import structlog


class FileStateManager:
    """Manages suspended state persistence with versioning and locks"""

    def __init__(self, state_dir: str | Path = "./.agentloop/states"):
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.locks: Dict[str, asyncio.Lock] = {}
        self.logger = structlog.get_logger().bind(component="file_state_manager")

    def _get_lock(self, session_id: str) -> asyncio.Lock:
        """Get or create a lock for a session"""
        if session_id not in self.locks:
            self.locks[session_id] = asyncio.Lock()
        return self.locks[session_id]

    def _state_file(self, session_id: str) -> Path:
        return self.state_dir / f"{session_id}.json"

    async def _read_payload(self, session_id: str) -> Optional[Dict[str, Any]]:
        state_file = self._state_file(session_id)
        if not state_file.exists():
            return None

        try:
            async with aiofiles.open(state_file, "r", encoding="utf-8") as f:
                payload = json.loads(await f.read())
        except (OSError, ValueError) as e:
            self.logger.error("state_load_failed", session_id=session_id, error=str(e))
            return None
        return payload if isinstance(payload, dict) else None

    async def save_state(self, session_id: str, state_data: Dict[str, Any]) -> bool:
        """
        Save state as JSON. Returns False on I/O errors.

        The caller's dict is not modified. _version is one more than the
        version currently on disk for the session (1 for a new session).
        """
        async with self._get_lock(session_id):
            previous = await self._read_payload(session_id)
            stored_version = (previous or {}).get("state_data", {}).get("_version", 0)

            record = dict(state_data)
            record["_version"] = int(stored_version) + 1
            record["_updated_at"] = datetime.now().isoformat()

            payload = {"session_id": session_id, "state_data": record}

            try:
                async with aiofiles.open(self._state_file(session_id), "w", encoding="utf-8") as f:
                    await f.write(json.dumps(payload, ensure_ascii=False, indent=2))
            except OSError as e:
                self.logger.error("state_save_failed", session_id=session_id, error=str(e))
                return False

            self.logger.info("state_saved", session_id=session_id, version=record["_version"])
            return True

    async def load_state(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Load state; None when the session does not exist or cannot be read."""
        payload = await self._read_payload(session_id)
        if payload is None:
            return None

        self.logger.info("state_loaded", session_id=session_id)
        return payload.get("state_data")

    async def delete_state(self, session_id: str) -> None:
        """Remove a session's state file if present."""
        async with self._get_lock(session_id):
            state_file = self._state_file(session_id)
            if state_file.exists():
                state_file.unlink()
                self.logger.info("state_deleted", session_id=session_id)
        self.locks.pop(session_id, None)
