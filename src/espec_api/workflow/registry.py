"""Per-session store for in-progress workflow state (approval boards, resubmission drafts)."""

import threading
from typing import Any
from typing import Dict
from typing import Optional
from typing import Tuple

from loguru import logger

Key = Tuple[str, str, int]


class WorkflowRegistry:
    """Thread-safe map of (kind, session_id, project_id) -> workflow object."""

    def __init__(self):
        self._entries: Dict[Key, Any] = {}
        self._lock = threading.Lock()

    def get(self, kind: str, session_id: str, project_id: int) -> Optional[Any]:
        with self._lock:
            return self._entries.get((kind, session_id, project_id))

    def put(self, kind: str, session_id: str, project_id: int, workflow: Any) -> None:
        with self._lock:
            self._entries[(kind, session_id, project_id)] = workflow
        logger.debug("Workflow state stored", kind=kind, project_id=project_id)

    def discard(self, kind: str, session_id: str, project_id: int) -> None:
        with self._lock:
            self._entries.pop((kind, session_id, project_id), None)

    def discard_session(self, session_id: str) -> int:
        """Drop every entry of a session (logout); returns how many were removed."""
        with self._lock:
            keys = [k for k in self._entries if k[1] == session_id]
            for key in keys:
                del self._entries[key]
        return len(keys)
