"""Session-scoped artifact cache kept outside the compiler core."""

from __future__ import annotations

import threading
from collections import OrderedDict

from apmlc.render.models import CompilationArtifact


class SessionArtifactCache:
    """Last artifact per session; last writer wins, oldest session evicted first."""

    def __init__(self, max_sessions: int) -> None:
        if max_sessions <= 0:
            raise ValueError("max_sessions must be positive")
        self.max_sessions = max_sessions
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, CompilationArtifact] = OrderedDict()

    def put(self, session_id: str, artifact: CompilationArtifact) -> None:
        with self._lock:
            self._entries[session_id] = artifact
            self._entries.move_to_end(session_id)
            while len(self._entries) > self.max_sessions:
                self._entries.popitem(last=False)

    def get(self, session_id: str) -> CompilationArtifact | None:
        with self._lock:
            return self._entries.get(session_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
