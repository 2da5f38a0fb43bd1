"""In-memory storage — the last tier of every fallback chain.

Python dict-backed implementations of all three storage hooks. Data lives
only in memory and is lost on restart. Writes here cannot fail, which is
what makes this the tier the chain ends on.

Tier 2 service module: imports from guru.hooks.interfaces (Tier 1)
and guru.schemas (Tier 1).

Usage:
    from guru.hooks.memory import InMemoryProgressBackend

    backend = InMemoryProgressBackend()
    await backend.save_progress(progress)
    await backend.load_progress("player-1")
"""

from guru.hooks.interfaces import KeyValueStore, ProgressBackend, SessionLog
from guru.schemas import MasteryProgress, SessionData


class InMemoryProgressBackend(ProgressBackend):
    """Dict-backed progress storage keyed by player_id.

    Stores copies so later mutation of a caller's object can't leak in.
    """

    name = "memory"

    def __init__(self) -> None:
        """Initialises an empty store."""
        self._progress: dict[str, MasteryProgress] = {}

    async def load_progress(self, player_id: str) -> MasteryProgress | None:
        progress = self._progress.get(player_id)
        return progress.model_copy(deep=True) if progress is not None else None

    async def save_progress(self, progress: MasteryProgress) -> None:
        self._progress[progress.player_id] = progress.model_copy(deep=True)


class InMemorySessionLog(SessionLog):
    """Dict-backed session log. SessionData is frozen, so no copies needed."""

    name = "memory"

    def __init__(self) -> None:
        """Initialises an empty log."""
        self._sessions: dict[str, SessionData] = {}

    async def save_session(self, session: SessionData) -> None:
        self._sessions[session.session_id] = session

    async def get_session(self, session_id: str) -> SessionData | None:
        return self._sessions.get(session_id)

    async def list_sessions(self, stage: int | None = None) -> list[SessionData]:
        sessions = [
            s for s in self._sessions.values() if stage is None or s.stage == stage
        ]
        return sorted(sessions, key=lambda s: s.start_time)


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed key-value store."""

    def __init__(self) -> None:
        """Initialises an empty store."""
        self._data: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)
