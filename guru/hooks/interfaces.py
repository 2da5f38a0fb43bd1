"""Hook interfaces — abstract base classes for all swappable storage.

These ABCs define the contracts between the mastery core and the storage
layer. Each one has an in-memory implementation that lets the core run
without any infrastructure, plus durable implementations (SQLAlchemy,
JSON file) chained together by hooks/chain.py.

Tier 1 leaf module: imports only from abc (stdlib) and guru.schemas
(also Tier 1). No project services, no orchestration.

To add a backend, subclass the relevant ABC and implement every abstract
method. Python raises TypeError at instantiation if any method is missing.

Usage:
    from guru.hooks.interfaces import ProgressBackend, SessionLog, KeyValueStore
"""

from abc import ABC, abstractmethod

from guru.schemas import MasteryProgress, SessionData


# ---------------------------------------------------------------------------
# Mastery progress
# ---------------------------------------------------------------------------


class ProgressBackend(ABC):
    """Persistent storage for per-player MasteryProgress records.

    Writes always carry the whole record — the store never patches
    individual fields. Implementations may raise on infrastructure
    failure; the fallback chain catches and moves on to the next tier.
    """

    name: str = "backend"

    @abstractmethod
    async def load_progress(self, player_id: str) -> MasteryProgress | None:
        """Retrieves a player's mastery record.

        Args:
            player_id: The opaque player identifier.

        Returns:
            The MasteryProgress if stored, None otherwise.
        """
        ...

    @abstractmethod
    async def save_progress(self, progress: MasteryProgress) -> None:
        """Creates or overwrites a player's mastery record.

        Args:
            progress: The full record. Its player_id is the storage key.
        """
        ...


# ---------------------------------------------------------------------------
# Session log
# ---------------------------------------------------------------------------


class SessionLog(ABC):
    """Append-only log of completed sessions, secondary-indexed by stage.

    An audit/analytics record — never consulted for scoring decisions.
    """

    name: str = "session-log"

    @abstractmethod
    async def save_session(self, session: SessionData) -> None:
        """Stores a completed session, keyed by session_id.

        Args:
            session: The finalized SessionData.
        """
        ...

    @abstractmethod
    async def get_session(self, session_id: str) -> SessionData | None:
        """Retrieves a completed session by id.

        Returns:
            The SessionData if logged, None otherwise.
        """
        ...

    @abstractmethod
    async def list_sessions(self, stage: int | None = None) -> list[SessionData]:
        """Lists logged sessions, optionally only those of one stage.

        Args:
            stage: If given, restrict to sessions played on this stage.

        Returns:
            Sessions ordered by start_time, oldest first.
        """
        ...


# ---------------------------------------------------------------------------
# Flat key-value storage
# ---------------------------------------------------------------------------


class KeyValueStore(ABC):
    """Simple string-to-string storage (the "simple store" tier).

    Values are opaque serialized blobs; callers own the format.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Returns the value stored under key, None if absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Stores value under key, overwriting any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Removes key. No-op if absent (idempotent)."""
        ...
