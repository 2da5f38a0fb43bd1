"""Fallback chains — durable → key-value → memory, tried in order.

FallbackProgressChain and FallbackSessionLog are themselves hook
implementations, so the core never knows how many tiers sit behind it.

Writes go to the first tier that accepts them; a failing tier is logged
at WARNING and skipped. Reads return the first non-None value, most
durable tier first, skipping tiers that fail. Persistence failure is never
surfaced to the player: the chain always ends on an in-memory tier.

Tier 2 service module: imports from guru.hooks.interfaces (Tier 1),
guru.hooks.memory (Tier 2) and guru.schemas (Tier 1).

Usage:
    chain = FallbackProgressChain([SqlStore(url), KeyValueProgressBackend(kv)])
    tier = await chain.save_progress(progress)   # "sql", "key-value" or "memory"
"""

import logging
from collections.abc import Sequence

from guru.hooks.interfaces import ProgressBackend, SessionLog
from guru.hooks.memory import InMemoryProgressBackend, InMemorySessionLog
from guru.schemas import MasteryProgress, SessionData

logger = logging.getLogger("guru.hooks.chain")


class FallbackProgressChain(ProgressBackend):
    """Ordered progress backends, most durable first.

    An in-memory tier is appended automatically unless the list already
    ends with one.

    Args:
        backends: Tiers in order of preference.
    """

    name = "chain"

    def __init__(self, backends: Sequence[ProgressBackend]) -> None:
        tiers = list(backends)
        if not tiers or not isinstance(tiers[-1], InMemoryProgressBackend):
            tiers.append(InMemoryProgressBackend())
        self._tiers = tiers

    @property
    def tiers(self) -> list[ProgressBackend]:
        return list(self._tiers)

    async def load_progress(self, player_id: str) -> MasteryProgress | None:
        for tier in self._tiers:
            try:
                progress = await tier.load_progress(player_id)
            except Exception as exc:
                logger.warning(
                    "Progress read from %s tier failed for %s: %s",
                    tier.name,
                    player_id,
                    exc,
                )
                continue
            if progress is not None:
                return progress
        return None

    async def save_progress(self, progress: MasteryProgress) -> str:
        """Writes the whole record to the first tier that accepts it.

        Returns:
            The name of the tier that stored the record.
        """
        for tier in self._tiers:
            try:
                await tier.save_progress(progress)
            except Exception as exc:
                logger.warning(
                    "Progress write to %s tier failed for %s: %s",
                    tier.name,
                    progress.player_id,
                    exc,
                )
                continue
            return tier.name
        # Unreachable while the last tier is in-memory.
        raise RuntimeError("No progress tier accepted the write")


class FallbackSessionLog(SessionLog):
    """Ordered session logs, most durable first, ending in memory.

    Args:
        logs: Tiers in order of preference.
    """

    name = "chain"

    def __init__(self, logs: Sequence[SessionLog]) -> None:
        tiers = list(logs)
        if not tiers or not isinstance(tiers[-1], InMemorySessionLog):
            tiers.append(InMemorySessionLog())
        self._tiers = tiers

    @property
    def tiers(self) -> list[SessionLog]:
        return list(self._tiers)

    async def save_session(self, session: SessionData) -> str:
        for tier in self._tiers:
            try:
                await tier.save_session(session)
            except Exception as exc:
                logger.warning(
                    "Session write to %s tier failed for %s: %s",
                    tier.name,
                    session.session_id,
                    exc,
                )
                continue
            return tier.name
        raise RuntimeError("No session tier accepted the write")

    async def get_session(self, session_id: str) -> SessionData | None:
        for tier in self._tiers:
            try:
                session = await tier.get_session(session_id)
            except Exception as exc:
                logger.warning(
                    "Session read from %s tier failed for %s: %s",
                    tier.name,
                    session_id,
                    exc,
                )
                continue
            if session is not None:
                return session
        return None

    async def list_sessions(self, stage: int | None = None) -> list[SessionData]:
        """Merges every reachable tier, most durable copy winning per id."""
        merged: dict[str, SessionData] = {}
        for tier in self._tiers:
            try:
                sessions = await tier.list_sessions(stage)
            except Exception as exc:
                logger.warning("Session list from %s tier failed: %s", tier.name, exc)
                continue
            for session in sessions:
                merged.setdefault(session.session_id, session)
        return sorted(merged.values(), key=lambda s: s.start_time)
