"""Session recorder — write-through audit log of practice sessions.

Tracks open sessions (pattern, stage, start time, strokes drawn so far)
and writes each finished session to the SessionLog. The log is for audit
and analytics only; nothing here feeds back into scoring decisions.

A failed log write is logged and the record kept in a local in-memory log,
so finalizing a session never fails on storage.

Tier 2 service: imports from hooks/interfaces (Tier 1), hooks/memory
(Tier 2), schemas (Tier 1), errors (Tier 1).
"""

import logging
from dataclasses import dataclass, field
from uuid import uuid4

from guru.errors import SessionAlreadyCompletedError, SessionNotFoundError
from guru.hooks.interfaces import SessionLog
from guru.hooks.memory import InMemorySessionLog
from guru.schemas import SessionData, SkillMetrics, StrokeData, now_ms

logger = logging.getLogger("guru.recorder")


@dataclass
class OpenSession:
    """A session between level start and level end."""

    session_id: str
    pattern_id: int
    stage: int
    start_time: int
    strokes: list[StrokeData] = field(default_factory=list)
    player_id: str | None = None


class SessionRecorder:
    """Records sessions from start to finalization.

    Args:
        log: Where finished sessions are written.
    """

    def __init__(self, log: SessionLog) -> None:
        self._log = log
        self._fallback = InMemorySessionLog()
        self._open: dict[str, OpenSession] = {}
        self._finalized: set[str] = set()

    def begin(
        self,
        pattern_id: int,
        stage: int,
        start_time: int | None = None,
        player_id: str | None = None,
    ) -> str:
        """Opens a session and returns its id. player_id, if given, owns the session."""
        session_id = str(uuid4())
        self._open[session_id] = OpenSession(
            session_id=session_id,
            pattern_id=pattern_id,
            stage=stage,
            start_time=start_time if start_time is not None else now_ms(),
            player_id=player_id,
        )
        return session_id

    def is_open(self, session_id: str) -> bool:
        return session_id in self._open

    def get_open(self, session_id: str, player_id: str | None = None) -> OpenSession:
        """Returns an open session.

        When player_id is given, a session owned by another player is
        treated as unknown.

        Raises:
            SessionNotFoundError: If the id was never opened, is finished,
                or belongs to someone else.
        """
        session = self._open.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        if player_id is not None and session.player_id not in (None, player_id):
            raise SessionNotFoundError(session_id)
        return session

    def add_stroke(
        self, session_id: str, stroke: StrokeData, player_id: str | None = None
    ) -> list[StrokeData]:
        """Appends a sealed stroke and returns all strokes of the session."""
        session = self.get_open(session_id, player_id)
        session.strokes.append(stroke)
        return list(session.strokes)

    def strokes(self, session_id: str, player_id: str | None = None) -> list[StrokeData]:
        return list(self.get_open(session_id, player_id).strokes)

    async def is_finalized(self, session_id: str) -> bool:
        """True if the session was already written to the log."""
        if session_id in self._finalized:
            return True
        if session_id in self._open:
            return False
        return await self.get_session(session_id) is not None

    async def finalize(
        self,
        session_id: str,
        metrics: SkillMetrics,
        end_time: int | None = None,
        *,
        pattern_id: int | None = None,
        stage: int | None = None,
    ) -> SessionData:
        """Closes a session and writes it to the log.

        A session id the recorder never opened is still logged when
        pattern_id and stage are supplied, with start_time = end_time.
        Logged sessions are never rewritten.

        Raises:
            SessionAlreadyCompletedError: The id was already finalized.
            SessionNotFoundError: Unknown id and no pattern_id/stage given.
        """
        if session_id in self._finalized:
            raise SessionAlreadyCompletedError(session_id)
        end_time = end_time if end_time is not None else now_ms()
        open_session = self._open.pop(session_id, None)
        if open_session is None:
            if pattern_id is None or stage is None:
                raise SessionNotFoundError(session_id)
            open_session = OpenSession(
                session_id=session_id,
                pattern_id=pattern_id,
                stage=stage,
                start_time=end_time,
            )

        session = SessionData(
            session_id=open_session.session_id,
            pattern_id=open_session.pattern_id,
            stage=open_session.stage,
            start_time=open_session.start_time,
            end_time=end_time,
            metrics=metrics,
            strokes=open_session.strokes,
        )
        self._finalized.add(session_id)

        try:
            await self._log.save_session(session)
        except Exception as exc:
            logger.warning(
                "Session log write failed for %s, keeping in memory: %s",
                session_id,
                exc,
            )
            await self._fallback.save_session(session)
        return session

    async def get_session(self, session_id: str) -> SessionData | None:
        session = await self._log.get_session(session_id)
        if session is None:
            session = await self._fallback.get_session(session_id)
        return session

    async def list_sessions(self, stage: int | None = None) -> list[SessionData]:
        logged = {s.session_id: s for s in await self._log.list_sessions(stage)}
        for session in await self._fallback.list_sessions(stage):
            logged.setdefault(session.session_id, session)
        return sorted(logged.values(), key=lambda s: s.start_time)
