"""SQL storage — the durable tier for progress and the session log.

SQLAlchemy-backed implementation of ProgressBackend and SessionLog. Records
are stored whole as JSON text (the same serialization the key-value tier
uses), with the lookup keys broken out as columns:

  progress   player_id (PK)  → MasteryProgress
  sessions   session_id (PK), stage (indexed) → SessionData

SQLAlchemy calls block, so every public method runs its work through
asyncio.to_thread and keeps the event loop free.

Tier 2 service module: imports from guru.hooks.interfaces (Tier 1)
and guru.schemas (Tier 1).

Usage:
    from guru.hooks.database import SqlStore

    store = SqlStore("sqlite:///data/guru.db")
    await store.save_progress(progress)
    await store.list_sessions(stage=3)
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from guru.hooks.interfaces import ProgressBackend, SessionLog
from guru.schemas import MasteryProgress, SessionData

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressRow(Base):
    __tablename__ = "progress"

    player_id = Column(String(64), primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class SessionRow(Base):
    __tablename__ = "sessions"

    session_id = Column(String(64), primary_key=True)
    stage = Column(Integer, nullable=False, index=True)
    pattern_id = Column(Integer, nullable=False)
    start_time = Column(BigInteger, nullable=False)
    payload = Column(Text, nullable=False)


def _create_engine(database_url: str):
    """Creates an engine, with SQLite tuned for use from worker threads.

    In-memory SQLite gets a StaticPool so every thread sees the same
    database; file SQLite gets its parent directory created.
    """
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite"):
        return create_engine(database_url)

    connect_args = {"check_same_thread": False}
    if url.database in (None, "", ":memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, connect_args=connect_args)


class SqlStore(ProgressBackend, SessionLog):
    """Durable progress + session storage on any SQLAlchemy database.

    Tables are created on construction. Construction raises if the
    database is unreachable — the app then starts without this tier.

    Args:
        database_url: SQLAlchemy URL, e.g. "sqlite:///data/guru.db".
    """

    name = "sql"

    def __init__(self, database_url: str) -> None:
        self.engine = _create_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    # -- progress -----------------------------------------------------------

    def _load_progress(self, player_id: str) -> MasteryProgress | None:
        with self.Session() as db_session:
            row = db_session.get(ProgressRow, player_id)
            if row is None:
                return None
            return MasteryProgress.model_validate_json(row.payload)

    def _save_progress(self, progress: MasteryProgress) -> None:
        with self.Session() as db_session:
            db_session.merge(
                ProgressRow(
                    player_id=progress.player_id,
                    payload=progress.model_dump_json(),
                    updated_at=_utcnow(),
                )
            )
            db_session.commit()

    async def load_progress(self, player_id: str) -> MasteryProgress | None:
        return await asyncio.to_thread(self._load_progress, player_id)

    async def save_progress(self, progress: MasteryProgress) -> None:
        await asyncio.to_thread(self._save_progress, progress)

    # -- sessions -----------------------------------------------------------

    def _save_session(self, session: SessionData) -> None:
        with self.Session() as db_session:
            db_session.merge(
                SessionRow(
                    session_id=session.session_id,
                    stage=session.stage,
                    pattern_id=session.pattern_id,
                    start_time=session.start_time,
                    payload=session.model_dump_json(),
                )
            )
            db_session.commit()

    def _get_session(self, session_id: str) -> SessionData | None:
        with self.Session() as db_session:
            row = db_session.get(SessionRow, session_id)
            if row is None:
                return None
            return SessionData.model_validate_json(row.payload)

    def _list_sessions(self, stage: int | None) -> list[SessionData]:
        with self.Session() as db_session:
            query = db_session.query(SessionRow)
            if stage is not None:
                query = query.filter_by(stage=stage)
            rows = query.order_by(SessionRow.start_time).all()
            return [SessionData.model_validate_json(row.payload) for row in rows]

    async def save_session(self, session: SessionData) -> None:
        await asyncio.to_thread(self._save_session, session)

    async def get_session(self, session_id: str) -> SessionData | None:
        return await asyncio.to_thread(self._get_session, session_id)

    async def list_sessions(self, stage: int | None = None) -> list[SessionData]:
        return await asyncio.to_thread(self._list_sessions, stage)

    def dispose(self) -> None:
        """Closes pooled connections."""
        self.engine.dispose()
