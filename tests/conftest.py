"""Shared fixtures: throwaway SQLite databases and event seeding helpers."""

from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Callable, Iterator, Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from database.base import create_all
from models.ingest import ActivityEvent


def _make_engine(path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{path}")
    create_all(engine)
    return engine


@pytest.fixture()
def engine(tmp_path: Path) -> Iterator[Engine]:
    engine = _make_engine(tmp_path / "activity.db")
    yield engine
    engine.dispose()


@pytest.fixture()
def analytics_engine(tmp_path: Path) -> Iterator[Engine]:
    """A second, physically separate database for split ingest/analytics runs."""
    engine = _make_engine(tmp_path / "analytics.db")
    yield engine
    engine.dispose()


@pytest.fixture()
def make_session(tmp_path: Path) -> Iterator[Callable[[str], Session]]:
    """Open a session on a fresh database file named *name* under ``tmp_path``."""
    opened: list[tuple[Session, Engine]] = []

    def _open(name: str) -> Session:
        engine = _make_engine(tmp_path / name)
        session = sessionmaker(bind=engine, autoflush=False)()
        opened.append((session, engine))
        return session

    yield _open
    for session, engine in opened:
        session.close()
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False)


@pytest.fixture()
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def analytics_db(analytics_engine: Engine) -> Iterator[Session]:
    session = sessionmaker(bind=analytics_engine, autoflush=False)()
    yield session
    session.close()


AddEvent = Callable[..., ActivityEvent]


@pytest.fixture()
def add_event(db: Session) -> AddEvent:
    """Insert and commit one activity event; ``id`` is optional."""

    def _add(
        user_id: str,
        ts: str,
        language: Optional[str],
        time_spent: int,
        *,
        id: Optional[int] = None,
    ) -> ActivityEvent:
        event = ActivityEvent(
            id=id,
            user_id=user_id,
            timestamp=dt.datetime.fromisoformat(ts.replace("Z", "+00:00")),
            language=language,
            time_spent=time_spent,
        )
        db.add(event)
        db.commit()
        return event

    return _add
