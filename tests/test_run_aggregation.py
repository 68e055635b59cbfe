"""Tests for the scheduler entry point: exit codes and the per-tick cache sweep."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

import service.aggregation as aggregation
from crud.analytics import daily_stats_crud
from crud.ingest import session_cache_crud
from models.analytics import DailyStats
from models.ingest import IngestionCheckpoint, SessionCache
from schemas.ingest import SessionCacheCreate
from script.run_aggregation import run

MONDAY = dt.date(2024, 1, 8)
LONG_AGO = dt.datetime(2000, 1, 1, tzinfo=dt.timezone.utc)
FAR_FUTURE = dt.datetime(2999, 1, 1, tzinfo=dt.timezone.utc)


def _count(db: Session, model) -> int:
    return db.scalar(select(func.count()).select_from(model))


def _seed_cache(db: Session) -> None:
    for key, expires_at in (("stale", LONG_AGO), ("live", FAR_FUTURE)):
        session_cache_crud.put(db, data=SessionCacheCreate(session_key=key, expires_at=expires_at))
    db.commit()


def _fail(*args, **kwargs):
    raise RuntimeError("analytics store unavailable")


class TestRun:
    def test_success_aggregates_and_sweeps(self, db: Session, add_event) -> None:
        _seed_cache(db)
        add_event("u1", "2024-01-08T10:00:00Z", "go", 100)

        assert run(db) == 0

        db.expire_all()
        assert daily_stats_crud.get(db, "u1", MONDAY).total_time == 100
        assert [r.session_key for r in db.scalars(select(SessionCache))] == ["live"]

    def test_failed_aggregation_still_sweeps(self, db: Session, add_event, monkeypatch) -> None:
        _seed_cache(db)
        add_event("u1", "2024-01-08T10:00:00Z", "go", 100)
        monkeypatch.setattr(aggregation, "merge_daily", _fail)

        assert run(db) == 1

        db.expire_all()
        assert _count(db, DailyStats) == 0
        assert _count(db, IngestionCheckpoint) == 0
        assert [r.session_key for r in db.scalars(select(SessionCache))] == ["live"]

    def test_failure_is_logged(self, db: Session, add_event, monkeypatch, caplog) -> None:
        add_event("u1", "2024-01-08T10:00:00Z", "go", 100)
        monkeypatch.setattr(aggregation, "merge_daily", _fail)

        with caplog.at_level(logging.ERROR, logger="script.run_aggregation"):
            run(db)

        assert "Aggregation run failed" in caplog.text

    def test_nothing_to_do_is_success(self, db: Session) -> None:
        _seed_cache(db)

        assert run(db) == 0
        assert _count(db, SessionCache) == 1

    def test_split_databases(self, db: Session, analytics_db: Session, add_event) -> None:
        add_event("u1", "2024-01-08T10:00:00Z", "go", 100)

        assert run(db, analytics_db) == 0

        assert daily_stats_crud.get(analytics_db, "u1", MONDAY).total_time == 100
        assert _count(db, DailyStats) == 0
        assert _count(db, IngestionCheckpoint) == 1
