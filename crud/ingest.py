# crud/ingest.py
"""CRUD for activity_events, ingestion_checkpoints, session_cache & aggregation_leases.

Every method flushes only; the caller manages commit. The lease helpers are
the exception: a lease is useless unless other processes can see it, so
acquire/release commit on their own.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.ingest import (
    ActivityEvent,
    AggregationLease,
    IngestionCheckpoint,
    SessionCache,
)
from schemas.ingest import ActivityEventCreate, SessionCacheCreate


class ActivityEventCRUD:
    """activity_events 조회 (쓰기는 producer 전용)."""

    def create(self, db: Session, *, data: ActivityEventCreate) -> ActivityEvent:
        obj = ActivityEvent(**data.model_dump())
        db.add(obj)
        db.flush()
        db.refresh(obj)
        return obj

    def list_after(
        self,
        db: Session,
        after_id: Optional[int],
        *,
        limit: Optional[int] = None,
    ) -> Sequence[ActivityEvent]:
        """Events with ``id > after_id`` ascending by id. ``None`` means from the beginning."""
        stmt = select(ActivityEvent)
        # 0 도 유효한 하한값이므로 falsy 비교 금지
        if after_id is not None:
            stmt = stmt.where(ActivityEvent.id > after_id)
        stmt = stmt.order_by(ActivityEvent.id.asc())
        if limit:
            stmt = stmt.limit(limit)
        return db.scalars(stmt).all()


class IngestionCheckpointCRUD:
    """ingestion_checkpoints: append-only 로그. 수정/삭제 API 없음."""

    def latest(self, db: Session) -> Optional[IngestionCheckpoint]:
        stmt = (
            select(IngestionCheckpoint)
            .order_by(
                IngestionCheckpoint.ingested_at.desc(),
                IngestionCheckpoint.id.desc(),
            )
            .limit(1)
        )
        return db.scalar(stmt)

    def append(
        self,
        db: Session,
        *,
        start: str,
        end: str,
        count: int,
    ) -> IngestionCheckpoint:
        obj = IngestionCheckpoint(
            watermark_start=start,
            watermark_end=end,
            record_count=count,
        )
        db.add(obj)
        db.flush()
        db.refresh(obj)
        return obj

    def list_all(self, db: Session) -> Sequence[IngestionCheckpoint]:
        stmt = select(IngestionCheckpoint).order_by(IngestionCheckpoint.id.asc())
        return db.scalars(stmt).all()


class SessionCacheCRUD:
    def put(self, db: Session, *, data: SessionCacheCreate) -> SessionCache:
        obj = SessionCache(**data.model_dump())
        db.add(obj)
        db.flush()
        return obj

    def delete_expired(self, db: Session, *, now: datetime) -> int:
        """Delete rows whose ``expires_at`` is strictly before *now*. returns 삭제 건수."""
        stmt = (
            delete(SessionCache)
            .where(SessionCache.expires_at < now)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        return int(result.rowcount or 0)


class AggregationLeaseCRUD:
    """aggregation_leases: 동시 실행 방지용 advisory lease."""

    def try_acquire(
        self,
        db: Session,
        *,
        name: str,
        holder: str,
        now: datetime,
        ttl_seconds: int,
    ) -> bool:
        """Take the lease if it is free or expired. Commits on success."""
        expires_at = now + timedelta(seconds=ttl_seconds)

        # 1) 만료된 lease 가로채기
        result = db.execute(
            update(AggregationLease)
            .where(
                AggregationLease.name == name,
                AggregationLease.expires_at < now,
            )
            .values(holder=holder, acquired_at=now, expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            db.commit()
            return True

        # 2) 행이 아예 없으면 새로 생성. 살아있는 lease 가 있으면 실패
        if db.get(AggregationLease, name) is not None:
            db.rollback()
            return False

        db.add(AggregationLease(name=name, holder=holder, acquired_at=now, expires_at=expires_at))
        try:
            db.commit()
        except IntegrityError:
            # 다른 실행이 먼저 insert
            db.rollback()
            return False
        return True

    def release(self, db: Session, *, name: str, holder: str) -> None:
        db.execute(
            delete(AggregationLease).where(
                AggregationLease.name == name,
                AggregationLease.holder == holder,
            )
        )
        db.commit()

    def get(self, db: Session, name: str) -> Optional[AggregationLease]:
        return db.get(AggregationLease, name)


activity_event_crud = ActivityEventCRUD()
checkpoint_crud = IngestionCheckpointCRUD()
session_cache_crud = SessionCacheCRUD()
lease_crud = AggregationLeaseCRUD()
