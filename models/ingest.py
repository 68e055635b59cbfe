# models/ingest.py
# ingest DB: 원본 이벤트 원장 + 체크포인트 로그 + 세션 캐시 + 잡 lease
from sqlalchemy import (
    Column, Text, Integer, DateTime,
    UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.sql import func

from models.base import Base, BigIntPK, IdPKMixin, JSONType, UTCDateTime


# ========== activity_events ==========
class ActivityEvent(Base):
    """Append-only heartbeat ledger. Written by producers, read by the aggregation job only."""

    __tablename__ = "activity_events"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)

    user_id = Column(Text, nullable=False)
    timestamp = Column(UTCDateTime, nullable=False)
    language = Column(Text, nullable=True)
    time_spent = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("time_spent >= 0", name="chk_activity_events_time_nonneg"),
        Index("idx_activity_events_user_time", "user_id", "timestamp"),
    )


# ========== ingestion_checkpoints ==========
class IngestionCheckpoint(IdPKMixin, Base):
    __tablename__ = "ingestion_checkpoints"

    # BigInteger 범위를 넘는 id 도 다룰 수 있도록 10진 문자열로 보관
    watermark_start = Column(Text, nullable=False)
    watermark_end = Column(Text, nullable=False)
    record_count = Column(Integer, nullable=False)
    ingested_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("record_count >= 0", name="chk_ingestion_checkpoints_count_nonneg"),
        Index("idx_ingestion_checkpoints_ingested_at", "ingested_at"),
    )


# ========== session_cache ==========
class SessionCache(IdPKMixin, Base):
    __tablename__ = "session_cache"

    session_key = Column(Text, nullable=False)
    user_id = Column(Text, nullable=True)
    payload = Column(JSONType, nullable=True)
    expires_at = Column(UTCDateTime, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("session_key", name="uq_session_cache_key"),
        Index("idx_session_cache_expires_at", "expires_at"),
    )


# ========== aggregation_leases ==========
class AggregationLease(Base):
    """Advisory lease row. One row per job name; a run holds it until release or expiry."""

    __tablename__ = "aggregation_leases"

    name = Column(Text, primary_key=True)
    holder = Column(Text, nullable=False)
    acquired_at = Column(UTCDateTime, nullable=False)
    expires_at = Column(UTCDateTime, nullable=False)
