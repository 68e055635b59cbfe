# Base, MetaData(naming_convention), 공용 컬럼 타입
from __future__ import annotations

from datetime import timezone

from sqlalchemy.orm import declarative_base
from sqlalchemy import MetaData, Column, BigInteger, Integer, DateTime, JSON
from sqlalchemy.types import TypeDecorator
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=NAMING_CONVENTION)
Base = declarative_base(metadata=metadata)

# SQLite 는 INTEGER PRIMARY KEY 만 autoincrement 되므로 variant 로 맞춘다
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

# Postgres 에서는 JSONB, 그 외(테스트용 SQLite 등)는 일반 JSON
JSONType = JSON().with_variant(JSONB(), "postgresql")


class IdPKMixin:
    id = Column(BigIntPK, primary_key=True, autoincrement=True)


class TimeStampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class UTCDateTime(TypeDecorator):
    """``DateTime(timezone=True)`` that stores aware values converted to UTC.

    SQLite keeps only the wall-clock fields and drops the offset, so a
    ``+09:00`` value would otherwise read back as the wrong UTC instant.
    Naive values are stored as-is and taken to be UTC already.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc)
        return value
