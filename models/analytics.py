# models/analytics.py
# 집계 전용. 애플리케이션 직접 쓰기 금지 권장 (aggregation 잡만 갱신).
from sqlalchemy import (
    Column, BigInteger, Text, Integer, Date, Boolean,
    UniqueConstraint, CheckConstraint, Index, text
)

from models.base import Base, IdPKMixin, JSONType, TimeStampMixin


# ========= daily_stats =========
class DailyStats(IdPKMixin, TimeStampMixin, Base):
    __tablename__ = "daily_stats"

    user_id = Column(Text, nullable=False)
    date = Column(Date, nullable=False)

    total_time = Column(BigInteger, nullable=False, server_default=text("0"))
    heartbeats = Column(Integer, nullable=False, server_default=text("0"))
    languages = Column(JSONType, nullable=False, default=dict)  # {language: seconds}

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_daily_stats_user_date"),
        CheckConstraint("total_time >= 0 AND heartbeats >= 0", name="chk_daily_stats_nonneg"),
        Index("idx_daily_stats_date", "date"),
    )


# ========= weekly_stats =========
class WeeklyStats(IdPKMixin, TimeStampMixin, Base):
    __tablename__ = "weekly_stats"

    user_id = Column(Text, nullable=False)
    week_start = Column(Date, nullable=False)  # 해당 주 월요일

    total_time = Column(BigInteger, nullable=False, server_default=text("0"))
    heartbeats = Column(Integer, nullable=False, server_default=text("0"))
    languages = Column(JSONType, nullable=False, default=dict)

    __table_args__ = (
        UniqueConstraint("user_id", "week_start", name="uq_weekly_stats_user_week"),
        CheckConstraint("total_time >= 0 AND heartbeats >= 0", name="chk_weekly_stats_nonneg"),
        Index("idx_weekly_stats_week_start", "week_start"),
    )


# ========= user_activity =========
class UserActivity(IdPKMixin, Base):
    """Per-day activity flag used by streak consumers."""

    __tablename__ = "user_activity"

    user_id = Column(Text, nullable=False)
    date = Column(Date, nullable=False)

    is_active = Column(Boolean, nullable=False, server_default=text("false"))
    total_time = Column(BigInteger, nullable=False, server_default=text("0"))

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_user_activity_user_date"),
        CheckConstraint("total_time >= 0", name="chk_user_activity_nonneg"),
    )
