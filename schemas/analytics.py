# schemas/analytics.py
from __future__ import annotations
import datetime as dt
from typing import Dict, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from schemas.base import ORMBase


# =========================================
# 배치 내 부분 집계 (메모리 전용, 실행 1회 동안만 존재)
# =========================================
class _PartialAggregate(BaseModel):
    user_id: str
    total_time: int = 0
    heartbeats: int = 0
    languages: Dict[str, int] = Field(default_factory=dict)

    def add(self, language: str, time_spent: int) -> None:
        """Fold one heartbeat in. Missing language keys start at zero."""
        self.total_time += time_spent
        self.heartbeats += 1
        self.languages[language] = self.languages.get(language, 0) + time_spent


class DailyAggregate(_PartialAggregate):
    date: dt.date


class WeeklyAggregate(_PartialAggregate):
    week_start: dt.date  # 월요일


# =========================================
# daily_stats / weekly_stats 〈집계 전용: 읽기 전용〉
# =========================================
class DailyStatsResponse(ORMBase):
    model_config = ConfigDict(from_attributes=True)
    user_id: str
    date: dt.date
    total_time: int
    heartbeats: int
    languages: Dict[str, int]


class WeeklyStatsResponse(ORMBase):
    model_config = ConfigDict(from_attributes=True)
    user_id: str
    week_start: dt.date
    total_time: int
    heartbeats: int
    languages: Dict[str, int]


# =========================================
# user_activity 〈streak 계산용 조회〉
# =========================================
class UserActivityResponse(ORMBase):
    model_config = ConfigDict(from_attributes=True)
    user_id: str
    date: dt.date
    is_active: bool
    total_time: int


# =========================================
# 집계 잡 실행 결과
# =========================================
class AggregationResult(BaseModel):
    # noop: 처리할 이벤트 없음 / aggregated: 체크포인트 기록 완료 / locked: 다른 실행이 lease 보유
    status: Literal["noop", "aggregated", "locked"]
    event_count: int = 0
    daily_count: int = 0
    weekly_count: int = 0
    lower_bound: Optional[int] = None
    watermark_start: Optional[str] = None
    watermark_end: Optional[str] = None
