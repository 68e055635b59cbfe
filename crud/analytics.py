# crud/analytics.py
"""CRUD for daily_stats, weekly_stats & user_activity (쓰기는 aggregation 잡 전용)."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Generic, Optional, Sequence, TypeVar

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from models.analytics import DailyStats, UserActivity, WeeklyStats
from schemas.analytics import DailyAggregate, WeeklyAggregate

StatsT = TypeVar("StatsT", DailyStats, WeeklyStats)


class _SummaryStatsCRUD(Generic[StatsT]):
    """
    daily_stats / weekly_stats 공통.
    - 키: (user_id, <period 컬럼>)
    - 숫자 필드는 col = col + delta 로 증가, languages 는 병합 결과로 통째 교체
    """

    def __init__(self, model: type[StatsT], period_field: str):
        self.model = model
        self.period_field = period_field

    @property
    def _period_col(self):
        return getattr(self.model, self.period_field)

    def get(
        self,
        db: Session,
        user_id: str,
        period: date,
        *,
        for_update: bool = False,
    ) -> Optional[StatsT]:
        """단건 조회. ``for_update`` 면 행 잠금 (SQLite 에서는 무시됨)."""
        stmt = select(self.model).where(
            self.model.user_id == user_id,
            self._period_col == period,
        )
        if for_update:
            stmt = stmt.with_for_update()
        return db.scalar(stmt)

    def create_from_values(
        self,
        db: Session,
        *,
        user_id: str,
        period: date,
        total_time: int,
        heartbeats: int,
        languages: Dict[str, int],
    ) -> StatsT:
        obj = self.model(
            user_id=user_id,
            total_time=total_time,
            heartbeats=heartbeats,
            languages=dict(languages),
        )
        setattr(obj, self.period_field, period)
        db.add(obj)
        db.flush()
        return obj

    def increment(
        self,
        db: Session,
        *,
        user_id: str,
        period: date,
        total_time: int,
        heartbeats: int,
        languages: Dict[str, int],
    ) -> int:
        """Atomic increment of the counters; ``languages`` replaced wholesale. returns 갱신 건수."""
        stmt = (
            update(self.model)
            .where(
                self.model.user_id == user_id,
                self._period_col == period,
            )
            .values(
                total_time=self.model.total_time + total_time,
                heartbeats=self.model.heartbeats + heartbeats,
                languages=dict(languages),
            )
        )
        result = db.execute(stmt)
        return int(result.rowcount or 0)

    def list_by_user(
        self,
        db: Session,
        user_id: str,
        *,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Sequence[StatsT]:
        filters: list[Any] = [self.model.user_id == user_id]
        if date_from is not None:
            filters.append(self._period_col >= date_from)
        if date_to is not None:
            filters.append(self._period_col <= date_to)
        stmt = select(self.model).where(*filters).order_by(self._period_col.asc())
        return db.scalars(stmt).all()


class DailyStatsCRUD(_SummaryStatsCRUD[DailyStats]):
    def __init__(self):
        super().__init__(DailyStats, "date")

    def create(self, db: Session, *, agg: DailyAggregate) -> DailyStats:
        return self.create_from_values(
            db,
            user_id=agg.user_id,
            period=agg.date,
            total_time=agg.total_time,
            heartbeats=agg.heartbeats,
            languages=agg.languages,
        )


class WeeklyStatsCRUD(_SummaryStatsCRUD[WeeklyStats]):
    def __init__(self):
        super().__init__(WeeklyStats, "week_start")

    def create(self, db: Session, *, agg: WeeklyAggregate) -> WeeklyStats:
        return self.create_from_values(
            db,
            user_id=agg.user_id,
            period=agg.week_start,
            total_time=agg.total_time,
            heartbeats=agg.heartbeats,
            languages=agg.languages,
        )


class UserActivityCRUD:
    """user_activity: (user_id, date) 당 1행. 활동 플래그 + 누적 시간."""

    def upsert(
        self,
        db: Session,
        *,
        user_id: str,
        day: date,
        total_time: int,
    ) -> None:
        """ON CONFLICT: is_active = true, total_time += delta."""
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            insert_fn = pg_insert
        elif dialect == "sqlite":
            insert_fn = sqlite_insert
        else:
            self._upsert_fallback(db, user_id=user_id, day=day, total_time=total_time)
            return

        insert_stmt = insert_fn(UserActivity).values(
            user_id=user_id,
            date=day,
            is_active=True,
            total_time=total_time,
        )
        upsert_stmt = insert_stmt.on_conflict_do_update(
            index_elements=[UserActivity.user_id, UserActivity.date],
            set_={
                "is_active": True,
                "total_time": UserActivity.total_time + insert_stmt.excluded.total_time,
            },
        )
        db.execute(upsert_stmt)
        db.flush()

    def _upsert_fallback(self, db: Session, *, user_id: str, day: date, total_time: int) -> None:
        # ON CONFLICT 미지원 dialect: 행 잠금 후 갱신
        row = db.scalar(
            select(UserActivity)
            .where(UserActivity.user_id == user_id, UserActivity.date == day)
            .with_for_update()
        )
        if row is None:
            db.add(UserActivity(user_id=user_id, date=day, is_active=True, total_time=total_time))
        else:
            db.execute(
                update(UserActivity)
                .where(UserActivity.id == row.id)
                .values(is_active=True, total_time=UserActivity.total_time + total_time)
            )
        db.flush()

    def get(self, db: Session, user_id: str, day: date) -> Optional[UserActivity]:
        stmt = select(UserActivity).where(
            UserActivity.user_id == user_id,
            UserActivity.date == day,
        )
        return db.scalar(stmt)

    def list_range(
        self,
        db: Session,
        user_id: str,
        start: date,
        end: date,
    ) -> Sequence[UserActivity]:
        """[start, end] 구간, 날짜 오름차순."""
        stmt = (
            select(UserActivity)
            .where(
                UserActivity.user_id == user_id,
                UserActivity.date >= start,
                UserActivity.date <= end,
            )
            .order_by(UserActivity.date.asc())
        )
        return db.scalars(stmt).all()


daily_stats_crud = DailyStatsCRUD()
weekly_stats_crud = WeeklyStatsCRUD()
user_activity_crud = UserActivityCRUD()
