"""Tests for the read-only user activity accessor."""

from __future__ import annotations

import datetime as dt

from sqlalchemy.orm import Session

from service.activity import get_user_activity_data
from service.aggregation import aggregate_activity_data


class TestGetUserActivityData:
    def _seed(self, db: Session, add_event) -> None:
        add_event("u1", "2024-01-10T09:00:00Z", "go", 30)
        add_event("u1", "2024-01-08T09:00:00Z", "go", 10)
        add_event("u1", "2024-01-09T09:00:00Z", "py", 20)
        add_event("u1", "2024-01-09T15:00:00Z", "py", 5)
        add_event("u2", "2024-01-09T09:00:00Z", "go", 99)
        aggregate_activity_data(db)

    def test_ascending_and_inclusive(self, db: Session, add_event) -> None:
        self._seed(db, add_event)

        rows = get_user_activity_data(db, "u1", dt.date(2024, 1, 8), dt.date(2024, 1, 10))

        assert [r.date for r in rows] == [dt.date(2024, 1, 8), dt.date(2024, 1, 9), dt.date(2024, 1, 10)]
        assert [r.total_time for r in rows] == [10, 25, 30]
        assert all(r.is_active for r in rows)
        assert all(r.user_id == "u1" for r in rows)

    def test_range_filters_out_other_days(self, db: Session, add_event) -> None:
        self._seed(db, add_event)

        rows = get_user_activity_data(db, "u1", dt.date(2024, 1, 9), dt.date(2024, 1, 9))

        assert len(rows) == 1
        assert rows[0].total_time == 25

    def test_datetime_bounds(self, db: Session, add_event) -> None:
        self._seed(db, add_event)

        rows = get_user_activity_data(
            db,
            "u1",
            dt.datetime(2024, 1, 9, 0, 0, tzinfo=dt.timezone.utc),
            dt.datetime(2024, 1, 10, 23, 59, tzinfo=dt.timezone.utc),
        )

        assert [r.date for r in rows] == [dt.date(2024, 1, 9), dt.date(2024, 1, 10)]

    def test_unknown_user(self, db: Session, add_event) -> None:
        self._seed(db, add_event)
        assert get_user_activity_data(db, "nobody", dt.date(2024, 1, 1), dt.date(2024, 12, 31)) == []
