# service/activity.py
"""Read-only accessors over aggregated activity for streak/analytics consumers."""
from __future__ import annotations

from datetime import date, datetime
from typing import Union

from sqlalchemy.orm import Session

from crud.analytics import user_activity_crud
from schemas.analytics import UserActivityResponse
from service.aggregation import to_utc_date


def _as_date(value: Union[date, datetime]) -> date:
    # datetime 은 date 의 subclass 이므로 먼저 검사
    if isinstance(value, datetime):
        return to_utc_date(value)
    return value


def get_user_activity_data(
    db: Session,
    user_id: str,
    start_date: Union[date, datetime],
    end_date: Union[date, datetime],
) -> list[UserActivityResponse]:
    """Per-day activity rows for *user_id* in ``[start_date, end_date]``, date ascending."""
    rows = user_activity_crud.list_range(db, user_id, _as_date(start_date), _as_date(end_date))
    return [UserActivityResponse.model_validate(row) for row in rows]
