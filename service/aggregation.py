# service/aggregation.py
"""Incremental heartbeat aggregation.

Meant to be triggered by an external scheduler every few minutes. One run:

1. resolve the lower bound from the latest checkpoint
2. fetch every activity event after it, ascending by id
3. fold the batch into per-(user, day) and per-(user, week) partial aggregates
4. merge each partial into daily_stats / weekly_stats / user_activity
5. append one checkpoint covering the fetched range

Steps 4 and 5 commit together. When ingest and analytics live in separate
databases the analytics commit goes first, so a crash between the two commits
re-merges that batch on the next run (at-least-once). Overlapping runs are
kept apart by the advisory lease in ``aggregation_leases``.
"""
from __future__ import annotations

import logging
import os
import socket
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, Mapping, Optional, Tuple

from sqlalchemy.orm import Session

from core import config
from crud.analytics import daily_stats_crud, user_activity_crud, weekly_stats_crud
from crud.ingest import activity_event_crud, lease_crud
from models.ingest import ActivityEvent
from schemas.analytics import AggregationResult, DailyAggregate, WeeklyAggregate
from service.watermark import commit_checkpoint, resolve_lower_bound

logger = logging.getLogger(__name__)

AggregateKey = Tuple[str, date]


# =============================================================================
# 날짜 키
# =============================================================================
def to_utc_date(ts: datetime) -> date:
    """UTC calendar date of *ts*. Naive timestamps are taken as UTC."""
    if ts.tzinfo is None:
        return ts.date()
    return ts.astimezone(timezone.utc).date()


def week_start(day: date) -> date:
    """Monday on or before *day* (일요일은 6일 전 월요일)."""
    return day - timedelta(days=day.weekday())


# =============================================================================
# fold (순수 in-memory)
# =============================================================================
def fold_events(
    events: Iterable[ActivityEvent],
) -> Tuple[Dict[AggregateKey, DailyAggregate], Dict[AggregateKey, WeeklyAggregate]]:
    """Reduce a batch into daily and weekly partial aggregates.

    Every event lands in exactly one daily and one weekly aggregate. Empty or
    missing languages are bucketed under ``config.UNKNOWN_LANGUAGE``.
    """
    daily: Dict[AggregateKey, DailyAggregate] = {}
    weekly: Dict[AggregateKey, WeeklyAggregate] = {}

    for event in events:
        day = to_utc_date(event.timestamp)
        monday = week_start(day)
        language = event.language or config.UNKNOWN_LANGUAGE
        spent = int(event.time_spent or 0)

        d = daily.get((event.user_id, day))
        if d is None:
            d = daily[(event.user_id, day)] = DailyAggregate(user_id=event.user_id, date=day)
        d.add(language, spent)

        w = weekly.get((event.user_id, monday))
        if w is None:
            w = weekly[(event.user_id, monday)] = WeeklyAggregate(user_id=event.user_id, week_start=monday)
        w.add(language, spent)

    return daily, weekly


def merge_languages(existing: Optional[Mapping[str, int]], delta: Mapping[str, int]) -> Dict[str, int]:
    merged = dict(existing or {})
    for language, spent in delta.items():
        merged[language] = merged.get(language, 0) + spent
    return merged


# =============================================================================
# merge (read-merge-write per key)
# =============================================================================
def merge_daily(db: Session, agg: DailyAggregate) -> None:
    """Add one daily partial into daily_stats and user_activity (caller manages commit)."""
    existing = daily_stats_crud.get(db, agg.user_id, agg.date, for_update=True)
    if existing is not None:
        daily_stats_crud.increment(
            db,
            user_id=agg.user_id,
            period=agg.date,
            total_time=agg.total_time,
            heartbeats=agg.heartbeats,
            languages=merge_languages(existing.languages, agg.languages),
        )
    else:
        daily_stats_crud.create(db, agg=agg)

    user_activity_crud.upsert(
        db,
        user_id=agg.user_id,
        day=agg.date,
        total_time=agg.total_time,
    )


def merge_weekly(db: Session, agg: WeeklyAggregate) -> None:
    existing = weekly_stats_crud.get(db, agg.user_id, agg.week_start, for_update=True)
    if existing is not None:
        weekly_stats_crud.increment(
            db,
            user_id=agg.user_id,
            period=agg.week_start,
            total_time=agg.total_time,
            heartbeats=agg.heartbeats,
            languages=merge_languages(existing.languages, agg.languages),
        )
    else:
        weekly_stats_crud.create(db, agg=agg)


# =============================================================================
# 잡 실행
# =============================================================================
def _lease_holder() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"


def aggregate_activity_data(
    ingest_db: Session,
    analytics_db: Optional[Session] = None,
    *,
    batch_size: Optional[int] = None,
    use_lease: Optional[bool] = None,
    now: Optional[datetime] = None,
) -> AggregationResult:
    """Run one catch-up pass over unprocessed activity events.

    Args:
        ingest_db: Session on the DB holding activity_events and checkpoints.
        analytics_db: Session on the summary DB. Defaults to *ingest_db*, in
            which case merges and checkpoint commit as one transaction.
        batch_size: Max events per run; ``0`` means unlimited. ``None`` falls
            back to ``config.AGGREGATION_BATCH_SIZE``.
        use_lease: Guard the run with the advisory lease. Defaults to
            ``config.AGGREGATION_USE_LEASE``.
        now: Clock override for the lease.

    Raises:
        CorruptWatermarkError: latest checkpoint cannot be parsed.
        Exception: any store failure; nothing is committed in that case.
    """
    if analytics_db is None:
        analytics_db = ingest_db
    if use_lease is None:
        use_lease = config.AGGREGATION_USE_LEASE
    if batch_size is None:
        batch_size = config.AGGREGATION_BATCH_SIZE

    if not use_lease:
        return _run_batch(ingest_db, analytics_db, batch_size=batch_size)

    lease_name = config.AGGREGATION_LEASE_NAME
    holder = _lease_holder()
    acquired = lease_crud.try_acquire(
        ingest_db,
        name=lease_name,
        holder=holder,
        now=now or datetime.now(timezone.utc),
        ttl_seconds=config.AGGREGATION_LEASE_SECONDS,
    )
    if not acquired:
        logger.warning("Aggregation skipped: lease %r is held by another run", lease_name)
        return AggregationResult(status="locked")

    try:
        return _run_batch(ingest_db, analytics_db, batch_size=batch_size)
    finally:
        try:
            lease_crud.release(ingest_db, name=lease_name, holder=holder)
        except Exception:
            # lease 는 만료 시각이 지나면 다음 실행이 가져간다
            logger.warning("Failed to release lease %r (holder=%s)", lease_name, holder, exc_info=True)


def _run_batch(ingest_db: Session, analytics_db: Session, *, batch_size: int) -> AggregationResult:
    logger.info("Starting activity data aggregation...")
    shared = ingest_db is analytics_db

    try:
        lower_bound = resolve_lower_bound(ingest_db)
        events = activity_event_crud.list_after(ingest_db, lower_bound, limit=batch_size or None)

        if not events:
            ingest_db.rollback()
            logger.info("No new events to aggregate")
            return AggregationResult(status="noop", lower_bound=lower_bound)

        logger.info(
            "Processing %d events from %s",
            len(events),
            lower_bound if lower_bound is not None else "beginning",
        )

        daily, weekly = fold_events(events)

        for agg in daily.values():
            merge_daily(analytics_db, agg)
        for agg in weekly.values():
            merge_weekly(analytics_db, agg)

        checkpoint = commit_checkpoint(ingest_db, events)
        result = AggregationResult(
            status="aggregated",
            event_count=len(events),
            daily_count=len(daily),
            weekly_count=len(weekly),
            lower_bound=lower_bound,
            watermark_start=checkpoint.watermark_start,
            watermark_end=checkpoint.watermark_end,
        )

        analytics_db.commit()
        if not shared:
            ingest_db.commit()

    except Exception:
        analytics_db.rollback()
        if not shared:
            ingest_db.rollback()
        logger.exception("Error during aggregation")
        raise

    logger.info(
        "Successfully aggregated %d events into %d daily and %d weekly records (checkpoint %s-%s)",
        result.event_count,
        result.daily_count,
        result.weekly_count,
        result.watermark_start,
        result.watermark_end,
    )
    return result
