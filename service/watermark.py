# service/watermark.py
"""Checkpoint log protocol for the aggregation job.

Each successful run appends one ``ingestion_checkpoints`` row covering the
event ids it folded. The next run's lower bound is the latest row's
``watermark_end`` and events are fetched with ``id > bound``, so consecutive
runs neither overlap nor leave gaps. Nothing here is cached between runs:
every call re-reads the log.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from sqlalchemy.orm import Session

from crud.ingest import checkpoint_crud
from models.ingest import ActivityEvent, IngestionCheckpoint
from service.errors import CorruptWatermarkError

logger = logging.getLogger(__name__)


def parse_watermark(value: Any, *, checkpoint_id: Optional[int] = None) -> int:
    """Strictly parse a stored bound. Only plain ASCII digits are accepted."""
    if not isinstance(value, str) or not value.isascii() or not value.isdigit():
        raise CorruptWatermarkError(value, checkpoint_id=checkpoint_id)
    return int(value)


def resolve_lower_bound(db: Session) -> Optional[int]:
    """Exclusive lower bound for the next fetch, ``None`` on a cold start."""
    latest = checkpoint_crud.latest(db)
    if latest is None:
        logger.info("No checkpoint found; aggregating from the beginning of activity_events")
        return None
    return parse_watermark(latest.watermark_end, checkpoint_id=latest.id)


def commit_checkpoint(db: Session, events: Sequence[ActivityEvent]) -> IngestionCheckpoint:
    """Append the checkpoint for a fetched batch (caller manages commit).

    Args:
        db: Ingest DB session.
        events: The batch exactly as fetched, ascending by id.
    """
    if not events:
        raise ValueError("commit_checkpoint() requires at least one event.")
    return checkpoint_crud.append(
        db,
        start=str(events[0].id),
        end=str(events[-1].id),
        count=len(events),
    )


def audit_checkpoints(db: Session) -> list[str]:
    """Check the whole log for overlapping or malformed ranges.

    Returns:
        Human-readable problems; an empty list means the log is clean.
    """
    problems: list[str] = []
    ranges: list[tuple[int, int, IngestionCheckpoint]] = []

    for cp in checkpoint_crud.list_all(db):
        try:
            start = parse_watermark(cp.watermark_start, checkpoint_id=cp.id)
            end = parse_watermark(cp.watermark_end, checkpoint_id=cp.id)
        except CorruptWatermarkError as exc:
            problems.append(str(exc))
            continue
        if start > end:
            problems.append(f"checkpoint {cp.id}: start {start} > end {end}")
            continue
        if cp.record_count > end - start + 1:
            problems.append(
                f"checkpoint {cp.id}: record_count {cp.record_count} exceeds id span [{start}, {end}]"
            )
        ranges.append((start, end, cp))

    ranges.sort(key=lambda r: r[0])
    for (prev_start, prev_end, prev_cp), (start, end, cp) in zip(ranges, ranges[1:]):
        if start <= prev_end:
            problems.append(
                f"checkpoint {cp.id}: range [{start}, {end}] overlaps "
                f"checkpoint {prev_cp.id} [{prev_start}, {prev_end}]"
            )
    return problems
