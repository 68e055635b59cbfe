# service/session_cache.py
"""Session cache housekeeping.

Failures here are logged and swallowed; the sweep never breaks the caller
or the aggregation run it is scheduled next to.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from core import config
from crud.ingest import session_cache_crud

logger = logging.getLogger(__name__)


def get_session_cache_expiry(now: Optional[datetime] = None) -> datetime:
    """Expiry instant for a cache row written at *now*."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(minutes=config.SESSION_CACHE_TTL_MINUTES)


def cleanup_session_cache(db: Session, *, now: Optional[datetime] = None) -> int:
    """Delete session_cache rows that expired strictly before *now*.

    Returns:
        삭제 건수. 실패 시 0.
    """
    now = now or datetime.now(timezone.utc)
    try:
        count = session_cache_crud.delete_expired(db, now=now)
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("cleanup_session_cache failed: now=%s", now.isoformat(), exc_info=True)
        return 0

    logger.info("Cleaned up %d expired session cache entries", count)
    return count
