"""
One aggregation pass + session cache sweep. Invoked by the external scheduler
(cron, k8s CronJob, ...) every few minutes.

Flow:
  activity_events (ingest DB)
    -> daily_stats / weekly_stats / user_activity (analytics DB)
    -> ingestion_checkpoints (ingest DB)
  session_cache: expired rows deleted (non-fatal)

Exit code 1 when aggregation failed so the scheduler can alert/retry. The
session cache sweep runs on every tick, including failed ones.
Run only one schedule per deployment; overlapping runs are skipped via the
aggregation lease, not queued.

Usage:
    python -m script.run_aggregation
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

from sqlalchemy.orm import Session

from core import config
from service.aggregation import aggregate_activity_data
from service.session_cache import cleanup_session_cache

log = logging.getLogger(__name__)


def run(ingest_db: Optional[Session] = None, analytics_db: Optional[Session] = None) -> int:
    """One scheduled tick. Sessions passed in are left open for the caller."""
    owned = ingest_db is None
    if owned:
        # 엔진은 실제 실행 시점에만 만든다 (DB URL 없으면 여기서 RuntimeError)
        from database.session import AnalyticsSessionLocal, IngestSessionLocal, same_database

        ingest_db = IngestSessionLocal()
        analytics_db = ingest_db if same_database() else AnalyticsSessionLocal()
    elif analytics_db is None:
        analytics_db = ingest_db

    try:
        exit_code = 0
        try:
            result = aggregate_activity_data(ingest_db, analytics_db)
            log.info("Aggregation finished: %s", result.model_dump())
        except Exception:
            log.error("Aggregation run failed; no checkpoint was written")
            ingest_db.rollback()
            exit_code = 1

        # 집계 실패와 무관하게 매 tick 마다 sweep
        cleanup_session_cache(ingest_db)
        return exit_code
    finally:
        if owned:
            if analytics_db is not ingest_db:
                analytics_db.close()
            ingest_db.close()


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    sys.exit(run())
