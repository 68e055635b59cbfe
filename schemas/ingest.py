# schemas/ingest.py
from __future__ import annotations
from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import ConfigDict, Field
from schemas.base import ORMBase


# =========================================
# activity_events  (원장, append-only)
# =========================================
class ActivityEventCreate(ORMBase):
    model_config = ConfigDict(from_attributes=False)
    user_id: str
    timestamp: datetime
    language: Optional[str] = None
    time_spent: int = Field(default=0, ge=0)


class ActivityEventResponse(ORMBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    user_id: str
    timestamp: datetime
    language: Optional[str] = None
    time_spent: int


# =========================================
# ingestion_checkpoints 〈잡 전용: append-only〉
# =========================================
class CheckpointResponse(ORMBase):
    model_config = ConfigDict(from_attributes=True)
    id: int
    watermark_start: str
    watermark_end: str
    record_count: int
    ingested_at: datetime


# =========================================
# session_cache
# =========================================
class SessionCacheCreate(ORMBase):
    model_config = ConfigDict(from_attributes=False)
    session_key: str
    user_id: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None
    expires_at: datetime
