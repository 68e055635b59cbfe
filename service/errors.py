# service/errors.py
from __future__ import annotations

from typing import Any, Optional


class AggregationError(Exception):
    """집계 잡 실패 공통 예외"""
    pass


class CorruptWatermarkError(AggregationError):
    """Checkpoint bound that cannot be read back as an event id.

    Raised instead of falling back to a cold start: restarting from the
    beginning would double-count every event, skipping ahead would drop them.
    """

    def __init__(self, value: Any, *, checkpoint_id: Optional[int] = None):
        self.value = value
        self.checkpoint_id = checkpoint_id
        super().__init__(
            f"checkpoint {checkpoint_id}: watermark {value!r} is not a decimal event id"
        )
