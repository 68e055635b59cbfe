"""Tests for watermark resolution, checkpoint append, and the checkpoint audit."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from crud.ingest import checkpoint_crud
from service.errors import AggregationError, CorruptWatermarkError
from service.watermark import (
    audit_checkpoints,
    commit_checkpoint,
    parse_watermark,
    resolve_lower_bound,
)


class TestParseWatermark:
    def test_plain_digits(self) -> None:
        assert parse_watermark("42") == 42

    def test_beyond_64_bit(self) -> None:
        assert parse_watermark("123456789012345678901234567890") == 123456789012345678901234567890

    @pytest.mark.parametrize("value", ["", "-1", "+3", " 3", "1.5", "12abc", "1_000", "٣", None, 7])
    def test_rejects_anything_else(self, value) -> None:
        with pytest.raises(CorruptWatermarkError) as excinfo:
            parse_watermark(value, checkpoint_id=9)
        assert excinfo.value.value == value
        assert excinfo.value.checkpoint_id == 9

    def test_is_an_aggregation_error(self) -> None:
        assert issubclass(CorruptWatermarkError, AggregationError)


class TestResolveLowerBound:
    def test_cold_start(self, db: Session) -> None:
        assert resolve_lower_bound(db) is None

    def test_uses_latest_checkpoint_end(self, db: Session) -> None:
        checkpoint_crud.append(db, start="1", end="2", count=2)
        checkpoint_crud.append(db, start="3", end="10", count=8)
        db.commit()
        assert resolve_lower_bound(db) == 10

    def test_corrupt_end_fails_loudly(self, db: Session) -> None:
        checkpoint_crud.append(db, start="1", end="2", count=2)
        checkpoint_crud.append(db, start="3", end="oops", count=1)
        db.commit()
        with pytest.raises(CorruptWatermarkError):
            resolve_lower_bound(db)


class TestCommitCheckpoint:
    def test_records_first_last_and_count(self, db: Session) -> None:
        events = [SimpleNamespace(id=i) for i in (4, 5, 9)]
        cp = commit_checkpoint(db, events)
        db.commit()

        assert (cp.watermark_start, cp.watermark_end, cp.record_count) == ("4", "9", 3)
        assert cp.ingested_at is not None

    def test_refuses_empty_batch(self, db: Session) -> None:
        with pytest.raises(ValueError):
            commit_checkpoint(db, [])


class TestAuditCheckpoints:
    def test_clean_log(self, db: Session) -> None:
        checkpoint_crud.append(db, start="1", end="2", count=2)
        checkpoint_crud.append(db, start="3", end="3", count=1)
        checkpoint_crud.append(db, start="7", end="9", count=2)
        db.commit()
        assert audit_checkpoints(db) == []

    def test_overlap_reported(self, db: Session) -> None:
        checkpoint_crud.append(db, start="1", end="5", count=5)
        checkpoint_crud.append(db, start="5", end="6", count=2)
        db.commit()
        problems = audit_checkpoints(db)
        assert len(problems) == 1
        assert "overlaps" in problems[0]

    def test_malformed_rows_reported(self, db: Session) -> None:
        checkpoint_crud.append(db, start="9", end="3", count=1)
        checkpoint_crud.append(db, start="x", end="12", count=1)
        checkpoint_crud.append(db, start="20", end="21", count=5)
        db.commit()
        problems = audit_checkpoints(db)
        assert len(problems) == 3
        assert any("start 9 > end 3" in p for p in problems)
        assert any("'x'" in p for p in problems)
        assert any("record_count 5" in p for p in problems)
