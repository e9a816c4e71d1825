"""
Tests for the frame history store.
"""

import pytest

from models.detection import NormalizedBox
from models.frame_record import FrameFields, FrameRecord
from storage.frame_history import FrameCursorError, FrameHistoryStore


GREEN = NormalizedBox(0.1, 0.1, 0.2, 0.2)
YELLOW = NormalizedBox(0.0, 0.1, 0.1, 0.2)


@pytest.fixture
def store():
    return FrameHistoryStore()


class TestUpdate:
    def test_append_at_count(self, store):
        record = store.update(0, FrameFields(points=[(0.5, 0.5)]))

        assert store.record_count == 1
        assert record.index == 0
        assert store.get(0).points == ((0.5, 0.5),)

    def test_merge_keeps_prior_fields(self, store):
        store.update(0, FrameFields(rects={"green": GREEN}))
        store.update(0, FrameFields(points=[(0.3, 0.4)]))
        store.update(0, FrameFields(rects={"yellow": YELLOW}))

        record = store.get(0)
        assert store.record_count == 1
        assert record.rects == {"green": GREEN, "yellow": YELLOW}
        assert record.points == ((0.3, 0.4),)

    def test_merge_replaces_same_rect_name(self, store):
        store.update(0, FrameFields(rects={"green": GREEN}))
        store.update(0, FrameFields(rects={"green": YELLOW}))

        assert store.get(0).rects["green"] == YELLOW

    def test_past_end_raises(self, store):
        store.update(0, FrameFields(points=[(0.1, 0.1)]))

        with pytest.raises(FrameCursorError):
            store.update(2, FrameFields(points=[(0.1, 0.1)]))
        assert store.record_count == 1

    def test_negative_raises(self, store):
        with pytest.raises(IndexError):
            store.update(-1, FrameFields())

    def test_indexes_are_dense(self, store):
        for i in range(5):
            store.update(i, FrameFields(points=[(i / 10, i / 10)]))

        assert [r.index for r in store.records()] == list(range(5))

    def test_records_snapshot_is_immutable(self, store):
        store.update(0, FrameFields(points=[]))
        snapshot = store.records()
        store.update(1, FrameFields(points=[]))

        assert len(snapshot) == 1
        assert isinstance(snapshot, tuple)


class TestCursor:
    def test_advance_increments(self, store):
        assert store.advance() == 1
        assert store.advance() == 2
        assert store.cursor == 2

    def test_retreat_noop_at_zero(self, store):
        assert store.retreat() == 0
        assert store.cursor == 0

    def test_retreat_after_advance(self, store):
        store.advance()
        store.advance()
        assert store.retreat() == 1

    def test_current_record_empty_when_uncommitted(self, store):
        store.advance()

        record = store.current_record()

        assert record == FrameRecord(index=1)
        assert record.is_empty

    def test_update_current_appends_at_cursor(self, store):
        store.update_current(FrameFields(rects={"green": GREEN}))

        assert store.current_record().rects == {"green": GREEN}

    def test_update_current_past_end_raises(self, store):
        store.advance()

        with pytest.raises(FrameCursorError):
            store.update_current(FrameFields(rects={"green": GREEN}))

    def test_get_out_of_range(self, store):
        assert store.get(0) is None
        assert store.get(-1) is None
