"""
Frame history store.

An in-memory, append-only log of per-frame annotation data (marker rects and
auxiliary point lists) with a "current frame" cursor used for navigation.

The store is not locked. Every call must happen on the presentation context
(see runtime.dispatcher), which is the single writer.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from models.frame_record import FrameFields, FrameRecord


class FrameCursorError(IndexError):
    """Raised when an update targets an index past the end of the history."""


class FrameHistoryStore:
    """
    Append-or-update log keyed by frame index.

    Records are never reordered or deleted. Updating an existing index
    merges into it; updating index == record_count appends.
    """

    def __init__(self) -> None:
        self._records: List[FrameRecord] = []
        self._cursor = 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def record_count(self) -> int:
        return len(self._records)

    def update(self, cursor: int, fields: FrameFields) -> FrameRecord:
        """
        Merge ``fields`` into the record at ``cursor`` or append a new one.

        Raises:
            FrameCursorError: If cursor is negative or greater than record_count.
        """
        count = len(self._records)
        if cursor < 0 or cursor > count:
            raise FrameCursorError(
                f"frame index {cursor} out of range (record_count={count})"
            )

        if cursor == count:
            record = FrameRecord.from_fields(cursor, fields)
            self._records.append(record)
            logging.debug(f"Frame history: appended record {cursor}")
        else:
            record = self._records[cursor].merged(fields)
            self._records[cursor] = record
        return record

    def update_current(self, fields: FrameFields) -> FrameRecord:
        """Update the record under the cursor."""
        return self.update(self._cursor, fields)

    def advance(self) -> int:
        self._cursor += 1
        return self._cursor

    def retreat(self) -> int:
        if self._cursor > 0:
            self._cursor -= 1
        return self._cursor

    def current_record(self) -> FrameRecord:
        """Record under the cursor, or an empty record if none was committed yet."""
        if self._cursor < len(self._records):
            return self._records[self._cursor]
        return FrameRecord(index=self._cursor)

    def get(self, index: int) -> Optional[FrameRecord]:
        if 0 <= index < len(self._records):
            return self._records[index]
        return None

    def records(self) -> Tuple[FrameRecord, ...]:
        """Snapshot of all committed records."""
        return tuple(self._records)
