"""
Per-frame annotation records kept by the frame history store.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Tuple

from .detection import NormalizedBox

Point = Tuple[float, float]


@dataclass(frozen=True)
class FrameFields:
    """
    A partial update for a frame record.

    Attributes:
        rects: Named marker rectangles (e.g. "green", "yellow") normalized by
            the view size, top-left origin. Upserted by name.
        points: Auxiliary point list (secondary detection centers). Replaces
            any existing list when given.
    """
    rects: Optional[Mapping[str, NormalizedBox]] = None
    points: Optional[List[Point]] = None


@dataclass(frozen=True)
class FrameRecord:
    """
    Annotation data committed for one frame.

    Attributes:
        index: Position of the record in the history (dense, from 0).
        rects: Named marker rectangles.
        points: Auxiliary point list, None if none was recorded.
    """
    index: int
    rects: Dict[str, NormalizedBox] = field(default_factory=dict)
    points: Optional[Tuple[Point, ...]] = None

    @property
    def is_empty(self) -> bool:
        return not self.rects and self.points is None

    def merged(self, fields: FrameFields) -> "FrameRecord":
        """Return a copy with ``fields`` merged in; existing fields are kept."""
        rects = dict(self.rects)
        if fields.rects:
            rects.update(fields.rects)
        points = self.points
        if fields.points is not None:
            points = tuple((float(x), float(y)) for x, y in fields.points)
        return replace(self, rects=rects, points=points)

    @classmethod
    def from_fields(cls, index: int, fields: FrameFields) -> "FrameRecord":
        return cls(index=index).merged(fields)
