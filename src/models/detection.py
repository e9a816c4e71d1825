"""
Detection models: normalized model boxes, view-space rectangles and detections.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class NormalizedBox:
    """
    A rectangle expressed as fractions of the image size.

    Boxes produced by the inference backends use a bottom-left origin,
    i.e. ``y`` is the distance of the box's lower edge from the bottom
    of the image.

    Attributes:
        x: Left edge as a fraction of image width.
        y: Lower edge as a fraction of image height (bottom-left origin).
        width: Width as a fraction of image width.
        height: Height as a fraction of image height.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    def center_top_left(self) -> Tuple[float, float]:
        """Return the box center with the y axis flipped to a top-left origin."""
        return (self.mid_x, 1.0 - self.mid_y)

    def scaled(self, factor: float) -> "NormalizedBox":
        """Shrink (factor < 1) or grow the box about its center."""
        w = self.width * factor
        h = self.height * factor
        return NormalizedBox(
            x=self.x + (self.width - w) / 2,
            y=self.y + (self.height - h) / 2,
            width=w,
            height=h,
        )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x, self.y, self.width, self.height)

    @classmethod
    def from_xyxyn_top_left(cls, x1: float, y1: float, x2: float, y2: float) -> "NormalizedBox":
        """
        Adapter: convert a top-left origin (x1, y1, x2, y2) box, as emitted by
        YOLO style detectors, into the bottom-left origin convention.
        """
        return cls(x=x1, y=1.0 - y2, width=x2 - x1, height=y2 - y1)


@dataclass(frozen=True)
class PixelRect:
    """
    A rectangle in view pixels with a top-left origin.
    """
    x: float
    y: float
    width: float
    height: float

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2

    def normalized(self, view_size: Tuple[int, int]) -> NormalizedBox:
        """Express the rect as fractions of the view size (origin unchanged)."""
        view_w, view_h = view_size
        return NormalizedBox(
            x=self.x / view_w,
            y=self.y / view_h,
            width=self.width / view_w,
            height=self.height / view_h,
        )

    def as_int_xyxy(self) -> Tuple[int, int, int, int]:
        """Return integer (x1, y1, x2, y2) corners for drawing."""
        return (
            int(round(self.x)),
            int(round(self.y)),
            int(round(self.x + self.width)),
            int(round(self.y + self.height)),
        )

    @classmethod
    def centered(cls, mid_x: float, mid_y: float, width: float, height: float) -> "PixelRect":
        """Create a rect from its center point and size."""
        return cls(x=mid_x - width / 2, y=mid_y - height / 2, width=width, height=height)


@dataclass(frozen=True)
class Detection:
    """
    A single labelled detection from one inference pass.

    Attributes:
        label: Class label reported by the model.
        confidence: Detection confidence score (0-1).
        box: Normalized box, bottom-left origin.
    """
    label: str
    confidence: float
    box: NormalizedBox
