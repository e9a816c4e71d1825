"""
Frame geometry transform.

Model boxes are normalized with a bottom-left origin. The preview is drawn
with a top-left origin and is aspect-filled, which crops the frame
vertically; the letterbox offset shifts boxes back onto the visible area.

All functions here are pure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from models.detection import NormalizedBox, PixelRect


ViewSize = Tuple[float, float]


def _check(view_size: ViewSize, aspect_ratio: float) -> None:
    view_w, view_h = view_size
    if view_w <= 0 or view_h <= 0:
        raise ValueError(f"view size must be positive, got {view_size}")
    if aspect_ratio <= 0:
        raise ValueError(f"aspect_ratio must be positive, got {aspect_ratio}")


def letterbox_offset(view_height: float, aspect_ratio: float) -> float:
    """
    Vertical offset introduced by aspect-fill scaling.

    Zero when aspect_ratio == 1 and negative when the source is wider than
    tall. Not clamped.
    """
    return view_height * (1.0 - aspect_ratio) / 2.0


def to_view_rect(box: NormalizedBox, view_size: ViewSize, aspect_ratio: float) -> PixelRect:
    """
    Map a normalized (bottom-left origin) box to a pixel rect in the view.

    Args:
        box: Normalized detection box.
        view_size: (width, height) of the destination view in pixels.
        aspect_ratio: Native aspect ratio of the camera.

    Returns:
        PixelRect with a top-left origin.
    """
    _check(view_size, aspect_ratio)
    view_w, view_h = view_size

    x = box.x * view_w
    y = (1.0 - box.y - box.height) * view_h
    w = box.width * view_w
    h = box.height * view_h

    return PixelRect(x=x, y=y - letterbox_offset(view_h, aspect_ratio), width=w, height=h)


def from_view_rect(rect: PixelRect, view_size: ViewSize, aspect_ratio: float) -> NormalizedBox:
    """Inverse of to_view_rect."""
    _check(view_size, aspect_ratio)
    view_w, view_h = view_size

    w = rect.width / view_w
    h = rect.height / view_h
    flipped_y = (rect.y + letterbox_offset(view_h, aspect_ratio)) / view_h

    return NormalizedBox(x=rect.x / view_w, y=1.0 - flipped_y - h, width=w, height=h)


@dataclass(frozen=True)
class GeometryParams:
    """
    Attributes:
        view_size: (width, height) of the preview in pixels.
        aspect_ratio: Native camera aspect ratio, queried once at setup.
    """
    view_size: ViewSize
    aspect_ratio: float

    def __post_init__(self) -> None:
        _check(self.view_size, self.aspect_ratio)


@dataclass(frozen=True)
class GeometryTransform:
    """Binds GeometryParams to the transform functions."""
    params: GeometryParams

    @property
    def view_size(self) -> ViewSize:
        return self.params.view_size

    def to_view(self, box: NormalizedBox) -> PixelRect:
        return to_view_rect(box, self.params.view_size, self.params.aspect_ratio)

    def from_view(self, rect: PixelRect) -> NormalizedBox:
        return from_view_rect(rect, self.params.view_size, self.params.aspect_ratio)
