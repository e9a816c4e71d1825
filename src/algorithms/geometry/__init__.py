"""
Frame geometry: mapping model boxes onto the preview and placing markers.

- transform: normalized box <-> view pixel rect, with letterbox correction
- markers: replaceable policy for the marker boxes drawn beside a detection
"""

from .transform import (
    GeometryParams,
    GeometryTransform,
    from_view_rect,
    letterbox_offset,
    to_view_rect,
)
from .markers import AdjacentMarkerPolicy, MarkerPolicy, MarkerSpec, normalize_markers

__all__ = [
    "GeometryParams",
    "GeometryTransform",
    "from_view_rect",
    "letterbox_offset",
    "to_view_rect",
    "AdjacentMarkerPolicy",
    "MarkerPolicy",
    "MarkerSpec",
    "normalize_markers",
]
