"""
Marker placement policy.

Markers are the narrow boxes drawn beside the primary detection. Placement is
a display heuristic, so it is kept behind a small callable interface and the
presentation layer only depends on MarkerPolicy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Sequence, Tuple

from models.detection import NormalizedBox, PixelRect


MarkerPolicy = Callable[[PixelRect], Dict[str, PixelRect]]


@dataclass(frozen=True)
class MarkerSpec:
    name: str
    width: float


DEFAULT_MARKERS: Tuple[MarkerSpec, ...] = (
    MarkerSpec(name="green", width=75.0),
    MarkerSpec(name="yellow", width=50.0),
)


class AdjacentMarkerPolicy:
    """
    Place markers to the left of the primary rect, edge to edge.

    The first spec touches the primary rect's left edge, each following spec
    touches the previous marker. Every marker shares the primary rect's height
    and vertical center.
    """

    def __init__(self, specs: Sequence[MarkerSpec] = DEFAULT_MARKERS):
        names = [s.name for s in specs]
        if len(set(names)) != len(names):
            raise ValueError(f"marker names must be unique: {names}")
        self.specs = tuple(specs)

    def __call__(self, primary: PixelRect) -> Dict[str, PixelRect]:
        markers: Dict[str, PixelRect] = {}
        left_edge = primary.x
        for spec in self.specs:
            mid_x = left_edge - spec.width / 2
            markers[spec.name] = PixelRect.centered(mid_x, primary.mid_y, spec.width, primary.height)
            left_edge -= spec.width
        return markers


def normalize_markers(
    markers: Mapping[str, PixelRect],
    view_size: Tuple[float, float],
) -> Dict[str, NormalizedBox]:
    """Express marker rects as fractions of the view for the frame history."""
    return {name: rect.normalized(view_size) for name, rect in markers.items()}
