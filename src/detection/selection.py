"""
Result selection rules for the two detection requests.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from models.detection import Detection


def select_primary(detections: Iterable[Detection], label: str) -> Optional[Detection]:
    """
    Highest-confidence detection carrying ``label``.

    Ties keep the first one observed. Returns None when nothing matches.
    """
    best: Optional[Detection] = None
    for det in detections:
        if det.label != label:
            continue
        if best is None or det.confidence > best.confidence:
            best = det
    return best


def collect_matches(detections: Iterable[Detection], label: str) -> List[Detection]:
    """Every detection carrying ``label``, in model order, unfiltered."""
    return [det for det in detections if det.label == label]
