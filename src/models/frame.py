"""
A camera frame as handed from the capture worker to the rest of the app.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class FrameData:
    """
    One delivered frame.

    Attributes:
        frame: BGR image, already rotated/flipped by the source.
        timestamp: Unix time the frame was read.
        frame_index: Delivery count since the source was opened, from 1.
            Independent of the frame history's indexes.
        source: Source identifier.
    """
    frame: np.ndarray
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @property
    def width(self) -> int:
        return int(self.frame.shape[1])

    @property
    def height(self) -> int:
        return int(self.frame.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height)"""
        return (self.width, self.height)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height if self.height else 1.0
