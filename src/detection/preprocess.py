"""
Frame preprocessing applied before inference.
"""

from __future__ import annotations

import cv2
import numpy as np


def to_grayscale_bgr(frame: np.ndarray) -> np.ndarray:
    """
    Desaturate a frame while keeping three channels.

    Both models were trained on desaturated input but expect a 3-channel image.
    Single-channel input is expanded as-is.
    """
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
    if frame.shape[2] == 4:
        frame = cv2.cvtColor(frame, cv2.COLOR_BGRA2BGR)
    gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    return cv2.cvtColor(gray, cv2.COLOR_GRAY2BGR)
