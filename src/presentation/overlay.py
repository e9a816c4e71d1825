"""
Overlay drawing helpers.

Kept free of state so the view can change layout without touching drawing.
Colors are BGR.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from models.detection import PixelRect


Color = Tuple[int, int, int]

COLOR_PRIMARY = (0, 255, 0)      # Green
COLOR_SECONDARY = (0, 165, 255)  # Orange
COLOR_TEXT = (255, 255, 255)


def fit_aspect_fill(frame: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """
    Scale ``frame`` to cover ``size`` (width, height) and center-crop the excess.
    """
    out_w, out_h = size
    h, w = frame.shape[:2]
    scale = max(out_w / w, out_h / h)
    new_w = max(out_w, int(round(w * scale)))
    new_h = max(out_h, int(round(h * scale)))
    resized = cv2.resize(frame, (new_w, new_h), interpolation=cv2.INTER_LINEAR)
    x0 = (new_w - out_w) // 2
    y0 = (new_h - out_h) // 2
    return resized[y0:y0 + out_h, x0:x0 + out_w]


def draw_rect(
    image: np.ndarray,
    rect: PixelRect,
    color: Color,
    thickness: int = 3,
    label: Optional[str] = None,
) -> None:
    """Draw a rectangle outline, optionally with a filled label tab."""
    x1, y1, x2, y2 = rect.as_int_xyxy()
    cv2.rectangle(image, (x1, y1), (x2, y2), color, thickness)
    if not label:
        return

    font = cv2.FONT_HERSHEY_SIMPLEX
    (tw, th), _ = cv2.getTextSize(label, font, 0.5, 1)
    cv2.rectangle(image, (x1, y1 - th - 6), (x1 + tw + 4, y1), color, -1)
    cv2.putText(image, label, (x1 + 2, y1 - 4), font, 0.5, COLOR_TEXT, 1)


def draw_layer(
    image: np.ndarray,
    rects: Iterable[Tuple[PixelRect, Optional[str]]],
    color: Color,
    thickness: int = 3,
) -> int:
    """Draw a set of labelled rects in one color. Returns the number drawn."""
    drawn = 0
    for rect, label in rects:
        draw_rect(image, rect, color, thickness, label)
        drawn += 1
    return drawn


def load_logo(path: Optional[str], size: int) -> Optional[np.ndarray]:
    """Load the logo and fit it into a size x size square; None if unavailable."""
    if not path:
        return None
    logo = cv2.imread(path, cv2.IMREAD_COLOR)
    if logo is None:
        logging.warning(f"Logo not found or unreadable: {path}")
        return None
    h, w = logo.shape[:2]
    scale = size / max(w, h)
    return cv2.resize(logo, (max(1, int(w * scale)), max(1, int(h * scale))))


def paste_centered(canvas: np.ndarray, image: np.ndarray, center: Tuple[int, int]) -> None:
    """Copy ``image`` onto ``canvas`` centered at ``center``, clipped to the canvas."""
    ih, iw = image.shape[:2]
    ch, cw = canvas.shape[:2]
    x0 = center[0] - iw // 2
    y0 = center[1] - ih // 2

    cx0, cy0 = max(0, x0), max(0, y0)
    cx1, cy1 = min(cw, x0 + iw), min(ch, y0 + ih)
    if cx1 <= cx0 or cy1 <= cy0:
        return
    canvas[cy0:cy1, cx0:cx1] = image[cy0 - y0:cy1 - y0, cx0 - x0:cx1 - x0]
