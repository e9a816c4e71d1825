"""
Presentation layer.

Composes the preview shown to the user: the aspect-filled camera frame with
detection overlays on top and a footer carrying the logo and the frame
history cursor. Detection results arrive as DetectionUpdate messages on the
presentation thread.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import cv2
import numpy as np

from algorithms.geometry import (
    AdjacentMarkerPolicy,
    GeometryParams,
    GeometryTransform,
    MarkerPolicy,
    MarkerSpec,
    normalize_markers,
)
from detection.session import PRIMARY, SECONDARY, DetectionUpdate
from models.config import DisplayConfig
from models.detection import Detection, PixelRect
from models.frame_record import FrameFields
from storage.frame_history import FrameCursorError, FrameHistoryStore
from .overlay import (
    COLOR_PRIMARY,
    COLOR_SECONDARY,
    COLOR_TEXT,
    Color,
    draw_layer,
    draw_rect,
    fit_aspect_fill,
    load_logo,
    paste_centered,
)


FOOTER_PADDING = 20

KEY_QUIT = ord("q")
KEY_NEXT = ord("n")
KEY_PREVIOUS = ord("p")


class PreviewWindow:
    """OpenCV window used as the presentation surface."""

    def __init__(self, name: str = "DoubleCheck"):
        self.name = name

    def show(self, image: np.ndarray) -> None:
        cv2.imshow(self.name, image)

    def poll_key(self) -> int:
        return cv2.waitKey(1) & 0xFF

    def close(self) -> None:
        cv2.destroyAllWindows()


class PresentationLayer:
    """
    Renders the preview and overlays.

    Attributes:
        transform: Maps normalized model boxes into preview pixels.
        store: Frame history; marker rects are written under its cursor.
        marker_policy: Places marker rects beside the primary box.
    """

    def __init__(
        self,
        transform: GeometryTransform,
        store: FrameHistoryStore,
        marker_policy: Optional[MarkerPolicy] = None,
        marker_colors: Optional[Dict[str, Color]] = None,
        logo: Optional[np.ndarray] = None,
        logo_size: int = 100,
        primary_color: Color = COLOR_PRIMARY,
        secondary_color: Color = COLOR_SECONDARY,
    ):
        self.transform = transform
        self.store = store
        self.marker_policy = marker_policy or AdjacentMarkerPolicy()
        self.marker_colors = marker_colors or {"green": (0, 255, 0), "yellow": (0, 255, 255)}
        self.logo = logo
        self.logo_size = logo_size
        self.primary_color = primary_color
        self.secondary_color = secondary_color

        self._primary: Tuple[Detection, ...] = ()
        self._secondary: Tuple[Detection, ...] = ()
        self._markers: Dict[str, PixelRect] = {}

    @property
    def view_size(self) -> Tuple[int, int]:
        w, h = self.transform.view_size
        return (int(w), int(h))

    @property
    def markers(self) -> Dict[str, PixelRect]:
        return dict(self._markers)

    def on_detections(self, update: DetectionUpdate) -> None:
        """Subscriber for DetectionSession updates."""
        if update.request == PRIMARY:
            self._primary = update.detections
            self._update_markers()
        elif update.request == SECONDARY:
            self._secondary = update.detections

    def _update_markers(self) -> None:
        if not self._primary:
            self._markers = {}
            return

        # Only one primary detection is ever published.
        primary_rect = self.transform.to_view(self._primary[0].box)
        self._markers = self.marker_policy(primary_rect)
        try:
            self.store.update_current(
                FrameFields(rects=normalize_markers(self._markers, self.transform.view_size))
            )
        except FrameCursorError:
            # Cursor moved past the end; markers are drawn but not recorded.
            logging.warning(
                f"Markers not recorded: cursor {self.store.cursor} is past the "
                f"end of the history (record_count={self.store.record_count})"
            )

    def compose(self, frame: np.ndarray) -> np.ndarray:
        """Build the full window image for ``frame``."""
        view_w, view_h = self.view_size
        preview = fit_aspect_fill(frame, (view_w, view_h)).copy()

        draw_layer(
            preview,
            ((self.transform.to_view(d.box), f"{d.label} {d.confidence:.2f}") for d in self._primary),
            self.primary_color,
        )
        for name, rect in self._markers.items():
            draw_rect(preview, rect, self.marker_colors.get(name, self.primary_color))
        draw_layer(
            preview,
            ((self.transform.to_view(d.box), None) for d in self._secondary),
            self.secondary_color,
        )

        footer_h = self.logo_size + 2 * FOOTER_PADDING
        canvas = np.zeros((view_h + footer_h, view_w, 3), dtype=np.uint8)
        canvas[:view_h] = preview
        if self.logo is not None:
            paste_centered(canvas, self.logo, (view_w // 2, view_h + footer_h // 2))

        cv2.putText(
            canvas, self.status_text(), (10, view_h + footer_h - 10),
            cv2.FONT_HERSHEY_SIMPLEX, 0.5, COLOR_TEXT, 1,
        )
        return canvas

    def status_text(self) -> str:
        """Footer line describing the history record under the cursor."""
        record = self.store.current_record()
        status = f"frame {self.store.cursor} / {self.store.record_count}"
        if record.is_empty:
            return status + "  (no data)"
        if record.points is not None:
            status += f"  points: {len(record.points)}"
        return status

    def handle_key(self, key: int) -> bool:
        """
        Apply a key press. Returns False when the user asked to quit.
        """
        if key == KEY_QUIT:
            return False
        if key == KEY_NEXT:
            logging.info(f"Frame history cursor -> {self.store.advance()}")
        elif key == KEY_PREVIOUS:
            logging.info(f"Frame history cursor -> {self.store.retreat()}")
        return True


def create_presentation(
    display_cfg: DisplayConfig,
    aspect_ratio: float,
    store: FrameHistoryStore,
) -> PresentationLayer:
    """
    Factory function: preview is display_cfg.view_width wide and
    view_width / aspect_ratio tall.
    """
    view_w = int(display_cfg.view_width)
    view_h = max(1, int(round(view_w / aspect_ratio)))
    transform = GeometryTransform(GeometryParams(view_size=(view_w, view_h), aspect_ratio=aspect_ratio))

    policy = AdjacentMarkerPolicy([MarkerSpec(m.name, float(m.width)) for m in display_cfg.markers])
    colors = {m.name: tuple(int(c) for c in m.color) for m in display_cfg.markers}

    return PresentationLayer(
        transform=transform,
        store=store,
        marker_policy=policy,
        marker_colors=colors,
        logo=load_logo(display_cfg.logo_path, display_cfg.logo_size),
        logo_size=display_cfg.logo_size,
    )
