"""
Camera and video-file capture through cv2.VideoCapture.

``device_id`` is either a camera index (int) or the path of a recorded
session (str), so a run can be replayed against the same models.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Optional, Union

import cv2
import numpy as np

from models.config import CameraConfig
from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


_ROTATIONS = {
    90: cv2.ROTATE_90_CLOCKWISE,
    180: cv2.ROTATE_180,
    270: cv2.ROTATE_90_COUNTERCLOCKWISE,
}

# cv2.flip codes keyed by (horizontal, vertical)
_FLIPS = {
    (True, False): 1,
    (False, True): 0,
    (True, True): -1,
}


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Camera index or video file path.
        buffer_size: Capture buffer size for cameras; 1 keeps the preview live.
        max_retries: Attempts to open the device before giving up.
        rotate: Clockwise rotation in degrees (0, 90, 180, 270).
        flip_horizontal: Mirror left/right after rotating.
        flip_vertical: Mirror top/bottom after rotating.
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: CameraConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter from the typed ``camera`` config section."""
        return cls(
            source_id=source_id,
            resolution=tuple(camera_cfg.resolution) if camera_cfg.resolution else None,
            fps=camera_cfg.fps,
            aspect_ratio=camera_cfg.aspect_ratio,
            device_id=camera_cfg.device_id,
            max_retries=camera_cfg.max_retries,
            rotate=camera_cfg.rotate,
            flip_horizontal=camera_cfg.flip_horizontal,
            flip_vertical=camera_cfg.flip_vertical,
        )


class OpenCVSource(ObservationSource):
    """
    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id=0)) as source:
            aspect = source.aspect_ratio
            for frame_data in source:
                session.submit(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self.cfg = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self.cfg.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        self._cap = self._connect()
        self._configure(self._cap)
        self._detect_aspect_ratio(self._cap)
        self._is_open = True
        self._frame_index = 0

        logging.info(
            f"Camera ready: source_id={self.source_id}, device={self.device_id}, "
            f"aspect_ratio={self.aspect_ratio:.3f}"
        )

    def _connect(self) -> cv2.VideoCapture:
        attempts = max(1, self.cfg.max_retries)
        for attempt in range(1, attempts + 1):
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                return cap
            cap.release()
            if attempt < attempts:
                wait_time = min(2 ** attempt, 10)
                logging.warning(
                    f"Failed to open device {self.device_id} "
                    f"(attempt {attempt}/{attempts}), retrying in {wait_time}s"
                )
                time.sleep(wait_time)
        raise RuntimeError(f"Failed to open device {self.device_id} after {attempts} attempts")

    def _configure(self, cap: cv2.VideoCapture) -> None:
        # Files play at their recorded size and rate.
        if not isinstance(self.device_id, int):
            return
        if self.cfg.resolution:
            w, h = self.cfg.resolution
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if self.cfg.fps:
            cap.set(cv2.CAP_PROP_FPS, self.cfg.fps)
        cap.set(cv2.CAP_PROP_BUFFERSIZE, self.cfg.buffer_size)

    def _detect_aspect_ratio(self, cap: cv2.VideoCapture) -> None:
        w = cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        h = cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        logging.info(f"Capture settings - Resolution: ({w}x{h}), FPS: {cap.get(cv2.CAP_PROP_FPS)}")

        if self.cfg.aspect_ratio is not None or w <= 0 or h <= 0:
            return
        if self.cfg.rotate in (90, 270):
            w, h = h, w
        self._aspect_ratio = w / h

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._cap is None:
            return None

        ok, frame = self._cap.read()
        if not ok or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            else:
                logging.warning("Failed to read frame")
            return None

        self._frame_index += 1
        return FrameData(
            frame=self._orient(frame),
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _orient(self, frame: np.ndarray) -> np.ndarray:
        rotation = _ROTATIONS.get(self.cfg.rotate)
        if rotation is not None:
            frame = cv2.rotate(frame, rotation)
        flip_code = _FLIPS.get((self.cfg.flip_horizontal, self.cfg.flip_vertical))
        if flip_code is not None:
            frame = cv2.flip(frame, flip_code)
        return frame

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        if self._is_open:
            logging.info(f"Camera released: source_id={self.source_id}")
        self._is_open = False


def create_source_from_config(camera_cfg: CameraConfig, source_id: str = "main-camera") -> OpenCVSource:
    """Factory function to create the capture source from camera config."""
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id))
