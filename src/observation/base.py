"""
Frame source contract.

The capture worker only talks to ObservationSource, so a live camera and a
recorded video file can be swapped without touching the pipeline.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Settings shared by every source.

    Attributes:
        source_id: Name used in logs and on delivered frames.
        resolution: Requested (width, height); None keeps the device default.
        fps: Requested frame rate; None keeps the device default.
        aspect_ratio: Width / height of the field of view. None means the
            source reports what it actually opened.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None
    aspect_ratio: Optional[float] = None


class ObservationSource(ABC):
    """
    open() -> aspect_ratio (once) -> read() ... -> close()

    Subclasses set ``self._aspect_ratio`` during open() when they can measure
    it. Sources are context managers and iterate until read() returns None.
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0
        self._aspect_ratio: Optional[float] = config.aspect_ratio

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Frames delivered since open()."""
        return self._frame_index

    @property
    def aspect_ratio(self) -> float:
        """
        Field-of-view width / height.

        Precedence: configured override, value measured on open(), configured
        resolution, then 1.0.
        """
        if self._aspect_ratio:
            return self._aspect_ratio
        if self._config.resolution and self._config.resolution[1]:
            w, h = self._config.resolution
            return w / h
        return 1.0

    @abstractmethod
    def open(self) -> None:
        """Acquire the device. Raises RuntimeError when it cannot be opened."""

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Next frame, or None when nothing could be read."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        while True:
            frame_data = self.read()
            if frame_data is None:
                return
            yield frame_data
