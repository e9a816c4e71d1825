"""
Typed models for the DoubleCheck application.

These models replace the loose dictionaries passed between the capture,
detection and presentation layers.
"""

from .frame import FrameData
from .detection import Detection, NormalizedBox, PixelRect
from .frame_record import FrameFields, FrameRecord, Point
from .config import (
    Config,
    CameraConfig,
    DetectionConfig,
    DisplayConfig,
    MarkerConfig,
    ModelConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "NormalizedBox",
    "PixelRect",
    # History
    "FrameFields",
    "FrameRecord",
    "Point",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
    "DisplayConfig",
    "MarkerConfig",
    "ModelConfig",
]
