"""
Inference backend interface.

A backend wraps one loaded model handle. Backends return detections with
normalized, bottom-left origin boxes so every caller shares one convention.
"""

from __future__ import annotations

from typing import List, Protocol

import numpy as np

from models.detection import Detection


class ModelLoadError(RuntimeError):
    """Raised when a model handle cannot be created."""


class InferenceBackend(Protocol):
    def detect(self, frame: np.ndarray) -> List[Detection]:
        ...
