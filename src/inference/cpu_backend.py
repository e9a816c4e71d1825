"""
Ultralytics YOLO backend running on the CPU.

Each detection request loads its own instance so the primary and secondary
models never share a handle across worker threads.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import numpy as np

from models.detection import Detection, NormalizedBox
from .backend import InferenceBackend, ModelLoadError


@dataclass(frozen=True)
class CpuYoloConfig:
    """
    Attributes:
        model: Path to the YOLO weights file.
        conf_threshold: Minimum confidence kept by the model's own NMS pass.
        iou_threshold: IoU threshold for NMS.
        class_name_overrides: Replace the label the weights report for a class id.
    """
    model: str
    conf_threshold: float = 0.25
    iou_threshold: float = 0.45
    class_name_overrides: Optional[Dict[int, str]] = None


def _as_array(tensor: Any) -> np.ndarray:
    # Ultralytics hands back torch tensors; tests hand back arrays.
    if hasattr(tensor, "cpu"):
        return tensor.cpu().numpy()
    return np.asarray(tensor)


def decode_result(
    result: Any,
    overrides: Optional[Mapping[int, str]] = None,
) -> List[Detection]:
    """
    Convert one Ultralytics ``Results`` object into detections.

    ``boxes.xyxyn`` is normalized with a top-left origin; boxes are flipped to
    the bottom-left convention used everywhere else.
    """
    boxes = getattr(result, "boxes", None)
    if boxes is None:
        return []
    names = getattr(result, "names", None) or {}
    overrides = overrides or {}

    corners = _as_array(boxes.xyxyn)
    scores = _as_array(boxes.conf)
    class_ids = _as_array(boxes.cls).astype(int)

    detections = []
    for (x1, y1, x2, y2), score, class_id in zip(corners, scores, class_ids):
        class_id = int(class_id)
        label = overrides.get(class_id) or names.get(class_id) or str(class_id)
        box = NormalizedBox.from_xyxyn_top_left(float(x1), float(y1), float(x2), float(y2))
        detections.append(Detection(label=label, confidence=float(score), box=box))
    return detections


class UltralyticsCpuBackend(InferenceBackend):
    """
    Example:
        backend = UltralyticsCpuBackend(CpuYoloConfig(model="models/rez_v7_tiny.pt"))
        detections = backend.detect(frame)
    """

    def __init__(self, cfg: CpuYoloConfig):
        self.cfg = cfg
        try:
            from ultralytics import YOLO  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ModelLoadError(
                "Ultralytics is not installed. Install with `pip install ultralytics`."
            ) from e

        try:
            self._model = YOLO(cfg.model)
        except Exception as e:
            raise ModelLoadError(f"Cannot load weights {cfg.model}: {e}") from e

    def detect(self, frame: np.ndarray) -> List[Detection]:
        results = self._model.predict(
            source=frame,
            conf=self.cfg.conf_threshold,
            iou=self.cfg.iou_threshold,
            verbose=False,
        )
        if not results:
            return []
        return decode_result(results[0], self.cfg.class_name_overrides)
