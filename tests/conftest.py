"""
Pytest configuration and shared fixtures.
"""

import os
import sys
from typing import List

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.detection import Detection, NormalizedBox  # noqa: E402


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    
    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  device_id: 0
  resolution: [640, 480]
  fps: 30

detection:
  primary:
    model: "models/rez.pt"
    label: "rez"
    box_scale: 0.8
  secondary:
    model: "models/pill.pt"
    label: "pill"

display:
  view_width: 400

log_path: "logs/test.log"
log_level: "INFO"
""")
    
    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "device_id": 0,
            "resolution": [1280, 720],
            "fps": 30,
        },
        "detection": {
            "primary": {"model": "models/rez.pt", "label": "rez", "box_scale": 0.8},
            "secondary": {"model": "models/pill.pt", "label": "pill"},
        },
        "display": {
            "view_width": 720,
            "markers": [
                {"name": "green", "width": 75},
                {"name": "yellow", "width": 50},
            ],
        },
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


def det(label: str, confidence: float, x=0.1, y=0.1, w=0.2, h=0.2) -> Detection:
    """Shorthand for building a Detection in tests."""
    return Detection(label=label, confidence=confidence, box=NormalizedBox(x, y, w, h))


class FakeBackend:
    """Inference backend returning scripted results, one per call."""

    def __init__(self, results: List = None, error: Exception = None):
        self.results = list(results or [])
        self.error = error
        self.frames = []

    def detect(self, frame):
        self.frames.append(frame)
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return []
