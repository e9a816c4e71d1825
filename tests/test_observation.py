"""
Tests for observation layer.
"""

import time
import pytest
import numpy as np
from unittest.mock import MagicMock, patch

import cv2

from observation.base import ObservationSource, ObservationConfig
from observation.opencv_source import (
    OpenCVSource,
    OpenCVSourceConfig,
    create_source_from_config,
)
from models.config import CameraConfig
from models.frame import FrameData


class MockSource(ObservationSource):
    """Mock observation source for testing."""
    
    def __init__(self, config: ObservationConfig, frames: list = None, detected_aspect: float = None):
        super().__init__(config)
        self._frames = frames or []
        self._pos = 0
        self._detected_aspect = detected_aspect
    
    def open(self) -> None:
        self._is_open = True
        self._pos = 0
        self._frame_index = 0
        if self._config.aspect_ratio is None and self._detected_aspect:
            self._aspect_ratio = self._detected_aspect
    
    def read(self) -> FrameData | None:
        if not self._is_open or self._pos >= len(self._frames):
            return None
        
        frame = self._frames[self._pos]
        self._pos += 1
        self._frame_index += 1
        
        return FrameData(
            frame=frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )
    
    def close(self) -> None:
        self._is_open = False


def _mock_capture(width=640, height=480, opened=True, frame=None):
    cap = MagicMock()
    cap.isOpened.return_value = opened
    props = {
        cv2.CAP_PROP_FRAME_WIDTH: float(width),
        cv2.CAP_PROP_FRAME_HEIGHT: float(height),
        cv2.CAP_PROP_FPS: 30.0,
    }
    cap.get.side_effect = lambda prop: props.get(prop, 0.0)
    if frame is None:
        frame = np.zeros((height, width, 3), dtype=np.uint8)
    cap.read.return_value = (True, frame)
    return cap


class TestObservationConfig:
    def test_default_config(self):
        config = ObservationConfig()
        assert config.source_id == "default"
        assert config.resolution is None
        assert config.fps is None
        assert config.aspect_ratio is None

    def test_custom_config(self):
        config = ObservationConfig(
            source_id="cam-01",
            resolution=(1920, 1080),
            fps=30,
            aspect_ratio=0.75,
        )
        assert config.source_id == "cam-01"
        assert config.resolution == (1920, 1080)
        assert config.aspect_ratio == 0.75


class TestAspectRatio:
    def test_override_wins(self):
        source = MockSource(ObservationConfig(aspect_ratio=0.75, resolution=(1920, 1080)), detected_aspect=2.0)
        source.open()
        assert source.aspect_ratio == 0.75

    def test_detected_on_open(self):
        source = MockSource(ObservationConfig(resolution=(1920, 1080)), detected_aspect=0.5)
        source.open()
        assert source.aspect_ratio == 0.5

    def test_falls_back_to_resolution(self):
        source = MockSource(ObservationConfig(resolution=(1280, 720)))
        assert source.aspect_ratio == pytest.approx(16 / 9)

    def test_default_is_square(self):
        assert MockSource(ObservationConfig()).aspect_ratio == 1.0


class TestOpenCVSourceConfig:
    def test_from_camera_config(self):
        camera_cfg = CameraConfig.from_dict({
            "device_id": "session.mp4",
            "resolution": [1280, 720],
            "fps": 30,
            "aspect_ratio": 0.75,
            "rotate": 90,
            "flip_horizontal": True,
        })
        config = OpenCVSourceConfig.from_camera_config(camera_cfg, source_id="counter-cam")
        
        assert config.source_id == "counter-cam"
        assert config.device_id == "session.mp4"
        assert config.resolution == (1280, 720)
        assert config.fps == 30
        assert config.aspect_ratio == 0.75
        assert config.rotate == 90
        assert config.flip_horizontal is True


class TestMockSource:
    def test_source_lifecycle(self):
        config = ObservationConfig(source_id="test")
        frames = [np.zeros((100, 100, 3), dtype=np.uint8) for _ in range(3)]
        source = MockSource(config, frames)
        
        assert not source.is_open
        source.open()
        assert source.is_open
        assert source.frame_index == 0
        
        fd = source.read()
        assert fd is not None
        assert fd.source == "test"
        assert fd.frame_index == 1
        
        source.close()
        assert not source.is_open

    def test_context_manager(self):
        config = ObservationConfig(source_id="ctx-test")
        frames = [np.zeros((50, 50, 3), dtype=np.uint8) for _ in range(2)]
        
        with MockSource(config, frames) as source:
            assert source.is_open
            count = sum(1 for _ in source)
            assert count == 2
        
        assert not source.is_open

    def test_iteration_requires_open(self):
        source = MockSource(ObservationConfig(), [])
        
        with pytest.raises(RuntimeError, match="must be open"):
            list(source)


class TestOpenCVSource:
    def test_usb_camera_is_not_file(self):
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        assert source.is_file is False

    def test_file_detection(self, tmp_path):
        video = tmp_path / "clip.mp4"
        video.write_bytes(b"")
        source = OpenCVSource(OpenCVSourceConfig(device_id=str(video)))
        assert source.is_file is True

    def test_aspect_ratio_from_capture(self):
        with patch("observation.opencv_source.cv2.VideoCapture", return_value=_mock_capture(640, 480)):
            source = OpenCVSource(OpenCVSourceConfig(device_id=0, resolution=(1920, 1080)))
            source.open()

        assert source.aspect_ratio == pytest.approx(4 / 3)

    def test_aspect_ratio_swapped_when_rotated(self):
        with patch("observation.opencv_source.cv2.VideoCapture", return_value=_mock_capture(640, 480)):
            source = OpenCVSource(OpenCVSourceConfig(device_id=0, rotate=90))
            source.open()

            fd = source.read()

        assert source.aspect_ratio == pytest.approx(0.75)
        assert fd.size == (480, 640)
        assert fd.frame_index == 1

    def test_read_applies_flip(self):
        frame = np.zeros((2, 2, 3), dtype=np.uint8)
        frame[0, 0] = 255
        with patch("observation.opencv_source.cv2.VideoCapture", return_value=_mock_capture(2, 2, frame=frame)):
            source = OpenCVSource(OpenCVSourceConfig(device_id=0, flip_horizontal=True))
            source.open()
            fd = source.read()

        assert fd.frame[0, 1].max() == 255
        assert fd.frame[0, 0].max() == 0

    def test_open_failure_raises(self):
        with patch("observation.opencv_source.cv2.VideoCapture", return_value=_mock_capture(opened=False)):
            source = OpenCVSource(OpenCVSourceConfig(device_id=3, max_retries=1))
            with pytest.raises(RuntimeError, match="Failed to open device"):
                source.open()
        assert not source.is_open

    def test_read_before_open(self):
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        assert source.read() is None

    def test_factory(self):
        source = create_source_from_config(CameraConfig(device_id=1))
        assert source.source_id == "main-camera"
        assert source.device_id == 1
