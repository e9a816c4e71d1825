"""
Tests for the pipeline engine.
"""

import time
import pytest
import numpy as np

from detection.session import PRIMARY, DetectionRequest, DetectionSession, SECONDARY
from models.config import Config, DisplayConfig
from models.frame import FrameData
from observation.base import ObservationSource, ObservationConfig
from pipeline.engine import FpsTimer, PipelineConfig, PipelineEngine
from presentation.view import KEY_QUIT, create_presentation
from runtime.context import build_runtime_context
from runtime.dispatcher import PresentationDispatcher
from storage.frame_history import FrameHistoryStore

from conftest import FakeBackend, det


class MockObservationSource(ObservationSource):
    """Mock source for testing."""
    
    def __init__(self, config: ObservationConfig, max_frames: int = 10, fail_open: bool = False):
        super().__init__(config)
        self._max_frames = max_frames
        self._fail_open = fail_open
        self._pos = 0
        self.closed = False
    
    def open(self) -> None:
        if self._fail_open:
            raise RuntimeError("camera unavailable")
        self._is_open = True
        self._pos = 0
        self._frame_index = 0
    
    def read(self) -> FrameData | None:
        if not self._is_open or self._pos >= self._max_frames:
            return None
        
        self._pos += 1
        self._frame_index += 1
        return FrameData(
            frame=np.zeros((480, 640, 3), dtype=np.uint8),
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )
    
    def close(self) -> None:
        self._is_open = False
        self.closed = True


class MockWindow:
    """Preview window that records frames and replays scripted keys."""

    def __init__(self, keys=None):
        self.keys = list(keys or [])
        self.shown = []
        self.closed = False

    def show(self, image):
        self.shown.append(image)

    def poll_key(self):
        return self.keys.pop(0) if self.keys else 255

    def close(self):
        self.closed = True


def _session(store, primary=None, secondary=None):
    return DetectionSession(
        primary=DetectionRequest(PRIMARY, primary),
        secondary=DetectionRequest(SECONDARY, secondary),
        store=store,
        dispatcher=PresentationDispatcher(),
    )


def _fast_config(**kwargs):
    return PipelineConfig(max_consecutive_failures=2, poll_interval=0.001, **kwargs)


class TestPipelineConfig:
    def test_default_values(self):
        config = PipelineConfig()
        assert config.max_consecutive_failures == 10
        assert config.fps_log_interval == 5.0
        assert config.display is True


class TestFpsTimer:
    def test_first_tick_unknown(self):
        assert FpsTimer().tick(10.0) is None

    def test_interval(self):
        timer = FpsTimer()
        timer.tick(10.0)
        assert timer.tick(10.04) == pytest.approx(25.0)

    def test_non_increasing_timestamp(self):
        timer = FpsTimer()
        timer.tick(10.0)
        assert timer.tick(10.0) is None
        assert timer.last_timestamp == 10.0


class TestPipelineEngine:
    def test_headless_run_processes_frames(self):
        store = FrameHistoryStore()
        primary = FakeBackend(results=[[det("rez", 0.9, 0.3, 0.3, 0.4, 0.4)]])
        secondary = FakeBackend(results=[[det("pill", 0.5)]])
        session = _session(store, primary, secondary)
        source = MockObservationSource(ObservationConfig(source_id="test", aspect_ratio=0.75), max_frames=3)
        aspects = []

        def make_view(aspect):
            aspects.append(aspect)
            return create_presentation(DisplayConfig(view_width=300), aspect, store)

        engine = PipelineEngine(
            source, session, session.dispatcher,
            presentation_factory=make_view,
            config=_fast_config(display=False),
        )
        engine.run()

        assert aspects == [0.75]
        assert engine.stats.frames_delivered == 3
        assert engine.stats.frames_rendered == 0
        assert engine.stats.submitted[PRIMARY] >= 1
        assert engine.latest_frame.frame_index == 3
        assert not session.primary.in_flight
        # Marker rects from the primary box and the pill point list share record 0
        record = store.get(0)
        assert set(record.rects) == {"green", "yellow"}
        assert len(record.points) == 1
        assert source.closed

    def test_camera_failure_stops_cleanly(self):
        session = _session(FrameHistoryStore(), FakeBackend())
        source = MockObservationSource(ObservationConfig(), fail_open=True)
        window = MockWindow()

        engine = PipelineEngine(source, session, session.dispatcher, window=window, config=_fast_config())
        engine.run()

        assert engine.stats.frames_delivered == 0
        assert engine.presentation is None
        assert window.closed

    def test_stops_after_consecutive_failures(self):
        session = _session(FrameHistoryStore())
        source = MockObservationSource(ObservationConfig(), max_frames=0)

        engine = PipelineEngine(source, session, session.dispatcher, config=_fast_config(display=False))
        engine.run()

        assert engine.stats.consecutive_failures >= 2

    def test_quit_key_stops_run(self):
        store = FrameHistoryStore()
        session = _session(store, FakeBackend())
        source = MockObservationSource(ObservationConfig(aspect_ratio=1.0), max_frames=10_000)
        window = MockWindow(keys=[KEY_QUIT])

        engine = PipelineEngine(
            source, session, session.dispatcher,
            presentation_factory=lambda aspect: create_presentation(DisplayConfig(view_width=200), aspect, store),
            window=window,
            config=_fast_config(),
        )
        engine.run()

        assert engine.stats.frames_rendered == 1
        assert window.shown[0].shape[:2] == (200 + 140, 200)
        assert window.closed
        assert source.closed


class TestRuntimeContext:
    def test_build_headless_context(self, valid_config):
        config = Config.from_dict(valid_config)
        loaded = []

        def backend_factory(model_cfg):
            loaded.append(model_cfg.label)
            return FakeBackend()

        ctx = build_runtime_context(config, display=False, backend_factory=backend_factory)
        engine = ctx.create_engine()

        assert loaded == ["rez", "pill"]
        assert ctx.window is None
        assert engine.config.display is False
        assert engine.presentation_factory is not None
        assert engine.source.source_id == "main-camera"
        assert engine.session.store is ctx.store
        ctx.session.close()

    def test_presentation_uses_display_config(self, valid_config):
        ctx = build_runtime_context(Config.from_dict(valid_config), display=False, backend_factory=lambda cfg: FakeBackend())

        layer = ctx.make_presentation(16 / 9)

        assert layer.view_size == (720, 405)
        ctx.session.close()
