"""
Pipeline engine for DoubleCheck.

Two threads:
- the capture worker reads frames from an ObservationSource at the device
  rate and submits them to the DetectionSession;
- the calling (presentation) thread drains the PresentationDispatcher,
  renders the latest frame with overlays and handles key presses.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Callable, Dict, Optional

from detection.session import DetectionSession
from models.frame import FrameData
from observation import ObservationSource
from presentation.view import PresentationLayer, PreviewWindow
from runtime.dispatcher import PresentationDispatcher


PresentationFactory = Callable[[float], PresentationLayer]


@dataclass
class PipelineConfig:
    """
    Configuration for the pipeline engine.
    
    Attributes:
        max_consecutive_failures: Max frame read failures before capture stops.
        fps_log_interval: Seconds between FPS log messages.
        display: Render into the preview window.
        poll_interval: Seconds the presentation thread waits for new tasks.
    """
    max_consecutive_failures: int = 10
    fps_log_interval: float = 5.0
    display: bool = True
    poll_interval: float = 0.01


@dataclass
class FpsTimer:
    """Frame-interval timer owned by the capture loop."""
    last_timestamp: Optional[float] = None

    def tick(self, now: float) -> Optional[float]:
        """Record a frame at ``now``; return the instantaneous FPS if known."""
        previous, self.last_timestamp = self.last_timestamp, now
        if previous is None or now <= previous:
            return None
        return 1.0 / (now - previous)


@dataclass
class PipelineStats:
    """Runtime statistics for the pipeline."""
    frames_delivered: int = 0
    frames_rendered: int = 0
    submitted: Dict[str, int] = field(default_factory=dict)
    consecutive_failures: int = 0
    last_fps: Optional[float] = None
    start_time: float = field(default_factory=time.time)


class PipelineEngine:
    """
    Wires the capture source, detection session and presentation layer.
    
    The presentation layer is built by ``presentation_factory`` once the
    source is open, from the camera aspect ratio queried at that point, and
    is subscribed to the session's updates.

    Example:
        engine = PipelineEngine(source, session, dispatcher, make_view, window)
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        session: DetectionSession,
        dispatcher: PresentationDispatcher,
        presentation_factory: Optional[PresentationFactory] = None,
        window: Optional[PreviewWindow] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.session = session
        self.dispatcher = dispatcher
        self.presentation_factory = presentation_factory
        self.presentation: Optional[PresentationLayer] = None
        self.window = window
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._running = False
        self._capture_thread: Optional[threading.Thread] = None
        self._latest: Optional[FrameData] = None
        self._rendered_index: Optional[int] = None

    @property
    def latest_frame(self) -> Optional[FrameData]:
        return self._latest

    def run(self) -> None:
        """
        Run until the user quits, stop() is called, or the source is exhausted.
        """
        self._running = True
        self.stats = PipelineStats()
        self.dispatcher.bind_current_thread()

        try:
            try:
                self.source.open()
            except Exception as e:
                logging.error(f"Error setting up the camera: {e}")
                return
            aspect_ratio = self.source.aspect_ratio
            logging.info(
                f"Pipeline started: source={self.source.source_id}, aspect_ratio={aspect_ratio:.3f}"
            )

            if self.presentation_factory is not None:
                self.presentation = self.presentation_factory(aspect_ratio)
                self.session.subscribe(self.presentation.on_detections)

            self._capture_thread = threading.Thread(
                target=self._capture_loop, name="capture", daemon=True
            )
            self._capture_thread.start()

            while self._running or self._work_outstanding():
                self.dispatcher.drain(timeout=self.config.poll_interval)
                if not self._render():
                    break
                if not self._capture_thread.is_alive() and not self._work_outstanding():
                    break

        except KeyboardInterrupt:
            logging.info("Pipeline interrupted by user")
        finally:
            self._cleanup()

    def stop(self) -> None:
        """Signal the pipeline to stop."""
        self._running = False

    def _work_outstanding(self) -> bool:
        capturing = self._capture_thread is not None and self._capture_thread.is_alive()
        in_flight = self.session.primary.in_flight or self.session.secondary.in_flight
        return capturing or in_flight or self.dispatcher.pending() > 0

    def _capture_loop(self) -> None:
        """Capture worker: read, submit for inference, hand the frame over."""
        timer = FpsTimer()
        last_fps_log = time.time()

        try:
            while self._running:
                frame_data = self.source.read()

                if frame_data is None:
                    self.stats.consecutive_failures += 1
                    if self.stats.consecutive_failures >= self.config.max_consecutive_failures:
                        logging.error(
                            f"Too many consecutive failures ({self.stats.consecutive_failures}), "
                            "stopping capture"
                        )
                        break
                    time.sleep(self.config.poll_interval)
                    continue

                self.stats.consecutive_failures = 0
                self.stats.frames_delivered += 1

                fps = timer.tick(frame_data.timestamp)
                if fps is not None:
                    self.stats.last_fps = fps
                    if frame_data.timestamp - last_fps_log >= self.config.fps_log_interval:
                        logging.debug(f"FPS: {fps:.1f}")
                        last_fps_log = frame_data.timestamp

                for name in self.session.submit(frame_data.frame):
                    self.stats.submitted[name] = self.stats.submitted.get(name, 0) + 1

                self.dispatcher.post(partial(self._set_latest, frame_data))
        except Exception as e:
            logging.error(f"Capture loop error: {e}")
        finally:
            logging.info(f"Capture stopped after {self.stats.frames_delivered} frames")

    def _set_latest(self, frame_data: FrameData) -> None:
        self._latest = frame_data

    def _render(self) -> bool:
        """Draw the latest frame once. Returns False if the user quit."""
        if not self.config.display or self.presentation is None or self.window is None:
            return True
        if self._latest is None or self._latest.frame_index == self._rendered_index:
            return True

        self._rendered_index = self._latest.frame_index
        self.window.show(self.presentation.compose(self._latest.frame))
        self.stats.frames_rendered += 1

        if not self.presentation.handle_key(self.window.poll_key()):
            logging.info("Quit requested")
            self._running = False
            return False
        return True

    def _cleanup(self) -> None:
        self._running = False

        if self._capture_thread is not None:
            self._capture_thread.join(timeout=2.0)

        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

        self.session.close()

        if self.window is not None:
            self.window.close()

        logging.info(
            f"Pipeline stopped: frames={self.stats.frames_delivered}, "
            f"submitted={self.stats.submitted}, rendered={self.stats.frames_rendered}"
        )
