"""
Detection session.

Feeds each camera frame (after desaturation) to two independent detection
requests and republishes their results:

- primary: the single best match for its label, shrunk about its center
- secondary: every match for its label; match centers are logged into the
  frame history under the session's own point-frame counter

Inference runs on one worker thread per request. Result handling is posted to
the PresentationDispatcher, so published state and the frame history are only
touched by the presentation thread.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from inference.backend import InferenceBackend
from models.config import DetectionConfig, ModelConfig
from models.detection import Detection
from models.frame_record import FrameFields
from runtime.dispatcher import PresentationDispatcher
from storage.frame_history import FrameHistoryStore
from .preprocess import to_grayscale_bgr
from .selection import collect_matches, select_primary


PRIMARY = "primary"
SECONDARY = "secondary"

BackendFactory = Callable[[ModelConfig], InferenceBackend]
ResultHandler = Callable[[List[Detection]], None]


@dataclass(frozen=True)
class DetectionUpdate:
    """
    Message delivered to subscribers whenever a request publishes results.

    Attributes:
        request: Request name ("primary" or "secondary").
        detections: Published detections (empty when nothing matched).
        sequence: Count of results published by this request so far.
    """
    request: str
    detections: Tuple[Detection, ...]
    sequence: int


Listener = Callable[[DetectionUpdate], None]


class DetectionRequest:
    """
    One model handle plus its worker and in-flight flag.

    A request with no backend is disabled for its whole lifetime.
    """

    def __init__(self, name: str, backend: Optional[InferenceBackend]):
        self.name = name
        self._backend = backend
        self._executor: Optional[ThreadPoolExecutor] = None
        if backend is not None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"infer-{name}")
        self._in_flight = threading.Event()
        self.submitted = 0
        self.failed = 0

    @classmethod
    def load(cls, name: str, factory: Callable[[], InferenceBackend]) -> "DetectionRequest":
        """Build a request, disabling it if the model cannot be loaded."""
        try:
            backend = factory()
        except Exception as e:
            logging.error(f"Failed to load {name} model, detections disabled: {e}")
            return cls(name, None)
        logging.info(f"{name.capitalize()} model loaded")
        return cls(name, backend)

    @property
    def enabled(self) -> bool:
        return self._backend is not None and self._executor is not None

    @property
    def in_flight(self) -> bool:
        return self._in_flight.is_set()

    def try_submit(
        self,
        frame: np.ndarray,
        dispatcher: PresentationDispatcher,
        handler: ResultHandler,
    ) -> bool:
        """
        Start an inference pass unless one is still outstanding.

        The in-flight flag is cleared on the presentation thread after
        ``handler`` has run, so results are never handled re-entrantly.
        """
        executor, backend = self._executor, self._backend
        if executor is None or backend is None or self._in_flight.is_set():
            return False

        self._in_flight.set()
        self.submitted += 1
        try:
            future = executor.submit(backend.detect, frame)
        except RuntimeError as e:
            # Executor already shut down.
            self._in_flight.clear()
            logging.debug(f"{self.name} request not accepting frames: {e}")
            return False
        future.add_done_callback(
            lambda f: dispatcher.post(partial(self._complete, f, handler))
        )
        return True

    def _complete(self, future: "Future[List[Detection]]", handler: ResultHandler) -> None:
        try:
            error = future.exception()
            if error is not None:
                self.failed += 1
                logging.debug(f"{self.name} inference failed, frame dropped: {error}")
                return
            handler(future.result())
        finally:
            self._in_flight.clear()

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False)


class DetectionSession:
    """
    Owns the two detection requests and their published results.

    Example:
        session = DetectionSession(primary, secondary, store, dispatcher)
        session.subscribe(view.on_detections)
        session.submit(frame)     # capture thread
        dispatcher.drain()        # presentation thread
    """

    def __init__(
        self,
        primary: DetectionRequest,
        secondary: DetectionRequest,
        store: FrameHistoryStore,
        dispatcher: PresentationDispatcher,
        primary_label: str = "rez",
        secondary_label: str = "pill",
        primary_box_scale: float = 0.8,
    ):
        self.primary = primary
        self.secondary = secondary
        self.store = store
        self.dispatcher = dispatcher
        self.primary_label = primary_label
        self.secondary_label = secondary_label
        self.primary_box_scale = primary_box_scale

        self._listeners: List[Listener] = []
        self._primary_detections: Tuple[Detection, ...] = ()
        self._secondary_detections: Tuple[Detection, ...] = ()
        self._primary_sequence = 0
        self._secondary_sequence = 0
        # Independent of the camera's delivery counter.
        self._point_frame = store.record_count

    @property
    def primary_detections(self) -> Tuple[Detection, ...]:
        return self._primary_detections

    @property
    def secondary_detections(self) -> Tuple[Detection, ...]:
        return self._secondary_detections

    @property
    def point_frame(self) -> int:
        """Frame history index the next secondary point list will be written to."""
        return self._point_frame

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def submit(self, frame: np.ndarray) -> List[str]:
        """
        Desaturate ``frame`` and hand it to every idle, enabled request.

        Returns the names of the requests that accepted the frame.
        """
        if not (self.primary.enabled or self.secondary.enabled):
            return []

        converted = to_grayscale_bgr(frame)
        accepted = []
        if self.primary.try_submit(converted, self.dispatcher, self._handle_primary):
            accepted.append(PRIMARY)
        if self.secondary.try_submit(converted, self.dispatcher, self._handle_secondary):
            accepted.append(SECONDARY)
        return accepted

    def _handle_primary(self, detections: Sequence[Detection]) -> None:
        best = select_primary(detections, self.primary_label)
        if best is None:
            self._primary_detections = ()
        else:
            shrunk = Detection(
                label=best.label,
                confidence=best.confidence,
                box=best.box.scaled(self.primary_box_scale),
            )
            self._primary_detections = (shrunk,)
        self._primary_sequence += 1
        self._publish(DetectionUpdate(PRIMARY, self._primary_detections, self._primary_sequence))

    def _handle_secondary(self, detections: Sequence[Detection]) -> None:
        matches = tuple(collect_matches(detections, self.secondary_label))
        self._secondary_detections = matches

        if matches:
            points = [det.box.center_top_left() for det in matches]
            self.store.update(self._point_frame, FrameFields(points=points))
            logging.debug(f"Frame {self._point_frame}: {points}")
            self._point_frame += 1

        self._secondary_sequence += 1
        self._publish(DetectionUpdate(SECONDARY, matches, self._secondary_sequence))

    def _publish(self, update: DetectionUpdate) -> None:
        for listener in self._listeners:
            try:
                listener(update)
            except Exception as e:
                logging.warning(f"Detection listener error: {e}")

    def close(self) -> None:
        self.primary.close()
        self.secondary.close()


def _default_backend_factory(cfg: ModelConfig) -> InferenceBackend:
    from inference.cpu_backend import CpuYoloConfig, UltralyticsCpuBackend

    return UltralyticsCpuBackend(
        CpuYoloConfig(
            model=cfg.model,
            conf_threshold=float(cfg.conf_threshold),
            iou_threshold=float(cfg.iou_threshold),
        )
    )


def create_session_from_config(
    detection_cfg: DetectionConfig,
    store: FrameHistoryStore,
    dispatcher: PresentationDispatcher,
    backend_factory: Optional[BackendFactory] = None,
) -> DetectionSession:
    """
    Factory function to build a DetectionSession from typed config.

    A request whose model path is empty is created disabled.
    """
    factory = backend_factory or _default_backend_factory

    def _load(name: str, cfg: ModelConfig) -> DetectionRequest:
        if not cfg.model:
            logging.warning(f"No {name} model configured, detections disabled")
            return DetectionRequest(name, None)
        return DetectionRequest.load(name, partial(factory, cfg))

    return DetectionSession(
        primary=_load(PRIMARY, detection_cfg.primary),
        secondary=_load(SECONDARY, detection_cfg.secondary),
        store=store,
        dispatcher=dispatcher,
        primary_label=detection_cfg.primary.label,
        secondary_label=detection_cfg.secondary.label,
        primary_box_scale=float(detection_cfg.primary.box_scale),
    )
