from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from detection.session import BackendFactory, DetectionSession, create_session_from_config
from models.config import Config
from observation import ObservationSource, create_source_from_config
from pipeline.engine import PipelineConfig, PipelineEngine
from presentation.view import PresentationLayer, PreviewWindow, create_presentation
from runtime.dispatcher import PresentationDispatcher
from storage.frame_history import FrameHistoryStore


@dataclass
class RuntimeContext:
    """Holds runtime state and service references; avoids global singletons."""

    config: Config
    store: FrameHistoryStore
    dispatcher: PresentationDispatcher
    session: DetectionSession
    source: ObservationSource
    window: Optional[PreviewWindow] = None

    def make_presentation(self, aspect_ratio: float) -> PresentationLayer:
        return create_presentation(self.config.display, aspect_ratio, self.store)

    def create_engine(self, pipeline_config: Optional[PipelineConfig] = None) -> PipelineEngine:
        pipeline_config = pipeline_config or PipelineConfig(display=self.window is not None)
        return PipelineEngine(
            source=self.source,
            session=self.session,
            dispatcher=self.dispatcher,
            presentation_factory=self.make_presentation,
            window=self.window,
            config=pipeline_config,
        )


def build_runtime_context(
    config: Config,
    display: bool = True,
    backend_factory: Optional[BackendFactory] = None,
) -> RuntimeContext:
    """Create the store, dispatcher, session and capture source for ``config``."""
    store = FrameHistoryStore()
    dispatcher = PresentationDispatcher()
    session = create_session_from_config(config.detection, store, dispatcher, backend_factory)
    source = create_source_from_config(config.camera, source_id="main-camera")
    window = PreviewWindow(config.display.window_name) if display else None
    return RuntimeContext(
        config=config,
        store=store,
        dispatcher=dispatcher,
        session=session,
        source=source,
        window=window,
    )
