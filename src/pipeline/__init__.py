"""
Pipeline module for DoubleCheck.

The pipeline orchestrates the full processing flow:
- Frame acquisition from observation sources (capture worker)
- Submission to the detection session
- Rendering on the presentation thread
"""

from .engine import FpsTimer, PipelineConfig, PipelineEngine, PipelineStats

__all__ = [
    "FpsTimer",
    "PipelineConfig",
    "PipelineEngine",
    "PipelineStats",
]
