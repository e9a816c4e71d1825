"""
Presentation layer: preview composition, overlays and the preview window.
"""

from .view import PresentationLayer, PreviewWindow, create_presentation

__all__ = ["PresentationLayer", "PreviewWindow", "create_presentation"]
