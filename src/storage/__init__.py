"""
DoubleCheck - Storage Module

In-memory, process-scoped frame history.
"""

from .frame_history import FrameCursorError, FrameHistoryStore

__all__ = ['FrameCursorError', 'FrameHistoryStore']
