"""
DoubleCheck - Detection Module

Runs the primary and secondary models on each frame and publishes results.
"""

from .selection import collect_matches, select_primary
from .session import (
    PRIMARY,
    SECONDARY,
    DetectionRequest,
    DetectionSession,
    DetectionUpdate,
    create_session_from_config,
)

__all__ = [
    'collect_matches',
    'select_primary',
    'PRIMARY',
    'SECONDARY',
    'DetectionRequest',
    'DetectionSession',
    'DetectionUpdate',
    'create_session_from_config',
]
