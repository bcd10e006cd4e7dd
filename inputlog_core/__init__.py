"""
Input Log Core Model.

READ-ONLY timeline types shared by the ingest gate, the replay engine and
the viewer. A LogDocument exists only after full validation.
"""

from .document import (
    DEFAULT_KIND_COLORS,
    Axis1DEvent,
    Axis2DEvent,
    ButtonEvent,
    ButtonState,
    FrameSnapshot,
    InputEvent,
    InputKind,
    InputMappingDescriptor,
    LogDocument,
    LogMetadata,
    color_to_hex,
    neutral_event,
)

__all__ = [
    "DEFAULT_KIND_COLORS",
    "Axis1DEvent",
    "Axis2DEvent",
    "ButtonEvent",
    "ButtonState",
    "FrameSnapshot",
    "InputEvent",
    "InputKind",
    "InputMappingDescriptor",
    "LogDocument",
    "LogMetadata",
    "color_to_hex",
    "neutral_event",
]
