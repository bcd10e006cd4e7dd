"""
inputlog_core/document.py - Verified Timeline Model

A LogDocument is only ever built from a fully validated input log.
Nothing in this module validates; nothing in this module mutates.

INVARIANTS (proven by the ingest gate before construction):
1. frames[i].frame_number == i
2. Every event mapping id exists in the mapping table
3. Event variant matches the mapping's declared kind
4. frame_rate is finite and > 0
"""
import hashlib
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple, Union

import jcs


class InputKind(str, Enum):
    """Input channel classification (wire names are lowercase)."""
    BUTTON = "button"
    AXIS1D = "axis1d"
    AXIS2D = "axis2d"


class ButtonState(str, Enum):
    PRESSED = "pressed"
    HELD = "held"
    RELEASED = "released"


RGB = Tuple[int, int, int]

# Display defaults when a mapping declares no color
DEFAULT_KIND_COLORS: Dict[InputKind, RGB] = {
    InputKind.BUTTON: (76, 175, 80),    # Green
    InputKind.AXIS1D: (100, 150, 200),  # Light blue
    InputKind.AXIS2D: (150, 100, 200),  # Purple
}


@dataclass(frozen=True)
class ButtonEvent:
    state: ButtonState

    @property
    def kind(self) -> InputKind:
        return InputKind.BUTTON

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state.value}


@dataclass(frozen=True)
class Axis1DEvent:
    value: float

    @property
    def kind(self) -> InputKind:
        return InputKind.AXIS1D

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value}


@dataclass(frozen=True)
class Axis2DEvent:
    x: float
    y: float

    @property
    def kind(self) -> InputKind:
        return InputKind.AXIS2D

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y}


InputEvent = Union[ButtonEvent, Axis1DEvent, Axis2DEvent]


_NEUTRAL_EVENTS: Dict[InputKind, InputEvent] = {
    InputKind.BUTTON: ButtonEvent(ButtonState.RELEASED),
    InputKind.AXIS1D: Axis1DEvent(0.0),
    InputKind.AXIS2D: Axis2DEvent(0.0, 0.0),
}


def neutral_event(kind: InputKind) -> InputEvent:
    """Return the resting event for a kind: Released for buttons, zero for axes."""
    return _NEUTRAL_EVENTS[kind]


def color_to_hex(color: RGB) -> str:
    return "#{:02X}{:02X}{:02X}".format(*color)


@dataclass(frozen=True)
class InputMappingDescriptor:
    """A named, colored, typed input channel."""
    id: int
    name: str
    kind: InputKind
    display_color: RGB

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "color": color_to_hex(self.display_color),
        }


@dataclass(frozen=True)
class FrameSnapshot:
    """
    All events recorded at a single frame.

    `events` is a read-only view keyed by mapping id. A mapping without an
    entry is at rest for this frame.
    """
    frame_number: int
    events: Mapping[int, InputEvent] = field(default_factory=lambda: MappingProxyType({}))

    def event_for(self, mapping_id: int) -> Optional[InputEvent]:
        return self.events.get(mapping_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "frame_number": self.frame_number,
            "events": [
                {"mapping_id": mapping_id, **event.to_dict()}
                for mapping_id, event in sorted(self.events.items())
            ],
        }


@dataclass(frozen=True)
class LogMetadata:
    """Descriptive header fields; carried verbatim, never interpreted."""
    version: int = 1
    created_at: Optional[str] = None
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"created_at": self.created_at, "source": self.source}


class LogDocument:
    """
    Immutable, verified timeline.

    Construct only through the ingest gate (inputlog_ingest.parse). The
    constructor trusts its arguments completely.
    """

    __slots__ = ("_frame_rate", "_mappings", "_frames", "_metadata")

    def __init__(
        self,
        frame_rate: float,
        mappings: Mapping[int, InputMappingDescriptor],
        frames: Tuple[FrameSnapshot, ...],
        metadata: Optional[LogMetadata] = None,
    ):
        self._frame_rate = float(frame_rate)
        self._mappings = MappingProxyType(dict(mappings))
        self._frames = tuple(frames)
        self._metadata = metadata or LogMetadata()

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, "_metadata"):
            raise AttributeError("LogDocument is immutable")
        object.__setattr__(self, name, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LogDocument):
            return NotImplemented
        return (
            self._frame_rate == other._frame_rate
            and dict(self._mappings) == dict(other._mappings)
            and self._frames == other._frames
            and self._metadata == other._metadata
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"LogDocument(frame_rate={self._frame_rate}, "
            f"total_frames={self.total_frames}, mappings={len(self._mappings)})"
        )

    @property
    def frame_rate(self) -> float:
        return self._frame_rate

    @property
    def frame_duration(self) -> float:
        """Seconds of recorded time covered by one frame."""
        return 1.0 / self._frame_rate

    @property
    def total_frames(self) -> int:
        return len(self._frames)

    @property
    def mappings(self) -> Mapping[int, InputMappingDescriptor]:
        return self._mappings

    @property
    def frames(self) -> Tuple[FrameSnapshot, ...]:
        return self._frames

    @property
    def metadata(self) -> LogMetadata:
        return self._metadata

    def frame(self, n: int) -> FrameSnapshot:
        """
        Return the snapshot at frame `n`.

        Raises:
            IndexError: if `n` is outside [0, total_frames). The engine never
            asks for such a frame, so this indicates a caller bug.
        """
        if not 0 <= n < len(self._frames):
            raise IndexError(f"frame {n} out of range [0, {len(self._frames)})")
        return self._frames[n]

    def mapping(self, mapping_id: int) -> InputMappingDescriptor:
        return self._mappings[mapping_id]

    def mapping_ids(self) -> Tuple[int, ...]:
        """Mapping ids in declaration order."""
        return tuple(self._mappings.keys())

    def to_dict(self) -> Dict[str, Any]:
        """
        Export the document in wire shape.

        The result parses back into an equal document.
        """
        return {
            "version": self._metadata.version,
            "frame_rate": self._frame_rate,
            "total_frames": self.total_frames,
            "metadata": self._metadata.to_dict(),
            "mappings": [m.to_dict() for m in self._mappings.values()],
            "frames": [f.to_dict() for f in self._frames],
        }

    def digest(self) -> str:
        """SHA-256 over the RFC 8785 canonical form of `to_dict()`."""
        return hashlib.sha256(jcs.canonicalize(self.to_dict())).hexdigest()
