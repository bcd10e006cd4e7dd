"""
index.py - Transition index over a verified LogDocument.

Holds frame numbers only, never frame data, so an index can be copied or
cached freely alongside the document it was built from.
"""

from bisect import bisect_left, bisect_right
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

from inputlog_core import InputEvent, LogDocument, neutral_event


class EventIndex:
    """
    Per-mapping transition points.

    A transition is a frame whose effective event differs from the previous
    frame's. Frames without an event for a mapping count as the kind's
    neutral event; frame 0 is compared with neutral. Axis values compare
    exactly, since they are reproduced verbatim from the log.
    """

    __slots__ = ("_transitions",)

    def __init__(self, transitions: Mapping[int, Tuple[int, ...]]):
        self._transitions = MappingProxyType(dict(transitions))

    @classmethod
    def build(cls, document: LogDocument) -> "EventIndex":
        """Build the index with a single pass over the document's frames."""
        previous: Dict[int, InputEvent] = {
            mapping_id: neutral_event(descriptor.kind)
            for mapping_id, descriptor in document.mappings.items()
        }
        neutral = dict(previous)
        points: Dict[int, List[int]] = {mapping_id: [] for mapping_id in previous}

        for snapshot in document.frames:
            for mapping_id, rest in neutral.items():
                current = snapshot.events.get(mapping_id, rest)
                if current != previous[mapping_id]:
                    points[mapping_id].append(snapshot.frame_number)
                    previous[mapping_id] = current

        return cls({mapping_id: tuple(frames) for mapping_id, frames in points.items()})

    def transitions(self, mapping_id: int) -> Tuple[int, ...]:
        """All transition frames for a mapping (empty for unknown ids)."""
        return self._transitions.get(mapping_id, ())

    def mapping_ids(self) -> Tuple[int, ...]:
        return tuple(self._transitions.keys())

    def next_transition(self, mapping_id: int, from_frame: int) -> Optional[int]:
        """First transition strictly after `from_frame`, or None."""
        points = self.transitions(mapping_id)
        i = bisect_right(points, from_frame)
        return points[i] if i < len(points) else None

    def previous_transition(self, mapping_id: int, from_frame: int) -> Optional[int]:
        """Last transition strictly before `from_frame`, or None."""
        points = self.transitions(mapping_id)
        i = bisect_left(points, from_frame)
        return points[i - 1] if i > 0 else None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventIndex):
            return NotImplemented
        return dict(self._transitions) == dict(other._transitions)

    __hash__ = None  # type: ignore[assignment]
