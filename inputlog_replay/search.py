"""
search.py - Find frames whose events match a query.

Results are frame numbers only. Navigation over results wraps around in
both directions.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from inputlog_core import (
    ButtonEvent,
    ButtonState,
    InputEvent,
    InputKind,
    InputMappingDescriptor,
    LogDocument,
)


@dataclass(frozen=True)
class SearchQuery:
    """
    Criteria an event must satisfy. Unset criteria match anything.

    Setting `button_state` implies a button: axis events never match it.
    """
    input_id: Optional[int] = None
    kind: Optional[InputKind] = None
    button_state: Optional[ButtonState] = None

    def is_empty(self) -> bool:
        return self.input_id is None and self.kind is None and self.button_state is None

    def matches(self, mapping: InputMappingDescriptor, event: InputEvent) -> bool:
        if self.input_id is not None and mapping.id != self.input_id:
            return False
        if self.kind is not None and event.kind != self.kind:
            return False
        if self.button_state is not None:
            if not isinstance(event, ButtonEvent) or event.state != self.button_state:
                return False
        return True


def find_matches(document: LogDocument, query: SearchQuery) -> List[int]:
    """
    Return the sorted, unique frame numbers holding at least one matching event.

    An empty query matches nothing rather than everything.
    """
    if query.is_empty():
        return []

    frames: List[int] = []
    for snapshot in document.frames:
        for mapping_id, event in snapshot.events.items():
            if query.matches(document.mapping(mapping_id), event):
                frames.append(snapshot.frame_number)
                break
    return frames


@dataclass
class SearchResult:
    """Matching frames plus a navigation cursor over them."""
    matches: List[int] = field(default_factory=list)
    current_index: Optional[int] = None

    @classmethod
    def from_matches(cls, matches: List[int]) -> "SearchResult":
        return cls(matches=list(matches), current_index=0 if matches else None)

    @property
    def count(self) -> int:
        return len(self.matches)

    def is_empty(self) -> bool:
        return not self.matches

    @property
    def current_frame(self) -> Optional[int]:
        if self.current_index is None:
            return None
        return self.matches[self.current_index]

    @property
    def current_position(self) -> Optional[int]:
        """1-based position for display, e.g. "3 of 10"."""
        return None if self.current_index is None else self.current_index + 1

    def next(self) -> Optional[int]:
        if not self.matches:
            return None
        if self.current_index is None:
            self.current_index = 0
        else:
            self.current_index = (self.current_index + 1) % len(self.matches)
        return self.matches[self.current_index]

    def prev(self) -> Optional[int]:
        if not self.matches:
            return None
        if self.current_index is None or self.current_index == 0:
            self.current_index = len(self.matches) - 1
        else:
            self.current_index -= 1
        return self.matches[self.current_index]

    def set_closest_to_frame(self, frame: int) -> None:
        """Point at the first match at or after `frame`, wrapping to the first."""
        if not self.matches:
            self.current_index = None
            return
        for i, match in enumerate(self.matches):
            if match >= frame:
                self.current_index = i
                return
        self.current_index = 0

    def contains_frame(self, frame: int) -> bool:
        return frame in self.matches
