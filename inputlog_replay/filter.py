"""
filter.py - Input visibility state for timeline views.

Pure read-side state: filtering never touches the document or the cursor.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Set

from inputlog_core import InputKind, InputMappingDescriptor, LogDocument


@dataclass
class FilterState:
    """
    Which mappings a view should show.

    An empty `visible_ids` set on an uninitialized filter shows everything.
    At least one input kind always stays visible.
    """
    visible_ids: Set[int] = field(default_factory=set)
    visible_kinds: Dict[InputKind, bool] = field(
        default_factory=lambda: {kind: True for kind in InputKind}
    )
    initialized: bool = False

    def initialize_from_document(self, document: LogDocument) -> None:
        """Make every mapping of a newly loaded document visible."""
        self.visible_ids = set(document.mapping_ids())
        self.initialized = True

    def reset(self, document: LogDocument) -> None:
        self.initialize_from_document(document)
        self.visible_kinds = {kind: True for kind in InputKind}

    def is_visible(self, mapping: InputMappingDescriptor) -> bool:
        if not self.visible_kinds[mapping.kind]:
            return False
        if not self.initialized:
            return True
        return mapping.id in self.visible_ids

    def set_id_visible(self, mapping_id: int, visible: bool) -> None:
        if visible:
            self.visible_ids.add(mapping_id)
        else:
            self.visible_ids.discard(mapping_id)

    def toggle_id(self, mapping_id: int) -> None:
        self.set_id_visible(mapping_id, mapping_id not in self.visible_ids)

    def select_all(self, document: LogDocument) -> None:
        self.visible_ids.update(document.mapping_ids())

    def deselect_all(self) -> None:
        self.visible_ids.clear()

    def all_selected(self, document: LogDocument) -> bool:
        return all(mapping_id in self.visible_ids for mapping_id in document.mapping_ids())

    def enabled_kind_count(self) -> int:
        return sum(1 for shown in self.visible_kinds.values() if shown)

    def can_hide_kind(self, kind: InputKind) -> bool:
        """A kind may be hidden unless it is the last one shown."""
        return not self.visible_kinds[kind] or self.enabled_kind_count() > 1

    def set_kind_visible(self, kind: InputKind, visible: bool) -> bool:
        """
        Show or hide a kind.

        Returns:
            bool: False if the request was refused because it would hide
            the last visible kind.
        """
        if not visible and not self.can_hide_kind(kind):
            return False
        self.visible_kinds[kind] = visible
        return True

    def visible_mappings(self, document: LogDocument) -> List[InputMappingDescriptor]:
        """Visible mappings in declaration order."""
        return [m for m in document.mappings.values() if self.is_visible(m)]
