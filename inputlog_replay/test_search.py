"""
Tests for event search, result navigation and visibility filtering.
"""
from inputlog_core import ButtonState, InputKind

from .filter import FilterState
from .search import SearchQuery, SearchResult, find_matches
from .test_engine import make_document


def sample_document():
    return make_document(20, events={
        2: [{"mapping_id": 0, "state": "pressed"}],
        3: [{"mapping_id": 0, "state": "held"}, {"mapping_id": 1, "value": 0.2}],
        4: [{"mapping_id": 0, "state": "released"}],
        9: [{"mapping_id": 1, "value": 1.0}],
        15: [{"mapping_id": 0, "state": "pressed"}, {"mapping_id": 1, "value": -0.4}],
    })


class TestFindMatches:

    def test_by_input_id(self):
        assert find_matches(sample_document(), SearchQuery(input_id=1)) == [3, 9, 15]

    def test_by_kind(self):
        assert find_matches(sample_document(), SearchQuery(kind=InputKind.BUTTON)) == [2, 3, 4, 15]

    def test_by_button_state(self):
        query = SearchQuery(button_state=ButtonState.PRESSED)
        assert find_matches(sample_document(), query) == [2, 15]

    def test_button_state_excludes_axis_frames(self):
        """Nothing is pressed at frames 3 and 9; only the trigger moves."""
        query = SearchQuery(button_state=ButtonState.PRESSED)
        matches = find_matches(sample_document(), query)

        assert 3 not in matches
        assert 9 not in matches

    def test_button_state_on_axis_input_matches_nothing(self):
        query = SearchQuery(input_id=1, button_state=ButtonState.PRESSED)
        assert find_matches(sample_document(), query) == []

    def test_combined_criteria(self):
        query = SearchQuery(input_id=0, button_state=ButtonState.HELD)
        assert find_matches(sample_document(), query) == [3]

    def test_frames_listed_once(self):
        query = SearchQuery(kind=None, input_id=None, button_state=ButtonState.PRESSED)
        matches = find_matches(sample_document(), query)
        assert matches == sorted(set(matches))

    def test_empty_query_matches_nothing(self):
        assert find_matches(sample_document(), SearchQuery()) == []

    def test_no_match(self):
        assert find_matches(sample_document(), SearchQuery(input_id=77)) == []


class TestSearchResult:

    def test_from_matches_points_at_first(self):
        result = SearchResult.from_matches([2, 15])

        assert result.count == 2
        assert result.current_frame == 2
        assert result.current_position == 1

    def test_navigation_wraps(self):
        result = SearchResult.from_matches([2, 9, 15])

        assert result.next() == 9
        assert result.next() == 15
        assert result.next() == 2
        assert result.prev() == 15

    def test_empty_result(self):
        result = SearchResult.from_matches([])

        assert result.is_empty()
        assert result.current_frame is None
        assert result.next() is None
        assert result.prev() is None

    def test_closest_to_frame(self):
        result = SearchResult.from_matches([2, 9, 15])

        result.set_closest_to_frame(9)
        assert result.current_frame == 9

        result.set_closest_to_frame(10)
        assert result.current_frame == 15

        result.set_closest_to_frame(16)
        assert result.current_frame == 2

    def test_contains_frame(self):
        result = SearchResult.from_matches([2, 9])
        assert result.contains_frame(9)
        assert not result.contains_frame(3)


class TestFilterState:

    def test_uninitialized_shows_everything(self):
        document = sample_document()
        assert len(FilterState().visible_mappings(document)) == 2

    def test_hide_single_input(self):
        document = sample_document()
        state = FilterState()
        state.initialize_from_document(document)

        state.toggle_id(0)

        assert [m.id for m in state.visible_mappings(document)] == [1]
        assert not state.all_selected(document)

        state.select_all(document)
        assert state.all_selected(document)

    def test_deselect_all(self):
        document = sample_document()
        state = FilterState()
        state.initialize_from_document(document)

        state.deselect_all()
        assert state.visible_mappings(document) == []

    def test_hide_kind(self):
        document = sample_document()
        state = FilterState()
        state.initialize_from_document(document)

        assert state.set_kind_visible(InputKind.AXIS1D, False) is True
        assert [m.id for m in state.visible_mappings(document)] == [0]

    def test_last_kind_cannot_be_hidden(self):
        state = FilterState()
        assert state.set_kind_visible(InputKind.AXIS1D, False)
        assert state.set_kind_visible(InputKind.AXIS2D, False)

        assert state.can_hide_kind(InputKind.BUTTON) is False
        assert state.set_kind_visible(InputKind.BUTTON, False) is False
        assert state.visible_kinds[InputKind.BUTTON] is True
        assert state.enabled_kind_count() == 1

    def test_reset(self):
        document = sample_document()
        state = FilterState()
        state.initialize_from_document(document)
        state.deselect_all()
        state.set_kind_visible(InputKind.BUTTON, False)

        state.reset(document)

        assert state.all_selected(document)
        assert state.enabled_kind_count() == 3
