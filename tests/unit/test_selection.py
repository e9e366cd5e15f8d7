"""Unit tests for selection-set helpers."""

from election_portal.shared import (
    Position,
    build_votes_by_position,
    can_select_more,
    count_selected_for_position,
    find_payload_violation,
    meets_minimum,
    new_selection_set,
    selected_candidate_ids,
    selected_counts_by_position,
)

from .conftest import make_candidate


def index(candidates):
    return {c.id: c for c in candidates}


class TestSelectionCounts:

    def test_new_selection_set_is_all_false(self, candidates):
        selections = new_selection_set(candidates)

        assert len(selections) == len(candidates)
        assert selected_candidate_ids(selections) == []

    def test_counts_grouped_by_position(self, candidates):
        selections = new_selection_set(candidates)
        selections.update({"bod1": True, "bod4": True, "candY": True})
        by_id = index(candidates)

        assert count_selected_for_position(selections, by_id, "BOD") == 2
        assert count_selected_for_position(selections, by_id, "Audit") == 1
        assert selected_counts_by_position(selections, by_id) == {"BOD": 2, "Audit": 1}

    def test_unresolved_selections_not_counted(self, candidates):
        selections = {"bod1": True, "ghost": True}

        assert selected_counts_by_position(selections, index(candidates)) == {"BOD": 1}


class TestLimits:

    def test_can_select_more_below_maximum(self):
        position = Position(id="p", name="P", max_selectable=2)

        assert can_select_more(1, position)
        assert not can_select_more(2, position)

    def test_minimum(self):
        position = Position(id="p", name="P", min_selectable=2, max_selectable=3)

        assert not meets_minimum(1, position)
        assert meets_minimum(2, position)

    def test_zero_minimum_always_met(self):
        assert meets_minimum(0, Position(id="p", name="P", min_selectable=0))


class TestPayload:

    def test_payload_omits_empty_positions(self, candidates):
        selections = new_selection_set(candidates)
        selections["candX"] = True

        assert build_votes_by_position(selections, index(candidates)) == {"Audit": ["candX"]}

    def test_payload_skips_candidates_without_position(self, candidates):
        orphan = make_candidate("orphan", None)
        selections = {"orphan": True, "bod2": True}

        votes = build_votes_by_position(selections, index(candidates + [orphan]))

        assert votes == {"BOD": ["bod2"]}

    def test_empty_payload_violation(self, positions):
        assert find_payload_violation({}, index(positions)) == "Please select at least one candidate to vote."

    def test_over_maximum_violation(self, positions):
        violation = find_payload_violation({"Audit": ["candX", "candY"]}, index(positions))

        assert violation == "For Audit, you can select a maximum of 1 candidates. You selected 2."

    def test_unknown_position_is_not_a_violation(self, positions):
        assert find_payload_violation({"Gone": ["c1"]}, index(positions)) is None

    def test_valid_payload(self, positions):
        assert find_payload_violation({"BOD": ["bod1", "bod2"], "Audit": ["candX"]}, index(positions)) is None
