"""Unit tests for shared position and candidate models."""

import pytest

from election_portal.shared import (
    Candidate,
    Position,
    PositionStatus,
    sort_positions,
    validate_position_status,
    validate_selection_bounds,
)


class TestPosition:
    """Tests for Position parsing and validation."""

    def test_from_dict_reads_wire_shape(self):
        position = Position.from_dict({
            "_id": "64f0",
            "name": "Board of Directors",
            "description": "Three seats",
            "order": 1,
            "status": "active",
            "minSelectable": 1,
            "maxSelectable": 3,
            "numberOfWinners": 3,
        })

        assert position.id == "64f0"
        assert position.is_active
        assert (position.min_selectable, position.max_selectable) == (1, 3)
        assert position.number_of_winners == 3

    def test_number_of_winners_preferred_over_min_winners(self):
        position = Position.from_dict({"id": "p", "name": "P", "numberOfWinners": 2, "minWinners": 5})

        assert position.number_of_winners == 2

    def test_min_winners_used_when_number_missing(self):
        position = Position.from_dict({"id": "p", "name": "P", "minWinners": 4})

        assert position.number_of_winners == 4

    def test_to_dict_round_trips_keys(self):
        position = Position(id="p", name="P", order=3, max_selectable=2)

        data = position.to_dict()

        assert data["status"] == "active"
        assert data["maxSelectable"] == 2
        assert Position.from_dict(data) == Position(id="p", name="P", order=3, status="active", max_selectable=2)

    def test_request_body_names_winner_count_min_winners(self):
        position = Position(id="p1", name="BOD", order=1, max_selectable=3, number_of_winners=3)

        body = position.to_request_body()

        assert body["minWinners"] == 3
        assert "numberOfWinners" not in body
        assert "id" not in body
        assert Position.from_dict(dict(body, id="p1")) == position

    def test_valid_position(self):
        assert Position(id="p", name="Chair", min_selectable=1, max_selectable=1).validate() == (True, None)

    @pytest.mark.parametrize("kwargs,message", [
        ({"name": "  "}, "Position name is required"),
        ({"status": "archived"}, "Invalid status"),
        ({"order": -1}, "Order cannot be negative"),
        ({"number_of_winners": -1}, "Number of winners cannot be less than 0"),
        ({"min_selectable": -1}, "Minimum selectable cannot be less than 0"),
        ({"max_selectable": 0}, "Maximum selectable candidates must be at least 1"),
        ({"min_selectable": 3, "max_selectable": 2},
         "Max selectable must be greater than or equal to min selectable"),
    ])
    def test_invalid_position(self, kwargs, message):
        fields = {"id": "p", "name": "Chair"}
        fields.update(kwargs)

        is_valid, error = Position(**fields).validate()

        assert not is_valid
        assert error == message


class TestCandidate:
    """Tests for Candidate parsing."""

    def test_embedded_position(self):
        candidate = Candidate.from_dict({
            "_id": "c1",
            "firstName": "Ada",
            "lastName": "Lovelace",
            "position": {"_id": "p1", "name": "Chair"},
            "profilePhoto": "/uploads/ada.png",
        })

        assert candidate.position_id == "p1"
        assert candidate.position_name == "Chair"
        assert candidate.portrait_ref == "/uploads/ada.png"
        assert candidate.full_name == "Ada Lovelace"

    def test_bare_position_id(self):
        candidate = Candidate.from_dict({"id": "c2", "firstName": "Alan", "lastName": "Turing", "position": "p2"})

        assert candidate.position_id == "p2"
        assert candidate.position_name is None

    def test_missing_position(self):
        candidate = Candidate.from_dict({"id": "c3", "firstName": "Grace", "lastName": "Hopper"})

        assert candidate.position_id is None


class TestHelpers:

    def test_status_validation(self):
        assert validate_position_status("active")
        assert validate_position_status(PositionStatus.INACTIVE)
        assert not validate_position_status("closed")

    def test_selection_bounds(self):
        assert validate_selection_bounds(0, 1)
        assert validate_selection_bounds(2, 2)
        assert not validate_selection_bounds(3, 2)
        assert not validate_selection_bounds(-1, 2)

    def test_sort_positions_is_stable_and_drops_inactive(self):
        positions = [
            Position(id="b", name="B", order=2),
            Position(id="a1", name="A1", order=1),
            Position(id="x", name="X", order=0, status=PositionStatus.INACTIVE),
            Position(id="a2", name="A2", order=1),
        ]

        assert [p.id for p in sort_positions(positions)] == ["a1", "a2", "b"]
