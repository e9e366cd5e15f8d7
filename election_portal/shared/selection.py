"""
Selection-set helpers shared by the ballot workflow and the portal API.

A selection set maps every candidate id to a boolean "chosen" flag. Storage
is flat, but every check here is expressed as a count grouped by position.
"""

import logging
from typing import Dict, List, Optional, Iterable

from .models import Candidate, Position

logger = logging.getLogger(__name__)

SelectionSet = Dict[str, bool]


def new_selection_set(candidates: Iterable[Candidate]) -> SelectionSet:
    """
    Create a selection set with every candidate unselected.

    Args:
        candidates: Full candidate list

    Returns:
        dict: candidate id -> False, in candidate order
    """
    return {candidate.id: False for candidate in candidates}


def selected_candidate_ids(selections: SelectionSet) -> List[str]:
    """Return chosen candidate ids in selection-set order."""
    return [candidate_id for candidate_id, chosen in selections.items() if chosen]


def count_selected_for_position(
    selections: SelectionSet,
    candidates_by_id: Dict[str, Candidate],
    position_id: str
) -> int:
    """
    Count chosen candidates that belong to one position.

    Args:
        selections: Current selection set
        candidates_by_id: Candidate index
        position_id: Position to count for

    Returns:
        int: Number of chosen candidates standing for the position
    """
    count = 0
    for candidate_id in selected_candidate_ids(selections):
        candidate = candidates_by_id.get(candidate_id)
        if candidate and candidate.position_id == position_id:
            count += 1
    return count


def selected_counts_by_position(
    selections: SelectionSet,
    candidates_by_id: Dict[str, Candidate]
) -> Dict[str, int]:
    """
    Group chosen candidates by position and count them.

    Selections whose candidate or position cannot be resolved are not counted.
    """
    counts: Dict[str, int] = {}
    for candidate_id in selected_candidate_ids(selections):
        candidate = candidates_by_id.get(candidate_id)
        if not candidate or not candidate.position_id:
            continue
        counts[candidate.position_id] = counts.get(candidate.position_id, 0) + 1
    return counts


def can_select_more(selected_count: int, position: Position) -> bool:
    """True while another candidate may still be chosen for the position."""
    return selected_count < position.max_selectable


def meets_minimum(selected_count: int, position: Position) -> bool:
    """True if the position's minimum is satisfied. A minimum of 0 is always met."""
    if position.min_selectable <= 0:
        return True
    return selected_count >= position.min_selectable


def build_votes_by_position(
    selections: SelectionSet,
    candidates_by_id: Dict[str, Candidate]
) -> Dict[str, List[str]]:
    """
    Build the `votesByPosition` body of a vote submission.

    Args:
        selections: Current selection set
        candidates_by_id: Candidate index

    Returns:
        dict: position id -> chosen candidate ids, positions without a
        selection omitted
    """
    votes_by_position: Dict[str, List[str]] = {}
    for candidate_id in selected_candidate_ids(selections):
        candidate = candidates_by_id.get(candidate_id)
        if not candidate or not candidate.position_id:
            logger.warning(
                f"Selected candidate {candidate_id} not found or missing position, "
                f"leaving it out of the submission"
            )
            continue
        votes_by_position.setdefault(candidate.position_id, []).append(candidate_id)
    return votes_by_position


def find_payload_violation(
    votes_by_position: Dict[str, List[str]],
    positions_by_id: Dict[str, Position]
) -> Optional[str]:
    """
    Check a submission body before it leaves the portal.

    Args:
        votes_by_position: Submission body
        positions_by_id: Position index

    Returns:
        str: First violation found, or None if the body may be sent
    """
    total_selected = sum(len(ids) for ids in votes_by_position.values())
    if total_selected == 0:
        return "Please select at least one candidate to vote."

    for position_id, candidate_ids in votes_by_position.items():
        position = positions_by_id.get(position_id)
        if position is None:
            logger.warning(
                f"Position {position_id} not found in the position directory "
                f"during submission validation"
            )
            continue

        if len(candidate_ids) > position.max_selectable:
            return (
                f"For {position.name}, you can select a maximum of "
                f"{position.max_selectable} candidates. You selected {len(candidate_ids)}."
            )

    return None
