"""
Shared utilities and models for the election portal.

This package contains common code used across the portal:
- Data models (Position, Candidate, PositionStatus)
- ElectionApiError raised for remote API failures
- Position settings validation
- Selection-set helpers grouped by position
"""

from .exceptions import ElectionApiError
from .models import (
    Position,
    Candidate,
    PositionStatus,
    validate_position_status,
    validate_selection_bounds,
    sort_positions,
)
from .selection import (
    SelectionSet,
    new_selection_set,
    selected_candidate_ids,
    count_selected_for_position,
    selected_counts_by_position,
    can_select_more,
    meets_minimum,
    build_votes_by_position,
    find_payload_violation,
)

__all__ = [
    'ElectionApiError',
    'Position',
    'Candidate',
    'PositionStatus',
    'validate_position_status',
    'validate_selection_bounds',
    'sort_positions',
    'SelectionSet',
    'new_selection_set',
    'selected_candidate_ids',
    'count_selected_for_position',
    'selected_counts_by_position',
    'can_select_more',
    'meets_minimum',
    'build_votes_by_position',
    'find_payload_violation',
]
