"""Results snapshot records and tie-aware tabulation."""

from .models import CandidateResult, PositionResult, ResultsSnapshot
from .tabulation import (
    CandidateStanding,
    PositionTally,
    ResultsView,
    PENDING_NOTICE,
    format_share,
    tabulate_position,
    tabulate_results,
)

__all__ = [
    'CandidateResult',
    'PositionResult',
    'ResultsSnapshot',
    'CandidateStanding',
    'PositionTally',
    'ResultsView',
    'PENDING_NOTICE',
    'format_share',
    'tabulate_position',
    'tabulate_results',
]
