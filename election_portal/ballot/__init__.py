"""Ballot workflow engine: position stages, review, and submission."""

from .workflow import (
    BallotWorkflow,
    WorkflowPhase,
    WorkflowState,
    LoadResult,
    Notice,
    NoticeKind,
    TERMINAL_PHASES,
    REVIEW_STAGE,
    build_stages,
    current_position,
    stage_title,
    candidates_for_position,
    review_summary,
)

__all__ = [
    'BallotWorkflow',
    'WorkflowPhase',
    'WorkflowState',
    'LoadResult',
    'Notice',
    'NoticeKind',
    'TERMINAL_PHASES',
    'REVIEW_STAGE',
    'build_stages',
    'current_position',
    'stage_title',
    'candidates_for_position',
    'review_summary',
]
