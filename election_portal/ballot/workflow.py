"""
Ballot workflow engine.

Project: Election Portal

Drives a voter through one stage per active position followed by a review
stage, enforcing each position's selection limits before the voter may move
on or submit, and hands the finished ballot to the vote submission sink.

State machine:

    LOADING -> VOTING(k) <-> REVIEW -> SUBMITTED
    LOADING -> CLOSED | ALREADY_VOTED | LOAD_FAILED

SUBMITTED, CLOSED, ALREADY_VOTED and LOAD_FAILED are absorbing. Recovering
from them means building a new workflow.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ..shared import (
    Candidate,
    ElectionApiError,
    Position,
    SelectionSet,
    build_votes_by_position,
    can_select_more,
    count_selected_for_position,
    find_payload_violation,
    meets_minimum,
    new_selection_set,
    sort_positions,
)

logger = logging.getLogger(__name__)

REVIEW_STAGE = "Review"
REVIEW_TITLE = "Review Your Selections"
CLOSED_MESSAGE = "Voting is currently closed."
ALREADY_VOTED_MESSAGE = "You have already submitted your vote. Thank you for participating!"
SUBMITTED_MESSAGE = "Your vote has been successfully submitted!"
SUBMIT_FAILED_MESSAGE = "Failed to submit your vote. Please try again."


class WorkflowPhase(str, Enum):
    """Phase of a ballot workflow."""
    LOADING = "loading"
    VOTING = "voting"
    REVIEW = "review"
    SUBMITTED = "submitted"
    CLOSED = "closed"
    ALREADY_VOTED = "already_voted"
    LOAD_FAILED = "load_failed"


TERMINAL_PHASES = frozenset({
    WorkflowPhase.SUBMITTED,
    WorkflowPhase.CLOSED,
    WorkflowPhase.ALREADY_VOTED,
    WorkflowPhase.LOAD_FAILED,
})


class NoticeKind(str, Enum):
    """Kinds of notices a workflow action can produce."""
    WRONG_POSITION = "wrong_position"
    LIMIT_REACHED = "limit_reached"
    MINIMUM_NOT_MET = "minimum_not_met"
    INVALID_BALLOT = "invalid_ballot"
    SUBMISSION_FAILED = "submission_failed"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class Notice:
    """Outcome message shown to the voter after an action."""
    kind: NoticeKind
    message: str

    @property
    def blocking(self) -> bool:
        return self.kind != NoticeKind.SUBMITTED

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, "blocking": self.blocking}


@dataclass(frozen=True)
class WorkflowState:
    """
    The single workflow-state value.

    Attributes:
        phase: Current phase
        stage_index: Index into the stage list, meaningful in VOTING and REVIEW
        message: Closed/already-voted/load-failure reason, or the submission
            confirmation once SUBMITTED
    """
    phase: WorkflowPhase = WorkflowPhase.LOADING
    stage_index: int = 0
    message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


@dataclass(frozen=True)
class LoadResult:
    """Result of one collaborator fetch during loading."""
    ok: bool
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any) -> 'LoadResult':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> 'LoadResult':
        return cls(ok=False, error=error)


async def fetch(label: str, call: Callable[[], Awaitable[Any]]) -> LoadResult:
    """
    Run one collaborator fetch and capture its outcome.

    Args:
        label: Human-readable name of the resource being fetched
        call: Zero-argument coroutine function performing the fetch

    Returns:
        LoadResult: success with the fetched value, or failure with a reason
    """
    try:
        return LoadResult.success(await call())
    except ElectionApiError as e:
        logger.error(f"Failed to load {label}: {e}")
        return LoadResult.failure(str(e) or f"Failed to load {label}.")


# ═══════════════════════════════════════════════════════════════════
# DERIVED VALUES
# ═══════════════════════════════════════════════════════════════════

def build_stages(positions: List[Position]) -> List[str]:
    """Stage list: one stage per position name, then the review stage."""
    return [position.name for position in positions] + [REVIEW_STAGE]


def current_position(positions: List[Position], stage_index: int) -> Optional[Position]:
    """Position voted on at a stage, or None on the review stage."""
    if 0 <= stage_index < len(positions):
        return positions[stage_index]
    return None


def stage_title(positions: List[Position], stage_index: int) -> str:
    position = current_position(positions, stage_index)
    if position is None:
        return REVIEW_TITLE
    return f"Vote for: {position.name}"


def candidates_for_position(candidates: List[Candidate], position_id: str) -> List[Candidate]:
    return [c for c in candidates if c.position_id == position_id]


def review_summary(
    positions: List[Position],
    candidates: List[Candidate],
    selections: SelectionSet
) -> List[Dict[str, Any]]:
    """
    Group the voter's choices by position for the review stage.

    Returns:
        list: One entry per position, in voting order, with the chosen
        candidates (possibly none)
    """
    summary = []
    for position in positions:
        chosen = [
            c for c in candidates_for_position(candidates, position.id)
            if selections.get(c.id)
        ]
        summary.append({"position": position, "candidates": chosen})
    return summary


# ═══════════════════════════════════════════════════════════════════
# WORKFLOW
# ═══════════════════════════════════════════════════════════════════

class BallotWorkflow:
    """
    One voter's ballot, from loading to submission.

    `source` provides the external collaborators as coroutines:
    `get_election_status()` -> {"isVotingOpen": bool, "message"?: str},
    `get_vote_status()` -> {"hasVoted": bool},
    `get_active_positions()` -> List[Position],
    `get_candidates()` -> List[Candidate],
    `cast_vote(payload)` -> {"message"?: str}.
    Failures are signalled with ElectionApiError.
    """

    def __init__(self, source):
        self.source = source
        self.state = WorkflowState()
        self.positions: List[Position] = []
        self.candidates: List[Candidate] = []
        self.candidates_by_id: Dict[str, Candidate] = {}
        self.selections: SelectionSet = {}
        self.notice: Optional[Notice] = None

        # Re-entry guards for the two suspension points
        self._loading = False
        self._submitting = False

    @property
    def phase(self) -> WorkflowPhase:
        return self.state.phase

    @property
    def stage_index(self) -> int:
        return self.state.stage_index

    @property
    def stages(self) -> List[str]:
        return build_stages(self.positions)

    @property
    def current_position(self) -> Optional[Position]:
        if self.state.phase != WorkflowPhase.VOTING:
            return None
        return current_position(self.positions, self.state.stage_index)

    @property
    def positions_by_id(self) -> Dict[str, Position]:
        return {position.id: position for position in self.positions}

    @property
    def has_voted(self) -> bool:
        return self.state.phase in (WorkflowPhase.SUBMITTED, WorkflowPhase.ALREADY_VOTED)

    def selected_count(self, position: Position) -> int:
        return count_selected_for_position(self.selections, self.candidates_by_id, position.id)

    def _enter(self, phase: WorkflowPhase, stage_index: int = 0, message: Optional[str] = None):
        previous = self.state.phase
        self.state = WorkflowState(phase=phase, stage_index=stage_index, message=message)
        if previous != phase:
            logger.info(f"Ballot workflow {previous.value} -> {phase.value} (stage {stage_index})")

    def _move_to(self, stage_index: int):
        phase = WorkflowPhase.REVIEW if stage_index >= len(self.positions) else WorkflowPhase.VOTING
        self._enter(phase, stage_index=stage_index)

    def _notify(self, kind: NoticeKind, message: str) -> Notice:
        self.notice = Notice(kind=kind, message=message)
        if self.notice.blocking:
            logger.warning(f"Ballot action rejected ({kind.value}): {message}")
        return self.notice

    # ───────────────────────────────────────────────────────────────
    # Loading
    # ───────────────────────────────────────────────────────────────

    async def load(self) -> WorkflowState:
        """
        Fetch everything the ballot needs and enter the first stage.

        Fetch order is election status, vote status, active positions,
        candidates. A closed election, a prior vote, or any fetch failure
        ends the workflow in an absorbing phase. Calling load() again while
        it is in flight, or after it finished, does nothing.

        Returns:
            WorkflowState: State after loading
        """
        if self._loading or self.state.phase != WorkflowPhase.LOADING:
            return self.state

        self._loading = True
        try:
            election_status = await fetch("election status", self.source.get_election_status)
            if not election_status.ok:
                return self._fail_loading(election_status.error)

            status = election_status.value or {}
            is_open = status.get("isVotingOpen")
            if not isinstance(is_open, bool):
                return self._fail_loading(
                    status.get("message")
                    or "Could not determine if voting is open."
                )
            if not is_open:
                self._enter(WorkflowPhase.CLOSED, message=status.get("message") or CLOSED_MESSAGE)
                return self.state

            vote_status = await fetch("vote status", self.source.get_vote_status)
            if not vote_status.ok:
                return self._fail_loading(vote_status.error)

            has_voted = (vote_status.value or {}).get("hasVoted")
            if not isinstance(has_voted, bool):
                return self._fail_loading("Could not determine your voting status.")
            if has_voted:
                self._enter(WorkflowPhase.ALREADY_VOTED, message=ALREADY_VOTED_MESSAGE)
                return self.state

            positions = await fetch("positions", self.source.get_active_positions)
            if not positions.ok:
                return self._fail_loading(positions.error)

            candidates = await fetch("candidates", self.source.get_candidates)
            if not candidates.ok:
                return self._fail_loading(candidates.error)

            self.positions = sort_positions(list(positions.value or []))
            self.candidates = list(candidates.value or [])
            self.candidates_by_id = {c.id: c for c in self.candidates}
            self.selections = new_selection_set(self.candidates)

            logger.info(
                f"Ballot loaded: {len(self.positions)} positions, "
                f"{len(self.candidates)} candidates"
            )
            self._move_to(0)
            return self.state

        finally:
            self._loading = False

    def _fail_loading(self, reason: Optional[str]) -> WorkflowState:
        self._enter(
            WorkflowPhase.LOAD_FAILED,
            message=reason or "Failed to load voting page data. Please try again later."
        )
        return self.state

    # ───────────────────────────────────────────────────────────────
    # Voter actions
    # ───────────────────────────────────────────────────────────────

    def toggle(self, candidate_id: str) -> Optional[Notice]:
        """
        Select or deselect a candidate on the current stage.

        Silently ignored when the candidate or its position cannot be
        resolved, or when there is no current position. Selecting is
        refused when the candidate stands for another position or the
        position's maximum is already reached.

        Args:
            candidate_id: Candidate to flip

        Returns:
            Notice: The rejection, or None
        """
        self.notice = None
        position = self.current_position
        candidate = self.candidates_by_id.get(candidate_id)

        if candidate is None or not candidate.position_id or position is None:
            logger.debug(f"Ignoring toggle of {candidate_id}: nothing to resolve on this stage")
            return None

        if candidate.position_id != position.id:
            return self._notify(
                NoticeKind.WRONG_POSITION,
                f"You are trying to select a candidate from a different position. "
                f"Please only select candidates for {position.name}."
            )

        is_selected = bool(self.selections.get(candidate_id))
        if not is_selected and not can_select_more(self.selected_count(position), position):
            return self._notify(
                NoticeKind.LIMIT_REACHED,
                f"You can select a maximum of {position.max_selectable} "
                f"candidate(s) for {position.name}."
            )

        self.selections[candidate_id] = not is_selected
        return None

    def next(self) -> Optional[Notice]:
        """
        Advance one stage if the current position's minimum is met.

        Does nothing on the review stage or before loading finished.

        Returns:
            Notice: The rejection, or None
        """
        if self.state.phase != WorkflowPhase.VOTING or self._submitting:
            return None

        self.notice = None
        position = self.current_position
        if not meets_minimum(self.selected_count(position), position):
            return self._notify(
                NoticeKind.MINIMUM_NOT_MET,
                f"Please select at least {position.min_selectable} candidate(s) "
                f"for {position.name} to proceed."
            )

        self._move_to(self.state.stage_index + 1)
        return None

    def previous(self) -> Optional[Notice]:
        """Go back one stage. Selections are kept and not re-validated."""
        if self.state.phase not in (WorkflowPhase.VOTING, WorkflowPhase.REVIEW):
            return None
        if self.state.stage_index == 0 or self._submitting:
            return None

        self.notice = None
        self._move_to(self.state.stage_index - 1)
        return None

    def build_payload(self) -> Dict[str, Dict[str, List[str]]]:
        """Vote submission payload for the current selections."""
        return {"votesByPosition": build_votes_by_position(self.selections, self.candidates_by_id)}

    async def submit(self) -> Optional[Notice]:
        """
        Validate the ballot and hand it to the vote submission sink.

        Only acts on the review stage. Once SUBMITTED, or while a submission
        is in flight, further calls do nothing. A rejected submission keeps
        the voter on the review stage with the reason as a notice.

        Returns:
            Notice: Outcome of the attempt, or None if nothing was attempted
        """
        if self.state.phase != WorkflowPhase.REVIEW or self._submitting:
            return None

        self.notice = None
        payload = self.build_payload()
        violation = find_payload_violation(payload["votesByPosition"], self.positions_by_id)
        if violation:
            return self._notify(NoticeKind.INVALID_BALLOT, violation)

        logger.info(
            f"Submitting ballot: "
            f"{sum(len(ids) for ids in payload['votesByPosition'].values())} selections "
            f"across {len(payload['votesByPosition'])} positions"
        )

        self._submitting = True
        try:
            response = await self.source.cast_vote(payload)
        except ElectionApiError as e:
            logger.error(f"Vote submission rejected: {e}")
            return self._notify(NoticeKind.SUBMISSION_FAILED, str(e) or SUBMIT_FAILED_MESSAGE)
        finally:
            self._submitting = False

        message = (response or {}).get("message") or SUBMITTED_MESSAGE
        self.selections = {}
        self._enter(WorkflowPhase.SUBMITTED, stage_index=self.state.stage_index, message=message)
        return self._notify(NoticeKind.SUBMITTED, message)

    # ───────────────────────────────────────────────────────────────
    # View
    # ───────────────────────────────────────────────────────────────

    def _candidate_view(self, candidate: Candidate) -> Dict[str, Any]:
        return {
            "id": candidate.id,
            "first_name": candidate.first_name,
            "last_name": candidate.last_name,
            "portrait_ref": candidate.portrait_ref,
            "selected": bool(self.selections.get(candidate.id)),
        }

    def view(self) -> Dict[str, Any]:
        """
        Snapshot of everything a front end needs to render the workflow.

        Returns:
            dict: Plain JSON-serializable view
        """
        phase = self.state.phase
        in_stages = phase in (WorkflowPhase.VOTING, WorkflowPhase.REVIEW)
        position = self.current_position

        current = None
        candidates = []
        if position is not None:
            current = {
                "id": position.id,
                "name": position.name,
                "description": position.description,
                "min_selectable": position.min_selectable,
                "max_selectable": position.max_selectable,
                "selected_count": self.selected_count(position),
            }
            candidates = [
                self._candidate_view(c)
                for c in candidates_for_position(self.candidates, position.id)
            ]

        review = []
        if phase == WorkflowPhase.REVIEW:
            review = [
                {
                    "position_id": entry["position"].id,
                    "position_name": entry["position"].name,
                    "candidates": [self._candidate_view(c) for c in entry["candidates"]],
                }
                for entry in review_summary(self.positions, self.candidates, self.selections)
            ]

        return {
            "phase": phase.value,
            "stage_index": self.state.stage_index if in_stages else None,
            "stages": self.stages if in_stages else [],
            "stage_title": stage_title(self.positions, self.state.stage_index) if in_stages else None,
            "message": self.state.message,
            "notice": self.notice.to_dict() if self.notice else None,
            "current_position": current,
            "candidates": candidates,
            "review": review,
            "can_go_back": in_stages and self.state.stage_index > 0,
            "can_submit": phase == WorkflowPhase.REVIEW and any(self.selections.values()),
        }
