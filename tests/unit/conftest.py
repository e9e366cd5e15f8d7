"""Pytest fixtures for unit tests.

Provides an in-memory stand-in for the election API collaborators and the
sample ballot used throughout: a three-seat board (BOD) followed by a
single-seat audit committee (Audit).
"""

from typing import Any, Dict, List, Optional

import pytest

from election_portal.ballot import BallotWorkflow
from election_portal.shared import Candidate, ElectionApiError, Position


class InMemoryElectionSource:
    """Collaborator double with configurable responses and failures."""

    def __init__(self, positions: List[Position], candidates: List[Candidate]):
        self.positions = positions
        self.candidates = candidates
        self.election_status: Dict[str, Any] = {"isVotingOpen": True}
        self.vote_status: Dict[str, Any] = {"hasVoted": False}
        self.cast_response: Dict[str, Any] = {"message": "Vote recorded."}
        self.errors: Dict[str, ElectionApiError] = {}
        self.cast_payloads: List[Dict[str, Any]] = []
        self.calls: List[str] = []

    def _maybe_fail(self, name: str):
        self.calls.append(name)
        error = self.errors.get(name)
        if error is not None:
            raise error

    async def get_election_status(self):
        self._maybe_fail("election_status")
        return self.election_status

    async def get_vote_status(self):
        self._maybe_fail("vote_status")
        return self.vote_status

    async def get_active_positions(self):
        self._maybe_fail("positions")
        return list(self.positions)

    async def get_candidates(self):
        self._maybe_fail("candidates")
        return list(self.candidates)

    async def cast_vote(self, payload):
        self._maybe_fail("cast_vote")
        self.cast_payloads.append(payload)
        return self.cast_response


def make_candidate(candidate_id: str, position_id: Optional[str], last_name: str = "") -> Candidate:
    return Candidate(
        id=candidate_id,
        first_name=candidate_id.upper(),
        last_name=last_name or "Doe",
        position_id=position_id,
        position_name=position_id,
    )


@pytest.fixture
def positions() -> List[Position]:
    """BOD (pick 1-3) and Audit (pick exactly 1), delivered out of order."""
    return [
        Position(id="Audit", name="Audit", order=2, min_selectable=1, max_selectable=1, number_of_winners=1),
        Position(id="BOD", name="BOD", order=1, min_selectable=1, max_selectable=3, number_of_winners=3),
    ]


@pytest.fixture
def candidates() -> List[Candidate]:
    return [
        make_candidate("bod1", "BOD"),
        make_candidate("bod2", "BOD"),
        make_candidate("bod3", "BOD"),
        make_candidate("bod4", "BOD"),
        make_candidate("bod5", "BOD"),
        make_candidate("candX", "Audit"),
        make_candidate("candY", "Audit"),
    ]


@pytest.fixture
def source(positions, candidates) -> InMemoryElectionSource:
    return InMemoryElectionSource(positions, candidates)


@pytest.fixture
def workflow(source) -> BallotWorkflow:
    """A workflow that has not been loaded yet."""
    return BallotWorkflow(source)


@pytest.fixture
async def loaded_workflow(workflow) -> BallotWorkflow:
    """A workflow loaded and sitting on the BOD stage."""
    await workflow.load()
    return workflow
