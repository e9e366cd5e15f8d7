"""Pydantic models for request/response validation."""
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..results import ResultsView
from ..shared import Candidate, Position


class ToggleRequest(BaseModel):
    """Candidate selection toggle request model."""

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={"example": {"candidateId": "c-101"}}
    )

    candidate_id: str = Field(..., alias="candidateId", description="Candidate to select or deselect")

    @field_validator("candidate_id")
    @classmethod
    def validate_candidate_id(cls, v):
        """Validate candidate id is not empty."""
        if not v or not v.strip():
            raise ValueError("Candidate ID cannot be empty")
        return v.strip()


class NoticeModel(BaseModel):
    """Notice produced by the last ballot action."""

    kind: str
    message: str
    blocking: bool


class BallotCandidate(BaseModel):
    """Candidate as shown on a ballot stage."""

    id: str
    first_name: str
    last_name: str
    portrait_ref: Optional[str] = None
    selected: bool = False


class BallotPosition(BaseModel):
    """Position being voted on at the current stage."""

    id: str
    name: str
    description: str = ""
    min_selectable: int
    max_selectable: int
    selected_count: int


class ReviewEntry(BaseModel):
    """Chosen candidates for one position on the review stage."""

    position_id: str
    position_name: str
    candidates: list[BallotCandidate]


class BallotResponse(BaseModel):
    """Ballot workflow view response model."""

    phase: str = Field(..., description="loading, voting, review, submitted, closed, already_voted or load_failed")
    stage_index: Optional[int] = Field(default=None, description="Index into stages while voting or reviewing")
    stages: list[str] = Field(default_factory=list, description="Position names followed by Review")
    stage_title: Optional[str] = None
    message: Optional[str] = Field(default=None, description="Closed/already voted/load failure reason or confirmation")
    notice: Optional[NoticeModel] = None
    current_position: Optional[BallotPosition] = None
    candidates: list[BallotCandidate] = Field(default_factory=list)
    review: list[ReviewEntry] = Field(default_factory=list)
    can_go_back: bool = False
    can_submit: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "phase": "voting",
                "stage_index": 0,
                "stages": ["BOD", "Audit", "Review"],
                "stage_title": "Vote for: BOD",
                "message": None,
                "notice": {
                    "kind": "limit_reached",
                    "message": "You can select a maximum of 3 candidate(s) for BOD.",
                    "blocking": True
                },
                "current_position": {
                    "id": "p-1", "name": "BOD", "description": "",
                    "min_selectable": 1, "max_selectable": 3, "selected_count": 3
                },
                "candidates": [],
                "review": [],
                "can_go_back": False,
                "can_submit": False
            }
        }
    )


class StandingResponse(BaseModel):
    """One candidate's row in a position's results."""

    candidate_id: str
    name: str
    portrait_ref: Optional[str] = None
    votes: int
    rank: int
    vote_share: float
    share_label: str
    is_winner: bool
    is_tied_for_last_seat: bool


class PositionResultsResponse(BaseModel):
    """Ranking for one position."""

    position_id: str
    position_name: str
    number_of_winners: int
    total_votes: int
    has_unresolved_tie: bool
    standings: list[StandingResponse]


class ResultsResponse(BaseModel):
    """Election results response model."""

    is_voting_open: bool = Field(..., description="Results are withheld while voting is open")
    pending: bool
    notice: str
    positions: list[PositionResultsResponse] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: ResultsView) -> 'ResultsResponse':
        return cls(
            is_voting_open=view.is_voting_open,
            pending=view.pending,
            notice=view.notice,
            positions=[
                PositionResultsResponse(
                    position_id=tally.position_id,
                    position_name=tally.position_name,
                    number_of_winners=tally.number_of_winners,
                    total_votes=tally.total_votes,
                    has_unresolved_tie=tally.has_unresolved_tie,
                    standings=[
                        StandingResponse(
                            candidate_id=s.candidate_id,
                            name=s.name,
                            portrait_ref=s.portrait_ref,
                            votes=s.votes,
                            rank=s.rank,
                            vote_share=s.vote_share,
                            share_label=s.share_label,
                            is_winner=s.is_winner,
                            is_tied_for_last_seat=s.is_tied_for_last_seat,
                        )
                        for s in tally.standings
                    ],
                )
                for tally in view.positions
            ],
        )


class PositionRequest(BaseModel):
    """Position create/update request model."""

    name: str = Field(..., description="Position name")
    description: str = Field(default="", description="Shown to voters")
    status: Literal["active", "inactive"] = Field(default="active")
    order: int = Field(default=0, description="Voting order, ascending")
    number_of_winners: int = Field(default=1, description="Top-voted candidates declared winners")
    min_selectable: int = Field(default=0, description="Minimum choices per voter")
    max_selectable: int = Field(default=1, description="Maximum choices per voter")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Validate name is not empty."""
        if not v or not v.strip():
            raise ValueError("Position name is required")
        return v.strip()

    def to_position(self, position_id: str = "") -> Position:
        return Position(
            id=position_id,
            name=self.name,
            description=self.description,
            order=self.order,
            status=self.status,
            min_selectable=self.min_selectable,
            max_selectable=self.max_selectable,
            number_of_winners=self.number_of_winners,
        )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "BOD",
                "description": "Board of directors",
                "status": "active",
                "order": 1,
                "number_of_winners": 3,
                "min_selectable": 1,
                "max_selectable": 3
            }
        }
    )


class PositionResponse(BaseModel):
    """Position as listed for administrators."""

    id: str
    name: str
    description: str = ""
    status: str
    order: int
    number_of_winners: int
    min_selectable: int
    max_selectable: int

    @classmethod
    def from_position(cls, position: Position) -> 'PositionResponse':
        return cls(
            id=position.id,
            name=position.name,
            description=position.description,
            status=getattr(position.status, "value", position.status),
            order=position.order,
            number_of_winners=position.number_of_winners,
            min_selectable=position.min_selectable,
            max_selectable=position.max_selectable,
        )


class CandidateResponse(BaseModel):
    """Candidate as listed for administrators."""

    id: str
    first_name: str
    last_name: str
    position_id: Optional[str] = None
    position_name: Optional[str] = None
    portrait_ref: Optional[str] = None

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> 'CandidateResponse':
        return cls(
            id=candidate.id,
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            position_id=candidate.position_id,
            position_name=candidate.position_name,
            portrait_ref=candidate.portrait_ref,
        )


class AdminActionResponse(BaseModel):
    """Administrator action response model."""

    status: str = Field(default="ok")
    message: str


class AdminStatusResponse(BaseModel):
    """Election lifecycle status for administrators."""

    voting: dict = Field(..., description="Upstream voting status")
    registration: dict = Field(..., description="Upstream registration status")


class HealthResponse(BaseModel):
    """Health check response model."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Overall health status")
    services: dict = Field(..., description="Status of individual services")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Health check timestamp")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    details: dict = Field(default_factory=dict, description="Additional error details")
