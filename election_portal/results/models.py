"""
Results snapshot records.

A snapshot is what the results source reports: the voting-open flag and,
per position, its candidates already sorted by descending vote count.
Snapshots are immutable and replaced wholesale on every fetch.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class CandidateResult:
    """One candidate's reported vote count."""
    id: str
    first_name: str
    last_name: str
    votes: int = 0
    portrait_ref: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CandidateResult':
        votes = int(data.get("votes") or 0)
        if votes < 0:
            raise ValueError(f"Negative vote count for candidate {data.get('id', data.get('_id'))}")
        return cls(
            id=str(data.get("id", data.get("_id", ""))),
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            votes=votes,
            portrait_ref=data.get("portraitRef", data.get("profilePhoto")),
        )


@dataclass(frozen=True)
class PositionResult:
    """
    Reported results for one position.

    Attributes:
        position_id: Position identifier
        position_name: Display name
        number_of_winners: How many top-ranked candidates win
        candidates: Candidates in descending vote order, as delivered
    """
    position_id: str
    position_name: str
    number_of_winners: int
    candidates: Tuple[CandidateResult, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PositionResult':
        winners = data.get("numberOfWinners")
        if winners is None:
            winners = data.get("minWinners", 0)
        return cls(
            position_id=str(data.get("positionId", data.get("id", ""))),
            position_name=data.get("positionName", data.get("name", "")),
            number_of_winners=int(winners),
            candidates=tuple(
                CandidateResult.from_dict(c) for c in data.get("candidates") or []
            ),
        )


@dataclass(frozen=True)
class ResultsSnapshot:
    """Full results report: voting-open flag plus per-position results."""
    is_voting_open: bool
    positions: Tuple[PositionResult, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ResultsSnapshot':
        """
        Create a snapshot from the results source response.

        Per-position rows are not read while voting is open, so their
        content cannot affect the pending view.

        Raises:
            ValueError: If the voting-open flag is missing or not a boolean
        """
        is_open = data.get("isVotingOpen")
        if not isinstance(is_open, bool):
            raise ValueError("Results response is missing the isVotingOpen flag")
        if is_open:
            return cls(is_voting_open=True)
        return cls(
            is_voting_open=is_open,
            positions=tuple(
                PositionResult.from_dict(p) for p in data.get("positions") or []
            ),
        )
