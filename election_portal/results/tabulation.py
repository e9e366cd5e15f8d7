"""
Results tabulation.

Turns a results snapshot into per-position rankings: rank, vote share,
winner flag, and the tied-for-last-winning-seat flag. Candidates are taken
in the order the results source delivers them (descending votes); nothing
is re-sorted here and no tie is broken automatically.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import PositionResult, ResultsSnapshot

logger = logging.getLogger(__name__)

PENDING_NOTICE = "Detailed election results will be shown here once voting is closed."
CLOSED_NOTICE = "Voting is currently closed."


@dataclass(frozen=True)
class CandidateStanding:
    """A candidate's place in a position's ranking."""
    candidate_id: str
    name: str
    portrait_ref: Optional[str]
    votes: int
    rank: int
    vote_share: float
    is_winner: bool
    is_tied_for_last_seat: bool

    @property
    def share_label(self) -> str:
        return format_share(self.vote_share)


@dataclass(frozen=True)
class PositionTally:
    """Ranking for one position."""
    position_id: str
    position_name: str
    number_of_winners: int
    total_votes: int
    standings: Tuple[CandidateStanding, ...]

    @property
    def winners(self) -> List[CandidateStanding]:
        return [s for s in self.standings if s.is_winner]

    @property
    def has_unresolved_tie(self) -> bool:
        return any(s.is_tied_for_last_seat for s in self.standings)


@dataclass(frozen=True)
class ResultsView:
    """What the results page shows. Empty while voting is open."""
    is_voting_open: bool
    positions: Tuple[PositionTally, ...] = ()

    @property
    def pending(self) -> bool:
        return self.is_voting_open

    @property
    def notice(self) -> str:
        return PENDING_NOTICE if self.is_voting_open else CLOSED_NOTICE


def format_share(share: float) -> str:
    """Render a vote share as a whole percent, halves rounded up."""
    return f"{int(math.floor(share + 0.5))}%"


def tabulate_position(result: PositionResult) -> PositionTally:
    """
    Rank one position's candidates.

    Args:
        result: Position results with candidates in descending vote order

    Returns:
        PositionTally: Standings with winner and tie-boundary flags
    """
    candidates = result.candidates
    winners = result.number_of_winners
    total_votes = sum(c.votes for c in candidates)

    # Votes of the candidate holding the last winning seat, if that seat is filled
    last_winner_votes = -1
    if winners > 0 and len(candidates) >= winners:
        last_winner_votes = candidates[winners - 1].votes

    standings = []
    for index, candidate in enumerate(candidates):
        rank = index + 1
        is_winner = rank <= winners
        share = (candidate.votes / total_votes) * 100 if total_votes > 0 else 0.0
        tied = (
            not is_winner
            and winners > 0
            and last_winner_votes > 0
            and candidate.votes == last_winner_votes
        )
        standings.append(CandidateStanding(
            candidate_id=candidate.id,
            name=candidate.full_name,
            portrait_ref=candidate.portrait_ref,
            votes=candidate.votes,
            rank=rank,
            vote_share=share,
            is_winner=is_winner,
            is_tied_for_last_seat=tied,
        ))

    tally = PositionTally(
        position_id=result.position_id,
        position_name=result.position_name,
        number_of_winners=winners,
        total_votes=total_votes,
        standings=tuple(standings),
    )
    if tally.has_unresolved_tie:
        logger.warning(
            f"Unresolved tie for the last winning seat of {result.position_name} "
            f"at {last_winner_votes} votes"
        )
    return tally


def tabulate_results(snapshot: ResultsSnapshot) -> ResultsView:
    """
    Tabulate a full results snapshot.

    While voting is open no per-candidate data is produced at all.

    Args:
        snapshot: Snapshot reported by the results source

    Returns:
        ResultsView: Pending view, or one tally per position
    """
    if snapshot.is_voting_open:
        return ResultsView(is_voting_open=True)

    return ResultsView(
        is_voting_open=False,
        positions=tuple(tabulate_position(p) for p in snapshot.positions),
    )
