"""
Shared data models and utilities for the election portal.

This module contains:
- Position: An electable seat category with its own selection limits
- Candidate: A person standing for exactly one position
- Validation helpers for administrator-entered position settings
"""

from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, List
from enum import Enum


class PositionStatus(str, Enum):
    """Lifecycle status of a position. Only active positions appear on the ballot."""
    ACTIVE = "active"
    INACTIVE = "inactive"


def _read_id(data: Dict[str, Any]) -> Optional[str]:
    """Read an identity from either an `id` or a `_id` key."""
    value = data.get("id", data.get("_id"))
    return str(value) if value is not None else None


@dataclass
class Position:
    """
    An electable office or seat category.

    Attributes:
        id: Position identifier
        name: Display name
        description: Free text shown to voters
        order: Voting order (ascending)
        status: active or inactive
        min_selectable: Minimum number of candidates a voter must choose
        max_selectable: Maximum number of candidates a voter may choose
        number_of_winners: How many top-voted candidates win the position
    """
    id: str
    name: str
    description: str = ""
    order: int = 0
    status: str = PositionStatus.ACTIVE
    min_selectable: int = 0
    max_selectable: int = 1
    number_of_winners: int = 1

    @property
    def is_active(self) -> bool:
        return self.status == PositionStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the directory wire shape (camelCase keys)."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "order": self.order,
            "status": getattr(self.status, "value", self.status),
            "minSelectable": self.min_selectable,
            "maxSelectable": self.max_selectable,
            "numberOfWinners": self.number_of_winners,
        }

    def to_request_body(self) -> Dict[str, Any]:
        """
        Body for a position directory create/update request.

        The directory stores the winner count as `minWinners`.
        """
        body = self.to_dict()
        body.pop("id", None)
        body["minWinners"] = body.pop("numberOfWinners")
        return body

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Position':
        """
        Create Position from a position directory record.

        The winner count is read from `numberOfWinners`; the older
        `minWinners` key is only used when the former is absent.
        """
        winners = data.get("numberOfWinners")
        if winners is None:
            winners = data.get("minWinners", 1)

        return cls(
            id=_read_id(data) or "",
            name=data.get("name", ""),
            description=data.get("description") or "",
            order=int(data.get("order", 0)),
            status=data.get("status", PositionStatus.ACTIVE),
            min_selectable=int(data.get("minSelectable", 0)),
            max_selectable=int(data.get("maxSelectable", 1)),
            number_of_winners=int(winners),
        )

    def validate(self) -> tuple[bool, Optional[str]]:
        """
        Validate administrator-entered position settings.

        Returns:
            tuple: (is_valid, error_message)
        """
        if not self.name or not self.name.strip():
            return False, "Position name is required"

        if not validate_position_status(self.status):
            return False, "Invalid status"

        if not isinstance(self.order, int) or self.order < 0:
            return False, "Order cannot be negative"

        if self.number_of_winners < 0:
            return False, "Number of winners cannot be less than 0"

        if self.min_selectable < 0:
            return False, "Minimum selectable cannot be less than 0"

        if self.max_selectable < 1:
            return False, "Maximum selectable candidates must be at least 1"

        if not validate_selection_bounds(self.min_selectable, self.max_selectable):
            return False, "Max selectable must be greater than or equal to min selectable"

        return True, None


@dataclass
class Candidate:
    """
    A candidate standing for one position.

    The position is a reference only; the position directory stays the
    authority on its name and limits.

    Attributes:
        id: Candidate identifier
        first_name: Given name
        last_name: Family name
        position_id: Identifier of the position the candidate stands for
        position_name: Position name as reported alongside the candidate
        portrait_ref: Optional portrait URL or path
        votes: Vote count, only present in results snapshots
    """
    id: str
    first_name: str
    last_name: str
    position_id: Optional[str] = None
    position_name: Optional[str] = None
    portrait_ref: Optional[str] = None
    votes: Optional[int] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Candidate':
        """
        Create Candidate from a candidate directory record.

        The position may be an embedded `{id, name}` object or a bare id.
        """
        position = data.get("position")
        position_id = None
        position_name = None
        if isinstance(position, dict):
            position_id = _read_id(position)
            position_name = position.get("name")
        elif position is not None:
            position_id = str(position)

        portrait = data.get("portraitRef", data.get("profilePhoto", data.get("photoUrl")))

        return cls(
            id=_read_id(data) or "",
            first_name=data.get("firstName", ""),
            last_name=data.get("lastName", ""),
            position_id=position_id,
            position_name=position_name,
            portrait_ref=portrait,
            votes=data.get("votes"),
        )


def validate_position_status(status: str) -> bool:
    """
    Validate position status.

    Args:
        status: Status string to validate

    Returns:
        bool: True if status is a known PositionStatus
    """
    return status in [PositionStatus.ACTIVE, PositionStatus.INACTIVE]


def validate_selection_bounds(min_selectable: int, max_selectable: int) -> bool:
    """
    Validate selection bounds for a position.

    Args:
        min_selectable: Inclusive lower bound
        max_selectable: Inclusive upper bound

    Returns:
        bool: True if 0 <= min_selectable <= max_selectable
    """
    return 0 <= min_selectable <= max_selectable


def sort_positions(positions: List[Position]) -> List[Position]:
    """
    Order active positions for voting.

    Args:
        positions: Positions as returned by the directory

    Returns:
        list: Active positions in ascending `order`, ties kept in input order
    """
    return sorted(
        (p for p in positions if p.is_active),
        key=lambda p: p.order
    )
