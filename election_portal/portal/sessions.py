"""In-memory registry of voters' ballot workflows."""
import hashlib
import logging
from collections import OrderedDict
from typing import Optional

from ..ballot import BallotWorkflow
from .config import settings

logger = logging.getLogger(__name__)


def session_key(token: str) -> str:
    """Key a session by the token's SHA-256 so raw tokens are never held as keys."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


class WorkflowSessions:
    """
    One BallotWorkflow per voter, keyed by bearer token.

    Nothing is persisted: a restart, or starting a new workflow, drops any
    in-progress selections. The oldest session is evicted once
    `max_sessions` is reached.
    """

    def __init__(self, max_sessions: Optional[int] = None):
        limit = max_sessions if max_sessions is not None else settings.MAX_SESSIONS
        self.max_sessions = max(1, limit)
        self._workflows: "OrderedDict[str, BallotWorkflow]" = OrderedDict()

    def start(self, token: str, source) -> BallotWorkflow:
        """Replace the voter's workflow with a fresh one in LOADING."""
        key = session_key(token)
        self._workflows.pop(key, None)

        while len(self._workflows) >= self.max_sessions:
            evicted, _ = self._workflows.popitem(last=False)
            logger.warning(f"Session limit reached, evicting ballot session {evicted[:12]}")

        workflow = BallotWorkflow(source)
        self._workflows[key] = workflow
        return workflow

    def get(self, token: str) -> Optional[BallotWorkflow]:
        key = session_key(token)
        workflow = self._workflows.get(key)
        if workflow is not None:
            self._workflows.move_to_end(key)
        return workflow

    def discard(self, token: str) -> None:
        self._workflows.pop(session_key(token), None)

    def clear(self) -> None:
        self._workflows.clear()

    def __len__(self) -> int:
        return len(self._workflows)


# Global session registry
sessions = WorkflowSessions()
